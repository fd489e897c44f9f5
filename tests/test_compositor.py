"""Tests for the perspective compositor."""

import io

import pytest
from PIL import Image

from conftest import png_bytes
from dmgkit.compositor import (
    InvalidImageError,
    composite,
    composite_images,
    overlay_position,
    overlay_size,
    perspective_coefficients,
    vertical_offset,
    warp_perspective,
)


def open_png(data):
    return Image.open(io.BytesIO(data))


def test_output_matches_template_size():
    result = open_png(composite(png_bytes(64), png_bytes((100, 80), (0, 0, 0, 0))))
    assert result.size == (100, 80)
    assert result.mode == "RGBA"


def test_composite_is_deterministic():
    source = png_bytes(48)
    template = png_bytes(128, (90, 90, 90, 255))
    assert composite(source, template) == composite(source, template)


def test_corrupt_source_raises():
    with pytest.raises(InvalidImageError, match="source"):
        composite(b"definitely not a png", png_bytes(32))


def test_corrupt_template_raises():
    with pytest.raises(InvalidImageError, match="template"):
        composite(png_bytes(32), b"\x89PNG\r\n\x1a\n truncated")


def test_overlay_is_centered_and_raised():
    template = Image.new("RGBA", (200, 200), (0, 0, 0, 0))
    source = Image.new("RGBA", (64, 64), (255, 0, 0, 255))

    result = composite_images(source, template)
    left, top, right, bottom = result.getchannel("A").getbbox()

    assert (left + right) / 2 == pytest.approx(100, abs=2)
    assert (top + bottom) / 2 == pytest.approx(100 - 0.063 * 200, abs=2)
    assert bottom - top == pytest.approx(200 / 1.82, abs=2)
    assert right - left <= round(200 / 1.58)


def test_template_pixels_outside_overlay_are_kept():
    template = Image.new("RGBA", (100, 100), (10, 20, 30, 255))
    result = composite_images(Image.new("RGBA", (32, 32), (255, 255, 255, 255)), template)
    assert result.getpixel((0, 0)) == (10, 20, 30, 255)
    assert result.getpixel((99, 99)) == (10, 20, 30, 255)


def test_warp_pulls_top_edge_inward():
    warped = warp_perspective(Image.new("RGBA", (100, 100), (0, 0, 255, 255)))
    assert warped.size == (100, 100)
    assert warped.getpixel((1, 1))[3] == 0
    assert warped.getpixel((98, 1))[3] == 0
    assert warped.getpixel((50, 1))[3] > 200
    assert warped.getpixel((1, 98))[3] > 0
    assert warped.getpixel((50, 98))[3] > 200


def test_identity_coefficients():
    corners = ((0, 0), (10, 0), (10, 10), (0, 10))
    assert perspective_coefficients(corners, corners) == pytest.approx((1, 0, 0, 0, 1, 0, 0, 0), abs=1e-9)


def test_geometry_helpers():
    assert vertical_offset(1000) == pytest.approx(63.0)
    assert overlay_size((158, 182)) == (100, 100)
    assert overlay_size((1, 1)) == (1, 1)
    assert overlay_position((158, 182), (100, 100)) == (29, round(41 - 0.063 * 182))


def test_warp_edges_keep_source_colour():
    warped = warp_perspective(Image.new("RGBA", (64, 64), (255, 0, 0, 255)))
    edge = [pixel for pixel in warped.getdata() if 0 < pixel[3] < 255]

    assert edge
    assert all(pixel[0] >= 240 for pixel in edge)
