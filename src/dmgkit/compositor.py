from __future__ import annotations

import io
import logging
from typing import Tuple

import numpy as np
from PIL import Image


logger = logging.getLogger(__name__)

# Horizontal position of the warped top corners, as a fraction of the width.
TOP_LEFT_INSET = 0.08
TOP_RIGHT_INSET = 0.92
# The drive slot is smaller than the template; aspect ratio is not kept.
WIDTH_DIVISOR = 1.58
HEIGHT_DIVISOR = 1.82
# Upward shift of the overlay from dead center, as a fraction of the template height.
VERTICAL_OFFSET_FACTOR = 0.063


class InvalidImageError(Exception):
    """Raised when an icon entry cannot be decoded as a raster."""


def _open_rgba(data: bytes, label: str) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise InvalidImageError(f"Failed to decode {label} image: {exc}") from exc
    return image.convert("RGBA")


def perspective_coefficients(
    source_corners: Tuple[Tuple[float, float], ...],
    target_corners: Tuple[Tuple[float, float], ...],
) -> Tuple[float, ...]:
    """Solve the 8 coefficients Pillow uses to map output pixels back to input pixels.

    ``target_corners`` are positions on the output canvas, ``source_corners``
    the matching positions in the input image.
    """
    rows = []
    values = []
    for (x, y), (u, v) in zip(target_corners, source_corners):
        rows.append([x, y, 1, 0, 0, 0, -u * x, -u * y])
        rows.append([0, 0, 0, x, y, 1, -v * x, -v * y])
        values.extend((u, v))
    solution = np.linalg.solve(np.array(rows, dtype=float), np.array(values, dtype=float))
    return tuple(float(value) for value in solution)


def warp_perspective(image: Image.Image) -> Image.Image:
    """Pull the top edge inward so the image looks tilted away from the viewer."""
    width, height = image.size
    source = ((0, 0), (width, 0), (width, height), (0, height))
    target = (
        (width * TOP_LEFT_INSET, 0),
        (width * TOP_RIGHT_INSET, 0),
        (width, height),
        (0, height),
    )
    coefficients = perspective_coefficients(source, target)
    # Filter in premultiplied alpha so transparent fill does not darken the edges.
    warped = image.convert("RGBa").transform(
        image.size,
        Image.PERSPECTIVE,
        coefficients,
        Image.BICUBIC,
        fillcolor=(0, 0, 0, 0),
    )
    return warped.convert("RGBA")


def overlay_size(template_size: Tuple[int, int]) -> Tuple[int, int]:
    width, height = template_size
    return (
        max(1, round(width / WIDTH_DIVISOR)),
        max(1, round(height / HEIGHT_DIVISOR)),
    )


def vertical_offset(template_height: int) -> float:
    return template_height * VERTICAL_OFFSET_FACTOR


def overlay_position(template_size: Tuple[int, int], size: Tuple[int, int]) -> Tuple[int, int]:
    template_width, template_height = template_size
    width, height = size
    x = (template_width - width) / 2
    # Top-left origin: moving up means a smaller y.
    y = (template_height - height) / 2 - vertical_offset(template_height)
    return max(0, round(x)), max(0, round(y))


def composite_images(source: Image.Image, template: Image.Image) -> Image.Image:
    source = source.convert("RGBA")
    result = template.convert("RGBA")

    warped = warp_perspective(source)
    resized = warped.resize(overlay_size(result.size), Image.LANCZOS)
    result.alpha_composite(resized, dest=overlay_position(result.size, resized.size))
    return result


def composite(source: bytes, template: bytes) -> bytes:
    """Composite the app icon raster onto the drive template and return PNG bytes."""
    source_image = _open_rgba(source, "source")
    template_image = _open_rgba(template, "template")

    result = composite_images(source_image, template_image)
    logger.debug(
        "Composited %sx%s source onto %sx%s template",
        source_image.width,
        source_image.height,
        template_image.width,
        template_image.height,
    )

    buffer = io.BytesIO()
    result.save(buffer, format="PNG")
    return buffer.getvalue()
