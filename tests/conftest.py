"""Shared fixtures for dmgkit tests."""

import io
import plistlib
import struct
import zlib
from unittest.mock import patch

import pytest
from PIL import Image

from dmgkit.icns import write_icns
from dmgkit.settings import UserSettings


def png_bytes(size, color=(220, 40, 40, 255)):
    if isinstance(size, int):
        size = (size, size)
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def png_header_only(width, height):
    """A PNG that declares its size in IHDR but carries no pixel data."""

    def chunk(kind, payload):
        crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
        return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IEND", b"")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep user settings and DMGKIT_* variables out of every test."""
    for name in ("DMGKIT_TEMPLATE", "DMGKIT_WORKERS", "DMGKIT_COMPOSE", "DMGKIT_IDENTITY", "DMGKIT_LOG_PATH"):
        monkeypatch.delenv(name, raising=False)
    with patch("dmgkit.config.load_user_settings", return_value=UserSettings()):
        yield


@pytest.fixture
def template_icns(tmp_path):
    icons = {
        "icp4": png_bytes(16, (180, 180, 180, 255)),
        "ic07": png_bytes(128, (180, 180, 180, 255)),
        "ic10": png_bytes(256, (180, 180, 180, 255)),
    }
    return write_icns(tmp_path / "template.icns", icons)


@pytest.fixture
def app_icns(tmp_path):
    icons = {
        "icp4": png_bytes(16),
        "ic07": png_bytes(128),
    }
    return write_icns(tmp_path / "app.icns", icons)


@pytest.fixture
def make_app(tmp_path):
    def _make_app(name="Fixture", info=None, icon=None, fmt=plistlib.FMT_XML):
        app = tmp_path / f"{name}.app"
        (app / "Contents" / "Resources").mkdir(parents=True)
        data = {
            "CFBundleName": name,
            "CFBundleShortVersionString": "0.0.1",
        }
        data.update(info or {})
        with (app / "Contents" / "Info.plist").open("wb") as handle:
            plistlib.dump(data, handle, fmt=fmt)
        if icon is not None:
            write_icns(app / "Contents" / "Resources" / "AppIcon.icns", icon)
        return app

    return _make_app
