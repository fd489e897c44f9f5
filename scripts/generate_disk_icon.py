#!/usr/bin/env python3
"""Draw the built-in drive icon template and write it as disk-icon.icns."""
from __future__ import annotations

import io
import sys
from pathlib import Path

from PIL import Image, ImageDraw

from dmgkit.icns import write_icns

OUTPUT = Path(__file__).resolve().parent.parent / "src" / "dmgkit" / "assets" / "disk-icon.icns"

ICON_SIZES = [
    ("icp4", 16),
    ("icp5", 32),
    ("icp6", 64),
    ("ic07", 128),
    ("ic08", 256),
    ("ic09", 512),
    ("ic10", 1024),
    ("ic11", 32),
    ("ic12", 64),
    ("ic13", 256),
    ("ic14", 512),
]

# (left, top, right, bottom) as fractions of the icon size, drawn in order.
SHAPES = [
    ((0.06, 0.22, 0.94, 0.80), (196, 198, 204, 255)),  # body
    ((0.06, 0.22, 0.94, 0.28), (226, 228, 232, 255)),  # top face
    ((0.06, 0.72, 0.94, 0.80), (142, 145, 152, 255)),  # front edge
    ((0.82, 0.745, 0.88, 0.775), (72, 196, 96, 255)),  # activity light
]


def draw_drive(size: int) -> Image.Image:
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    for (left, top, right, bottom), color in SHAPES:
        box = [int(left * size), int(top * size), int(right * size) - 1, int(bottom * size) - 1]
        draw.rectangle(box, fill=color)
    return img


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def main() -> int:
    OUTPUT.parent.mkdir(parents=True, exist_ok=True)
    icons = {tag: encode_png(draw_drive(size)) for tag, size in ICON_SIZES}
    write_icns(OUTPUT, icons)
    print(f"Template written to {OUTPUT}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
