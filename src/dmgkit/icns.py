"""Read and write Apple icon containers (.icns)."""
from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping

MAGIC = b"icns"
HEADER = struct.Struct(">4sI")

BIGGEST_TAG = "ic10"

# Canonical bitmap types, in the order they are written back out.
IMAGE_TYPES = (
    "ICON",
    "ICN#",
    "icm#",
    "icm4",
    "icm8",
    "ics#",
    "ics4",
    "ics8",
    "is32",
    "s8mk",
    "icl4",
    "icl8",
    "il32",
    "l8mk",
    "ich#",
    "ich4",
    "ich8",
    "ih32",
    "h8mk",
    "it32",
    "t8mk",
    "icp4",
    "icp5",
    "icp6",
    "ic07",
    "ic08",
    "ic09",
    "ic10",
    "ic11",
    "ic12",
    "ic13",
    "ic14",
    "ic04",
    "ic05",
    "icsb",
    "icsB",
    "sb24",
    "SB24",
)
_TYPE_ORDER = {tag: index for index, tag in enumerate(IMAGE_TYPES)}


class MalformedContainerError(Exception):
    """Raised when bytes do not follow the icns header and record framing."""


class RecordKind(enum.Enum):
    IMAGE = "image"
    OTHER = "other"


@dataclass(frozen=True)
class IcnsRecord:
    tag: str
    data: bytes

    @property
    def kind(self) -> RecordKind:
        return RecordKind.IMAGE if is_image_type(self.tag) else RecordKind.OTHER


def is_image_type(tag: str) -> bool:
    return tag in _TYPE_ORDER


def iter_records(data: bytes) -> Iterator[IcnsRecord]:
    """Yield every top-level record, image or not, validating the framing."""
    if len(data) < HEADER.size:
        raise MalformedContainerError("File is too short to be an icon container.")

    magic, total = HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise MalformedContainerError(f"Unexpected magic {magic!r}, expected {MAGIC!r}.")
    if total != len(data):
        raise MalformedContainerError(
            f"Header declares {total} bytes but container holds {len(data)}."
        )

    offset = HEADER.size
    while offset < total:
        if total - offset < HEADER.size:
            raise MalformedContainerError(f"Truncated record header at offset {offset}.")
        raw_tag, length = HEADER.unpack_from(data, offset)
        if length < HEADER.size or offset + length > total:
            raise MalformedContainerError(
                f"Record {raw_tag!r} at offset {offset} has invalid length {length}."
            )
        tag = raw_tag.decode("latin-1")
        yield IcnsRecord(tag=tag, data=bytes(data[offset + HEADER.size : offset + length]))
        offset += length


def decode(data: bytes) -> Dict[str, bytes]:
    icons: Dict[str, bytes] = {}
    for record in iter_records(data):
        if record.kind is not RecordKind.IMAGE:
            continue
        if record.tag in icons:
            raise MalformedContainerError(f"Duplicate image record {record.tag!r}.")
        icons[record.tag] = record.data
    return icons


def encode(icons: Mapping[str, bytes]) -> bytes:
    for tag in icons:
        if len(tag) != 4 or not is_image_type(tag):
            raise ValueError(f"Not an icon image type: {tag!r}")

    chunks = []
    for tag in sorted(icons, key=_TYPE_ORDER.__getitem__):
        payload = bytes(icons[tag])
        chunks.append(HEADER.pack(tag.encode("latin-1"), len(payload) + HEADER.size) + payload)

    body = b"".join(chunks)
    return HEADER.pack(MAGIC, len(body) + HEADER.size) + body


def read_icns(path: Path) -> Dict[str, bytes]:
    path = Path(path)
    data = path.read_bytes()
    try:
        return decode(data)
    except MalformedContainerError as exc:
        raise MalformedContainerError(f"{path}: {exc}") from exc


def write_icns(path: Path, icons: Mapping[str, bytes]) -> Path:
    path = Path(path)
    path.write_bytes(encode(icons))
    return path
