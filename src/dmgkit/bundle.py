from __future__ import annotations

import plistlib
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


INVALID_CHARS_PATTERN = re.compile(r"[\\/:*?\"<>|]+")
WHITESPACE_COLLAPSE = re.compile(r"\s+")


class BundleError(Exception):
    """Raised when an app bundle or its Info.plist cannot be read."""


@dataclass
class BundleInfo:
    path: Path
    name: str
    version: Optional[str]
    icon_path: Optional[Path] = None


def _read_info_plist(app_path: Path) -> Dict[str, Any]:
    plist_path = app_path / "Contents" / "Info.plist"
    try:
        with plist_path.open("rb") as handle:
            # plistlib detects XML and binary encodings on its own.
            data = plistlib.load(handle)
    except FileNotFoundError as exc:
        raise BundleError(f"Could not find {plist_path}") from exc
    except (plistlib.InvalidFileException, ValueError) as exc:
        raise BundleError(f"Invalid Info.plist in {app_path}: {exc}") from exc
    except OSError as exc:
        raise BundleError(f"Failed to read {plist_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise BundleError(f"Info.plist in {app_path} must contain a dictionary.")
    return data


def _string_value(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _resolve_icon(app_path: Path, icon_file: Optional[str]) -> Optional[Path]:
    if not icon_file:
        return None
    if not icon_file.endswith(".icns"):
        icon_file = f"{icon_file}.icns"
    candidate = app_path / "Contents" / "Resources" / icon_file
    return candidate if candidate.is_file() else None


def load_bundle(app_path: Path) -> BundleInfo:
    app_path = Path(app_path).expanduser()
    if not app_path.is_dir():
        raise BundleError(f"Could not find {app_path}")

    data = _read_info_plist(app_path)
    name = _string_value(data, "CFBundleDisplayName") or _string_value(data, "CFBundleName")
    if not name:
        raise BundleError(f"Info.plist in {app_path} has no CFBundleName.")

    return BundleInfo(
        path=app_path,
        name=name,
        version=_string_value(data, "CFBundleShortVersionString"),
        icon_path=_resolve_icon(app_path, _string_value(data, "CFBundleIconFile")),
    )


def _sanitize_segment(value: str, max_length: int = 100) -> str:
    normalized = unicodedata.normalize("NFKC", value)
    printable = "".join(ch for ch in normalized if ch.isprintable())
    cleaned = INVALID_CHARS_PATTERN.sub("-", printable)
    cleaned = WHITESPACE_COLLAPSE.sub(" ", cleaned)
    cleaned = cleaned.strip(" .-")
    return cleaned[:max_length].rstrip()


def dmg_filename(info: BundleInfo, include_version: bool = True) -> str:
    name = _sanitize_segment(info.name) or "Untitled"
    if include_version and info.version:
        version = _sanitize_segment(info.version)
        if version:
            return f"{name} {version}.dmg"
    return f"{name}.dmg"


def unique_destination(directory: Path, filename: str) -> Path:
    original = Path(directory) / filename
    destination = original
    counter = 1
    while destination.exists():
        destination = original.with_name(f"{original.stem}-{counter}{original.suffix}")
        counter += 1
    return destination
