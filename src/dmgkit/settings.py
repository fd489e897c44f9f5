from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

SETTINGS_DIR = Path.home() / ".config" / "dmgkit"
SETTINGS_FILE = SETTINGS_DIR / "settings.json"


@dataclass
class UserSettings:
    template_path: Optional[str] = None
    workers: Optional[int] = None
    compose: Optional[bool] = None
    identity: Optional[str] = None
    log_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSettings":
        return cls(
            template_path=_coerce_str(data.get("template_path")),
            workers=_coerce_int(data.get("workers")),
            compose=_coerce_bool(data.get("compose")),
            identity=_coerce_str(data.get("identity")),
            log_path=_coerce_str(data.get("log_path")),
        )


def load_user_settings(path: Path = SETTINGS_FILE) -> UserSettings:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return UserSettings()
    except OSError as exc:
        logging.getLogger(__name__).warning("Failed to read settings file %s: %s", path, exc)
        return UserSettings()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logging.getLogger(__name__).warning("Invalid JSON in settings file %s: %s", path, exc)
        return UserSettings()

    if not isinstance(data, dict):
        logging.getLogger(__name__).warning("Settings file %s must contain a JSON object.", path)
        return UserSettings()

    return UserSettings.from_dict(data)


def _coerce_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return parse_bool(value)
    return None


def parse_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None
