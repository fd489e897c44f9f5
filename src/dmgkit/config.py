import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .settings import load_user_settings, parse_bool
from .volume_icon import DEFAULT_TEMPLATE


DEFAULT_LOG_PATH = Path.home() / "Library" / "Logs" / "dmgkit" / "dmgkit.log"


@dataclass
class AppConfig:
    template_path: Path = DEFAULT_TEMPLATE
    workers: Optional[int] = None
    compose: bool = True
    identity: Optional[str] = None
    log_path: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        template_path: Optional[str] = None,
        workers: Optional[int] = None,
        compose: Optional[bool] = None,
        identity: Optional[str] = None,
        log_path: Optional[str] = None,
    ) -> "AppConfig":
        settings = load_user_settings()

        template = (
            template_path
            or os.environ.get("DMGKIT_TEMPLATE")
            or settings.template_path
        )
        workers_value = _resolve_int(
            workers,
            os.environ.get("DMGKIT_WORKERS"),
            settings.workers,
            None,
            "DMGKIT_WORKERS",
        )
        if workers_value is not None and workers_value < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers_value}")
        compose_value = _resolve_bool(
            compose,
            os.environ.get("DMGKIT_COMPOSE"),
            settings.compose,
            True,
            "DMGKIT_COMPOSE",
        )
        identity_value = identity or os.environ.get("DMGKIT_IDENTITY") or settings.identity
        log_path_value = (
            log_path
            or os.environ.get("DMGKIT_LOG_PATH")
            or settings.log_path
            or (str(DEFAULT_LOG_PATH) if sys.platform == "darwin" else None)
        )

        return cls(
            template_path=Path(template).expanduser() if template else DEFAULT_TEMPLATE,
            workers=workers_value,
            compose=compose_value,
            identity=identity_value,
            log_path=log_path_value,
        )


def _resolve_int(
    direct_value: Optional[int],
    env_value: Optional[str],
    stored_value: Optional[int],
    default_value: Optional[int],
    env_name: str,
) -> Optional[int]:
    if direct_value is not None:
        return direct_value
    if env_value is not None:
        try:
            return int(env_value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid integer for {env_name}: {env_value}") from exc
    if stored_value is not None:
        return stored_value
    return default_value


def _resolve_bool(
    direct_value: Optional[bool],
    env_value: Optional[str],
    stored_value: Optional[bool],
    default_value: bool,
    env_name: str,
) -> bool:
    if direct_value is not None:
        return direct_value
    if env_value is not None:
        parsed = parse_bool(env_value)
        if parsed is None:
            raise ValueError(f"Invalid boolean for {env_name}: {env_value}")
        return parsed
    if stored_value is not None:
        return stored_value
    return default_value
