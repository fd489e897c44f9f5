from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .icns import read_icns, write_icns


logger = logging.getLogger(__name__)

# Drive icon modelled on /System/Library/Extensions/IOStorageFamily.kext/Contents/Resources/Removable.icns
DEFAULT_TEMPLATE = Path(__file__).resolve().parent / "assets" / "disk-icon.icns"


@dataclass(frozen=True)
class Capability:
    available: bool
    reason: Optional[str] = None


def probe_capability(enabled: bool = True) -> Capability:
    """Check whether this environment can composite icons. Never raises."""
    if not enabled:
        return Capability(False, "disabled by configuration")

    try:
        import numpy  # noqa: F401
        from PIL import features
    except ImportError as exc:
        return Capability(False, f"image libraries are not installed ({exc})")

    if not features.check_codec("zlib"):
        return Capability(False, "Pillow was built without PNG (zlib) support")

    return Capability(True)


def _temporary_icon_path() -> Path:
    fd, name = tempfile.mkstemp(prefix="dmgkit-", suffix=".icns")
    os.close(fd)
    return Path(name)


def produce_icon(
    app_icon_path: Path,
    capability: Capability,
    template_path: Path = DEFAULT_TEMPLATE,
    output_path: Optional[Path] = None,
    workers: Optional[int] = None,
) -> Path:
    """Build the volume icon for ``app_icon_path`` and return where it was written.

    When ``capability`` is unavailable the template is returned untouched.
    """
    template_path = Path(template_path)
    if not capability.available:
        logger.info("Icon composition unavailable (%s); using %s", capability.reason, template_path)
        return template_path

    from .reconciler import reconcile

    template_icons = read_icns(template_path)
    app_icons = read_icns(Path(app_icon_path))
    logger.debug(
        "Loaded %d app icon types and %d template types",
        len(app_icons),
        len(template_icons),
    )

    composed = reconcile(app_icons, template_icons, workers=workers)
    if not composed:
        logger.warning("No icon types could be composed; using %s", template_path)
        return template_path

    destination = Path(output_path) if output_path else _temporary_icon_path()
    try:
        write_icns(destination, composed)
    except OSError:
        if output_path is None:
            destination.unlink(missing_ok=True)
        raise

    logger.info("Volume icon written to %s", destination)
    return destination
