from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Mapping, Optional

from .compositor import InvalidImageError, composite
from .icns import BIGGEST_TAG


logger = logging.getLogger(__name__)

Composer = Callable[[bytes, bytes], bytes]


def _compose_tag(compose: Composer, tag: str, source: bytes, template: bytes) -> Optional[bytes]:
    try:
        return compose(source, template)
    except InvalidImageError as exc:
        logger.warning("Skipping icon type %s: %s", tag, exc)
        return None


def reconcile(
    app_icons: Mapping[str, bytes],
    template_icons: Mapping[str, bytes],
    workers: Optional[int] = None,
    compose: Composer = composite,
) -> Dict[str, bytes]:
    """Composite every app icon resolution onto the matching template resolution.

    Resolutions are processed concurrently and merged once all of them are
    done. A resolution without a template counterpart, or one that fails to
    decode, is logged and left out. Afterwards the biggest resolution is
    synthesized from the largest app icon entry if the pass did not produce it.
    """
    matched = []
    for tag in app_icons:
        if tag in template_icons:
            matched.append(tag)
        else:
            logger.warning("There is no base image for icon type %s", tag)

    composed: Dict[str, bytes] = {}
    if matched:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                tag: executor.submit(_compose_tag, compose, tag, app_icons[tag], template_icons[tag])
                for tag in matched
            }
        for tag in matched:
            result = futures[tag].result()
            if result is not None:
                composed[tag] = result

    if BIGGEST_TAG not in composed and app_icons:
        if BIGGEST_TAG not in template_icons:
            logger.warning("Template has no %s image; largest icon cannot be synthesized", BIGGEST_TAG)
        else:
            largest_tag = max(app_icons, key=lambda tag: len(app_icons[tag]))
            logger.info("Synthesizing %s from app icon type %s", BIGGEST_TAG, largest_tag)
            result = _compose_tag(compose, BIGGEST_TAG, app_icons[largest_tag], template_icons[BIGGEST_TAG])
            if result is not None:
                composed[BIGGEST_TAG] = result

    logger.info(
        "Composed %d of %d icon types (%s)",
        len(composed),
        len(app_icons),
        ", ".join(composed) or "none",
    )
    return composed
