from __future__ import annotations

import logging
from pathlib import Path

from framestamp.meta.exiftool import read_raw_metadata
from framestamp.meta.pillow_fallback import extract_pillow_metadata
from framestamp.models import RawMetadata

LOGGER = logging.getLogger(__name__)


def read_metadata(path: Path, mode: str = "auto") -> RawMetadata:
    """Collect raw tags for ``path``: ExifTool first, Pillow when it is off or unavailable.

    Read failures yield an empty ``RawMetadata`` so a frame can still be drawn.
    Only ``mode="on"`` with a missing ExifTool raises.
    """
    raw = read_raw_metadata(path, mode=mode)
    if raw is not None and not raw.is_empty():
        return raw
    if raw is not None:
        LOGGER.debug("ExifTool returned no tags for %s, trying Pillow", path)
    return extract_pillow_metadata(path)
