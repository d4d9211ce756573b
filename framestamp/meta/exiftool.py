from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any

from framestamp.models import RawMetadata, RawTag

LOGGER = logging.getLogger(__name__)
EXIFTOOL_BIN = os.environ.get("EXIFTOOL_BIN", "exiftool")

_SKIPPED_GROUPS = {"System", "File", "ExifTool", "Composite"}


def is_exiftool_available() -> bool:
    try:
        result = subprocess.run(
            [EXIFTOOL_BIN, "-ver"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def _split_entry(entry: Any) -> tuple[Any, str | None]:
    """Return (raw value, printed description) for one ``-l`` JSON entry."""
    if isinstance(entry, dict):
        printed = entry.get("val")
        numeric = entry.get("num", printed)
        description = None if printed is None else str(printed)
        return numeric, description
    return entry, None if entry is None else str(entry)


def parse_exiftool_item(item: dict[str, Any]) -> RawMetadata:
    """Map one ``exiftool -j -G1 -a -l`` object to tag triples and XMP aux keys."""
    metadata = RawMetadata()
    aux: dict[str, str] = {}
    for key, entry in item.items():
        if key == "SourceFile" or ":" not in key:
            continue
        group, name = key.split(":", 1)
        if group in _SKIPPED_GROUPS:
            continue
        value, description = _split_entry(entry)
        if group.startswith("XMP"):
            namespace = group[4:] if group.startswith("XMP-") else "xmp"
            if description is not None and description.strip():
                aux[f"{namespace}:{name}"] = description
            continue
        metadata.tags.append(RawTag(block=group, name=name, value=value, description=description))
    if aux:
        metadata.aux.append(aux)
    return metadata


def read_raw_metadata(path: Path, mode: str = "auto") -> RawMetadata | None:
    """Read tags with ExifTool; ``None`` means ExifTool is unavailable or disabled."""
    mode = mode.lower()
    if mode not in {"auto", "on", "off"}:
        raise ValueError(f"invalid use-exiftool mode: {mode}")
    if mode == "off":
        return None
    if not is_exiftool_available():
        if mode == "on":
            raise RuntimeError("ExifTool is required but not found in PATH")
        LOGGER.debug("ExifTool not found, fallback metadata reader will be used")
        return None

    cmd = [EXIFTOOL_BIN, "-j", "-G1", "-a", "-l", "-api", "largefilesupport=1", str(path)]
    try:
        result = subprocess.run(cmd, capture_output=True, check=False)
    except FileNotFoundError:
        if mode == "on":
            raise RuntimeError("ExifTool is required but not found in PATH")
        return None

    stdout_text = result.stdout.decode("utf-8", errors="replace")
    if result.returncode != 0:
        message = result.stderr.decode("utf-8", errors="replace").strip() or "unknown error"
        if mode == "on":
            raise RuntimeError(f"ExifTool extraction failed: {message}")
        LOGGER.warning("ExifTool extraction failed for %s: %s", path, message)
        return None
    try:
        payload = json.loads(stdout_text)
    except json.JSONDecodeError:
        if mode == "on":
            raise RuntimeError("ExifTool returned invalid JSON")
        LOGGER.warning("ExifTool returned invalid JSON for %s", path)
        return None
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
        return None
    return parse_exiftool_item(payload[0])
