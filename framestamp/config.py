from __future__ import annotations

import copy
import os
import platform
import sys
from pathlib import Path
from typing import Any

import yaml

from framestamp import constants
from framestamp.models import AdaptationThresholds

DEFAULT_CONFIG: dict[str, Any] = {
    "template": "classic",
    "output_format": "jpeg",
    "quality": 92,
    "use_exiftool": "auto",
    "decoder": "auto",
    "name_template": "Frame_{stem}.{ext}",
    "font_path": None,
    "asset_dirs": [],
    "log_level": "INFO",
    "adaptation": {
        "dark_luma": constants.DARK_LUMA_THRESHOLD,
        "bright_luma": constants.BRIGHT_LUMA_THRESHOLD,
        "variance": constants.VARIANCE_THRESHOLD,
        "compact_margin": constants.COMPACT_MARGIN_THRESHOLD,
    },
}


def get_app_dir() -> Path:
    """Return the application root directory.

    - Frozen (PyInstaller): directory containing the executable.
    - Development: project root (two levels up from this file).
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    # framestamp/config.py -> framestamp/ -> project_root/
    return Path(__file__).resolve().parent.parent


def get_user_data_dir() -> Path:
    """Writable per-user data directory; frozen builds must not write inside the bundle."""
    if not getattr(sys, "frozen", False):
        return get_app_dir()

    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / "FrameStamp"
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / "FrameStamp"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "FrameStamp"
    return Path.home() / ".config" / "FrameStamp"


def get_config_path() -> Path:
    return get_user_data_dir() / "Config" / "config.yaml"


def default_asset_dirs() -> list[Path]:
    return [get_user_data_dir() / "Assets"]


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    text = cfg_path.read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    return _deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg_path.write_text(yaml.safe_dump(cfg, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path


def adaptation_thresholds(cfg: dict[str, Any]) -> AdaptationThresholds:
    section = cfg.get("adaptation") or {}
    defaults = AdaptationThresholds()

    def pick(key: str, fallback: float) -> float:
        try:
            return float(section.get(key, fallback))
        except (TypeError, ValueError):
            return fallback

    return AdaptationThresholds(
        dark_luma=pick("dark_luma", defaults.dark_luma),
        bright_luma=pick("bright_luma", defaults.bright_luma),
        variance=pick("variance", defaults.variance),
        compact_margin=pick("compact_margin", defaults.compact_margin),
    )


def asset_dirs(cfg: dict[str, Any]) -> list[Path]:
    dirs = [Path(str(item)).expanduser() for item in cfg.get("asset_dirs") or []]
    return dirs + default_asset_dirs()
