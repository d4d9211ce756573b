from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from framestamp.models import FieldTexts, LayoutFloors, LayoutMode, MarkAssets, Template

LOGGER = logging.getLogger(__name__)

_TEMPLATE_PACKAGE = "framestamp.templates"
_SUFFIXES = (".yaml", ".yml", ".json")


def list_builtin_templates() -> list[str]:
    files = resources.files(_TEMPLATE_PACKAGE)
    names = []
    for item in files.iterdir():
        if item.name.endswith(_SUFFIXES):
            names.append(Path(item.name).stem)
    return sorted(set(names))


def _parse(text: str, suffix: str, source: str) -> dict[str, Any]:
    if suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"template file is not a dict: {source}")
    return data


def _load_file(path: Path) -> dict[str, Any]:
    return _parse(path.read_text(encoding="utf-8"), path.suffix.lower(), str(path))


def _load_builtin(name: str) -> dict[str, Any]:
    pkg = resources.files(_TEMPLATE_PACKAGE)
    for suffix in _SUFFIXES:
        candidate = pkg / f"{name}{suffix}"
        if candidate.is_file():
            return _parse(candidate.read_text(encoding="utf-8"), suffix, candidate.name)
    raise FileNotFoundError(f"built-in template not found: {name}")


def _number(value: Any, default: float = 0.0, minimum: float | None = None, maximum: float | None = None) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = default
    if number != number:  # NaN
        number = default
    if minimum is not None:
        number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_layout(value: Any) -> LayoutMode:
    if isinstance(value, LayoutMode):
        return value
    text = _text(value).lower().replace("-", "_")
    if not text:
        return LayoutMode.BRAND_TOP_EXIF_BOTTOM
    try:
        return LayoutMode(text)
    except ValueError:
        options = ", ".join(mode.value for mode in LayoutMode)
        raise ValueError(f"unknown layout {value!r}, expected one of: {options}") from None


def _forced_mark(data: Any) -> MarkAssets | None:
    if not isinstance(data, dict):
        return None
    dark = _text(data.get("dark")) or None
    light = _text(data.get("light")) or None
    if dark is None and light is None:
        return None
    return MarkAssets(dark=dark, light=light)


def _floors(data: Any) -> LayoutFloors | None:
    if not isinstance(data, dict):
        return None
    return LayoutFloors(
        top_padding=_number(data.get("top_padding"), minimum=0.0),
        bottom_padding=_number(data.get("bottom_padding"), minimum=0.0),
    )


def _defaults(data: Any) -> FieldTexts:
    data = data if isinstance(data, dict) else {}
    return FieldTexts(
        make=_text(data.get("make")),
        model=_text(data.get("model")),
        lens=_text(data.get("lens")),
        focal=_text(data.get("focal")),
        f_number=_text(data.get("f_number")),
        shutter=_text(data.get("shutter")),
        iso=_text(data.get("iso")),
    )


def normalize_template_dict(data: dict[str, Any], fallback_name: str = "custom") -> Template:
    margins = data.get("margins") or {}
    if not isinstance(margins, dict):
        margins = {}
    logo = data.get("logo") or {}
    if not isinstance(logo, dict):
        logo = {}

    name = _text(data.get("name")) or fallback_name
    return Template(
        name=name,
        title=_text(data.get("title")) or name,
        scale_pct=_number(data.get("scale_pct"), 90.0, 1.0, 100.0),
        margin_top=_number(margins.get("top"), minimum=0.0),
        margin_bottom=_number(margins.get("bottom"), minimum=0.0),
        margin_left=_number(margins.get("left"), minimum=0.0),
        margin_right=_number(margins.get("right"), minimum=0.0),
        corner_radius=_number(data.get("corner_radius"), minimum=0.0),
        shadow_size=_number(data.get("shadow_size"), minimum=0.0),
        text_spacing=_number(data.get("text_spacing")),
        layout=parse_layout(data.get("layout")),
        margin_priority=bool(data.get("margin_priority", False)),
        forced_mark=_forced_mark(logo.get("forced")),
        logo_offset_y=_number(logo.get("offset_y")),
        logo_height_px=_number(logo.get("height_px"), minimum=0.0),
        smart_adaptation=bool(data.get("smart_adaptation", False)),
        defaults=_defaults(data.get("defaults")),
        reference_short_edge=_number(data.get("reference_short_edge"), minimum=0.0),
        floors=_floors(data.get("floors")),
        order=int(_number(data.get("order"))),
    )


def load_template(template_name_or_path: str) -> Template:
    path = Path(template_name_or_path)
    if path.is_file():
        raw = _load_file(path)
        return normalize_template_dict(raw, fallback_name=path.stem)
    raw = _load_builtin(template_name_or_path)
    return normalize_template_dict(raw, fallback_name=template_name_or_path)


def load_catalog() -> list[Template]:
    """Every built-in template, ordered by each file's ``order`` then name."""
    templates = [load_template(name) for name in list_builtin_templates()]
    templates.sort(key=lambda tpl: (tpl.order, tpl.name))
    LOGGER.debug("Loaded %d built-in templates", len(templates))
    return templates


def get_template(catalog: list[Template], key: str | int) -> Template:
    """Look up a catalog entry by name (case-insensitive) or zero-based index."""
    if isinstance(key, int) or str(key).strip().isdigit():
        index = int(key)
        if 0 <= index < len(catalog):
            return catalog[index]
        raise KeyError(f"template index out of range: {index}")
    wanted = str(key).strip().lower()
    for template in catalog:
        if template.name.lower() == wanted:
            return template
    raise KeyError(f"template not found: {key}")


def resolve_template(key: str) -> Template:
    """Catalog entry by name or index, else a template file at ``key``."""
    try:
        return get_template(load_catalog(), key)
    except KeyError as exc:
        LOGGER.debug("%s; trying it as a file path", exc)
    path = Path(key)
    if path.is_file():
        return load_template(str(path))
    raise FileNotFoundError(f"no built-in template or template file matches {key!r}")
