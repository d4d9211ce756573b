from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from PIL import Image

from framestamp import constants


def strip_make_prefix(make: str, model: str) -> str:
    """Drop a leading ``make`` from ``model`` ("SONY", "SONY ILCE-7RM5" -> "ILCE-7RM5")."""
    if make and model and model.lower().startswith(make.lower()):
        return model[len(make) :].strip()
    return model


def compact_tag_name(name: str) -> str:
    return re.sub(r"[\s/_\-]+", "", str(name or "")).lower()


@dataclass(frozen=True, slots=True)
class ShootingRecord:
    make: str = ""
    model: str = ""
    lens_model: str = ""
    focal_length: str = ""
    f_number: str = ""
    exposure_time: str = ""
    iso_speed: str = ""
    date_taken: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "model", strip_make_prefix(self.make, self.model))

    def to_dict(self) -> dict[str, Any]:
        return {
            "make": self.make,
            "model": self.model,
            "lens_model": self.lens_model,
            "focal_length": self.focal_length,
            "f_number": self.f_number,
            "exposure_time": self.exposure_time,
            "iso_speed": self.iso_speed,
            "date_taken": self.date_taken.isoformat() if self.date_taken else None,
        }


@dataclass(frozen=True, slots=True)
class RawTag:
    block: str
    name: str
    value: Any = None
    description: str | None = None


@dataclass(slots=True)
class RawMetadata:
    """Tag triples from every metadata block plus namespaced auxiliary maps (XMP)."""

    tags: list[RawTag] = field(default_factory=list)
    aux: list[dict[str, str]] = field(default_factory=list)

    def find(self, names: Iterable[str], blocks: Iterable[str] | None = None) -> RawTag | None:
        wanted = [compact_tag_name(name) for name in names]
        block_filter = {b.lower() for b in blocks} if blocks else None
        for key in wanted:
            for tag in self.tags:
                if block_filter is not None and tag.block.lower() not in block_filter:
                    continue
                if compact_tag_name(tag.name) == key:
                    return tag
        return None

    def is_empty(self) -> bool:
        return not self.tags and not any(self.aux)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tags": [
                {
                    "block": tag.block,
                    "name": tag.name,
                    "value": str(tag.value) if tag.value is not None else None,
                    "description": tag.description,
                }
                for tag in self.tags
            ],
            "aux": [dict(item) for item in self.aux],
        }


class LayoutMode(str, Enum):
    BRAND_TOP_EXIF_BOTTOM = "brand_top_exif_bottom"
    BRAND_BOTTOM_CENTERED = "brand_bottom_centered"
    TWO_LINES_BOTTOM_CENTERED = "two_lines_bottom_centered"


@dataclass(frozen=True, slots=True)
class MarkAssets:
    """Logical asset paths of one brand mark: ``dark`` for light backgrounds, ``light`` for dark ones."""

    dark: str | None = None
    light: str | None = None

    def variant(self, light: bool) -> str | None:
        if light:
            return self.light or self.dark
        return self.dark or self.light


@dataclass(frozen=True, slots=True)
class FieldTexts:
    make: str = ""
    model: str = ""
    lens: str = ""
    focal: str = ""
    f_number: str = ""
    shutter: str = ""
    iso: str = ""


@dataclass(frozen=True, slots=True)
class LayoutFloors:
    top_padding: float = 0.0
    bottom_padding: float = 0.0


@dataclass(frozen=True, slots=True)
class Template:
    name: str
    title: str = ""
    scale_pct: float = 90.0
    margin_top: float = 0.0
    margin_bottom: float = 0.0
    margin_left: float = 0.0
    margin_right: float = 0.0
    corner_radius: float = 0.0
    shadow_size: float = 0.0
    text_spacing: float = 0.0
    layout: LayoutMode = LayoutMode.BRAND_TOP_EXIF_BOTTOM
    margin_priority: bool = False
    forced_mark: MarkAssets | None = None
    logo_offset_y: float = 0.0
    logo_height_px: float = 0.0
    smart_adaptation: bool = False
    defaults: FieldTexts = field(default_factory=FieldTexts)
    reference_short_edge: float = 0.0
    floors: LayoutFloors | None = None
    order: int = 0


@dataclass(frozen=True, slots=True)
class FrameAdjustments:
    scale_pct: float
    margin_top: float
    margin_bottom: float
    margin_left: float
    margin_right: float
    corner_radius: float
    shadow_size: float
    text_spacing: float
    logo_offset_y: float


@dataclass(frozen=True, slots=True)
class CompositionRequest:
    image: Image.Image
    record: ShootingRecord
    template: Template
    adjustments: FrameAdjustments
    texts: FieldTexts = field(default_factory=FieldTexts)
    margin_priority: bool = False
    smart_adaptation: bool = False


@dataclass(frozen=True, slots=True)
class ResolvedGeometry:
    image_width: int
    image_height: int
    margin_top: float
    margin_bottom: float
    margin_left: float
    margin_right: float
    border_width: float
    border_height: float

    @property
    def image_x(self) -> float:
        return self.margin_left

    @property
    def image_y(self) -> float:
        return self.margin_top

    @property
    def short_edge(self) -> float:
        return min(self.border_width, self.border_height)

    @property
    def canvas_size(self) -> tuple[int, int]:
        return (int(self.border_width), int(self.border_height))

    def to_dict(self) -> dict[str, Any]:
        return {
            "image_width": self.image_width,
            "image_height": self.image_height,
            "margin_top": self.margin_top,
            "margin_bottom": self.margin_bottom,
            "margin_left": self.margin_left,
            "margin_right": self.margin_right,
            "border_width": self.border_width,
            "border_height": self.border_height,
        }


@dataclass(frozen=True, slots=True)
class SceneStats:
    avg_luma: float
    variance: float

    @classmethod
    def fallback(cls) -> SceneStats:
        luma, variance = constants.SCENE_FALLBACK
        return cls(avg_luma=luma, variance=variance)


@dataclass(frozen=True, slots=True)
class AdaptationThresholds:
    dark_luma: float = constants.DARK_LUMA_THRESHOLD
    bright_luma: float = constants.BRIGHT_LUMA_THRESHOLD
    variance: float = constants.VARIANCE_THRESHOLD
    compact_margin: float = constants.COMPACT_MARGIN_THRESHOLD
