from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Union

from framestamp.models import ResolvedGeometry, SceneStats

Box = tuple[float, float, float, float]


@dataclass(frozen=True, slots=True)
class DropShadow:
    color: str
    direction_deg: float
    depth: float
    blur_radius: float
    opacity: float


@dataclass(frozen=True, slots=True)
class Glow:
    color: str
    blur_radius: float
    opacity: float


@dataclass(frozen=True, slots=True)
class FillLayer:
    kind: ClassVar[str] = "fill"
    role: str
    box: Box
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True, slots=True)
class PhotoLayer:
    kind: ClassVar[str] = "photo"
    role: str
    box: Box
    corner_radius: float
    shadow: DropShadow | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True, slots=True)
class MarkLayer:
    kind: ClassVar[str] = "mark"
    role: str
    box: Box
    asset: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True, slots=True)
class PanelLayer:
    kind: ClassVar[str] = "panel"
    role: str
    box: Box
    color: str
    opacity: float
    corner_radius: float
    blur_radius: float

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True, slots=True)
class TextLayer:
    """One run of text; ``(x, y)`` is the top-left corner of its line box."""

    kind: ClassVar[str] = "text"
    role: str
    x: float
    y: float
    text: str
    font_size: float
    color: str
    bold: bool = False
    glow: Glow | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


Layer = Union[FillLayer, PhotoLayer, MarkLayer, PanelLayer, TextLayer]


@dataclass(frozen=True, slots=True)
class Composition:
    geometry: ResolvedGeometry
    layers: tuple[Layer, ...]
    scene: SceneStats | None = None

    @property
    def canvas_size(self) -> tuple[int, int]:
        return self.geometry.canvas_size

    def layers_with_role(self, role: str) -> list[Layer]:
        return [layer for layer in self.layers if layer.role == role]

    def to_dict(self) -> dict[str, Any]:
        width, height = self.canvas_size
        return {
            "width": width,
            "height": height,
            "geometry": self.geometry.to_dict(),
            "scene": asdict(self.scene) if self.scene else None,
            "layers": [layer.to_dict() for layer in self.layers],
        }
