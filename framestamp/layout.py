from __future__ import annotations

import math
from dataclasses import dataclass, fields

from framestamp import constants
from framestamp.models import FrameAdjustments, ResolvedGeometry, Template


class GeometryError(ValueError):
    """Raised when a composition request cannot produce a valid canvas."""


@dataclass(frozen=True, slots=True)
class MarginFloors:
    top: float = 0.0
    bottom: float = 0.0
    left: float = 0.0
    right: float = 0.0


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def _short_edge_factor(reference: float, short_edge: float) -> float:
    if reference <= 0:
        return 1.0
    return _clamp(
        short_edge / reference,
        constants.ADAPTATION_FACTOR_MIN,
        constants.ADAPTATION_FACTOR_MAX,
    )


def adaptation_factor(template: Template, width: float, height: float) -> float:
    """Ratio between the image short edge and the one the template was authored for."""
    return _short_edge_factor(template.reference_short_edge, float(min(width, height)))


def template_adjustments(template: Template, width: float, height: float) -> FrameAdjustments:
    """Template values rescaled for an image of ``width`` x ``height``."""
    factor = adaptation_factor(template, width, height)
    return FrameAdjustments(
        scale_pct=template.scale_pct,
        margin_top=template.margin_top * factor,
        margin_bottom=template.margin_bottom * factor,
        margin_left=template.margin_left * factor,
        margin_right=template.margin_right * factor,
        corner_radius=template.corner_radius * factor,
        shadow_size=template.shadow_size * factor,
        text_spacing=template.text_spacing * factor,
        logo_offset_y=template.logo_offset_y * factor,
    )


def logo_height(template: Template, border_width: float, border_height: float) -> float:
    """Height of an image brand mark on a border canvas of the given size."""
    if template.logo_height_px > 0:
        factor = _short_edge_factor(template.reference_short_edge, min(border_width, border_height))
        return template.logo_height_px * factor
    return border_height * constants.LOGO_HEIGHT_RATIO


def geometry_floors(template: Template, width: float, height: float) -> MarginFloors:
    if template.floors is None:
        return MarginFloors()
    factor = adaptation_factor(template, width, height)
    caption_font = min(width, height) * constants.EXIF_FONT_RATIO
    if template.logo_height_px > 0:
        mark_height = template.logo_height_px * factor
    else:
        mark_height = height * constants.LOGO_HEIGHT_RATIO
    side = constants.FLOOR_SIDE_FONT_MULTIPLIER * caption_font
    return MarginFloors(
        top=constants.FLOOR_TOP_LOGO_MULTIPLIER * mark_height + template.floors.top_padding * factor,
        bottom=constants.FLOOR_BOTTOM_FONT_MULTIPLIER * caption_font + template.floors.bottom_padding * factor,
        left=side,
        right=side,
    )


def validate_adjustments(
    width: float,
    height: float,
    adjustments: FrameAdjustments,
    *,
    margin_priority: bool,
) -> None:
    if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
        raise GeometryError(f"image size must be positive, got {width}x{height}")
    for item in fields(adjustments):
        value = getattr(adjustments, item.name)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise GeometryError(f"{item.name} must be a finite number, got {value!r}")
    for name in ("margin_top", "margin_bottom", "margin_left", "margin_right"):
        value = getattr(adjustments, name)
        if value < 0:
            raise GeometryError(f"{name} must not be negative, got {value}")
    if not margin_priority and adjustments.scale_pct <= 0:
        raise GeometryError(f"scale must be a positive percentage, got {adjustments.scale_pct}")


def resolve_geometry(
    width: int,
    height: int,
    template: Template,
    adjustments: FrameAdjustments,
    *,
    margin_priority: bool,
) -> ResolvedGeometry:
    """Final margins and border size for an image of ``width`` x ``height``.

    With ``margin_priority`` the requested margins are used as they are.
    Otherwise a uniform margin is derived from the scale percentage,
    ``(h / (scale / 100) - h) / 2``, and every side takes the larger of that
    and its requested minimum. Template floors, when defined, raise the
    requested margins first.
    """
    validate_adjustments(width, height, adjustments, margin_priority=margin_priority)
    floors = geometry_floors(template, width, height)
    top = max(adjustments.margin_top, floors.top)
    bottom = max(adjustments.margin_bottom, floors.bottom)
    left = max(adjustments.margin_left, floors.left)
    right = max(adjustments.margin_right, floors.right)

    if not margin_priority:
        base_margin = (height / (adjustments.scale_pct / 100.0) - height) / 2
        top = max(base_margin, top)
        bottom = max(base_margin, bottom)
        left = max(base_margin, left)
        right = max(base_margin, right)

    border_width = width + left + right
    border_height = height + top + bottom
    # Finite inputs can still overflow once margins are summed.
    for name, value in (
        ("margin_top", top),
        ("margin_bottom", bottom),
        ("margin_left", left),
        ("margin_right", right),
        ("border_width", border_width),
        ("border_height", border_height),
    ):
        if not math.isfinite(value):
            raise GeometryError(f"resolved {name} is not finite; margins or scale are out of range")

    return ResolvedGeometry(
        image_width=int(width),
        image_height=int(height),
        margin_top=top,
        margin_bottom=bottom,
        margin_left=left,
        margin_right=right,
        border_width=border_width,
        border_height=border_height,
    )
