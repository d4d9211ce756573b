from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from PIL import Image

from framestamp import constants
from framestamp.assets import AssetError, AssetResolver
from framestamp.brands import brand_display_name, brand_marks
from framestamp.layers import (
    Composition,
    DropShadow,
    FillLayer,
    Glow,
    Layer,
    MarkLayer,
    PanelLayer,
    PhotoLayer,
    TextLayer,
)
from framestamp.layout import logo_height, resolve_geometry, template_adjustments
from framestamp.models import (
    AdaptationThresholds,
    CompositionRequest,
    FieldTexts,
    LayoutMode,
    ResolvedGeometry,
    SceneStats,
    ShootingRecord,
    Template,
)
from framestamp.render.scene import analyze_region, bottom_band
from framestamp.render.typography import PillowTextMeasurer, TextMeasurer

LOGGER = logging.getLogger(__name__)


def build_request(
    image: Image.Image,
    record: ShootingRecord,
    template: Template,
    *,
    texts: FieldTexts | None = None,
    margin_priority: bool | None = None,
    smart_adaptation: bool | None = None,
    **numeric_overrides: Any,
) -> CompositionRequest:
    """Assemble a request from the template baseline plus any explicit adjustments.

    ``numeric_overrides`` takes ``FrameAdjustments`` field names; ``None`` values
    keep the resolution-adapted template value.
    """
    adjustments = template_adjustments(template, *image.size)
    changes = {key: float(value) for key, value in numeric_overrides.items() if value is not None}
    if changes:
        adjustments = dataclasses.replace(adjustments, **changes)
    return CompositionRequest(
        image=image,
        record=record,
        template=template,
        adjustments=adjustments,
        texts=texts or FieldTexts(),
        margin_priority=template.margin_priority if margin_priority is None else margin_priority,
        smart_adaptation=template.smart_adaptation if smart_adaptation is None else smart_adaptation,
    )


def resolve_field(override: str, recorded: str, default: str) -> str:
    for value in (override, recorded, default):
        if value and value.strip():
            return value.strip()
    return ""


def iso_label(iso: str) -> str:
    if not iso:
        return ""
    if iso.startswith("ISO"):
        return iso
    return f"ISO{iso}"


def caption_fields(request: CompositionRequest) -> FieldTexts:
    """Per-field display text: non-blank override, then metadata, then template default."""
    texts = request.texts
    record = request.record
    defaults = request.template.defaults
    return FieldTexts(
        make=resolve_field(texts.make, record.make, defaults.make),
        model=resolve_field(texts.model, record.model, defaults.model),
        lens=resolve_field(texts.lens, record.lens_model, defaults.lens),
        focal=resolve_field(texts.focal, record.focal_length, defaults.focal),
        f_number=resolve_field(texts.f_number, record.f_number, defaults.f_number),
        shutter=resolve_field(texts.shutter, record.exposure_time, defaults.shutter),
        iso=resolve_field(texts.iso, record.iso_speed, defaults.iso),
    )


@dataclass(frozen=True, slots=True)
class _BrandElement:
    width: float
    height: float
    asset: str | None = None
    text: str = ""
    font_size: float = 0.0
    char_widths: tuple[float, ...] = ()
    spacing: float = 0.0

    def place(self, x: float, y: float, color: str) -> list[Layer]:
        if self.asset is not None:
            return [MarkLayer(role="brand", box=(x, y, x + self.width, y + self.height), asset=self.asset)]
        layers: list[Layer] = []
        cursor = x
        for index, char in enumerate(self.text):
            layers.append(
                TextLayer(
                    role="brand",
                    x=cursor,
                    y=y,
                    text=char,
                    font_size=self.font_size,
                    color=color,
                    bold=True,
                )
            )
            cursor += self.char_widths[index] + self.spacing
        return layers


def _brand_mark(
    request: CompositionRequest,
    geometry: ResolvedGeometry,
    make: str,
    assets: AssetResolver,
    *,
    light: bool,
) -> _BrandElement | None:
    marks = request.template.forced_mark or brand_marks(make)
    if marks is None:
        return None
    asset = marks.variant(light)
    if not asset:
        return None
    try:
        asset_width, asset_height = assets.size(asset)
    except (AssetError, OSError) as exc:
        LOGGER.info("Brand mark unavailable, drawing brand text instead: %s", exc)
        return None
    height = logo_height(request.template, geometry.border_width, geometry.border_height)
    return _BrandElement(width=height * asset_width / asset_height, height=height, asset=asset)


def _brand_text(
    make: str,
    geometry: ResolvedGeometry,
    spacing: float,
    measurer: TextMeasurer,
) -> _BrandElement:
    text = brand_display_name(make)
    font_size = geometry.border_height * constants.BRAND_TEXT_HEIGHT_RATIO
    widths: list[float] = []
    height = 0.0
    for char in text:
        char_width, char_height = measurer.measure(char, font_size, True)
        widths.append(char_width)
        height = max(height, char_height)
    total = sum(widths) + spacing * max(0, len(text) - 1)
    return _BrandElement(
        width=total,
        height=height,
        text=text,
        font_size=font_size,
        char_widths=tuple(widths),
        spacing=spacing,
    )


def _brand_element(
    request: CompositionRequest,
    geometry: ResolvedGeometry,
    make: str,
    assets: AssetResolver,
    measurer: TextMeasurer,
    *,
    light: bool,
) -> _BrandElement:
    mark = _brand_mark(request, geometry, make, assets, light=light)
    if mark is not None:
        return mark
    return _brand_text(make, geometry, request.adjustments.text_spacing, measurer)


def _brand_top_layers(
    request: CompositionRequest,
    geometry: ResolvedGeometry,
    fields: FieldTexts,
    assets: AssetResolver,
    measurer: TextMeasurer,
) -> list[Layer]:
    width = geometry.border_width
    brand = _brand_element(request, geometry, fields.make, assets, measurer, light=False)
    layers = brand.place(
        (width - brand.width) / 2,
        (geometry.margin_top - brand.height) / 2,
        constants.BRAND_TEXT_COLOR,
    )

    caption = (
        f"FL {fields.focal}   Aperture {fields.f_number}   "
        f"Shutter {fields.shutter}   {iso_label(fields.iso)}"
    )
    font_size = geometry.short_edge * constants.EXIF_FONT_RATIO
    text_width, text_height = measurer.measure(caption, font_size, False)
    band_top = geometry.border_height - geometry.margin_bottom
    layers.append(
        TextLayer(
            role="exif",
            x=(width - text_width) / 2,
            y=band_top + (geometry.margin_bottom - text_height) / 2,
            text=caption,
            font_size=font_size,
            color=constants.EXIF_TEXT_COLOR,
        )
    )
    return layers


def _brand_bottom_layers(
    request: CompositionRequest,
    geometry: ResolvedGeometry,
    fields: FieldTexts,
    assets: AssetResolver,
    measurer: TextMeasurer,
    thresholds: AdaptationThresholds,
) -> tuple[list[Layer], SceneStats | None]:
    scene = None
    light = True
    if request.smart_adaptation:
        scene = analyze_region(request.image, bottom_band(request.image))
        if scene.avg_luma > thresholds.bright_luma:
            light = False
    color = constants.WATERMARK_LIGHT_COLOR if light else constants.WATERMARK_DARK_COLOR

    brand = _brand_element(request, geometry, fields.make, assets, measurer, light=light)
    portrait = geometry.image_height > geometry.image_width
    coef = constants.BRAND_BOTTOM_COEF_PORTRAIT if portrait else constants.BRAND_BOTTOM_COEF_LANDSCAPE
    offset = geometry.margin_bottom * coef + request.adjustments.logo_offset_y
    layers = brand.place(
        (geometry.border_width - brand.width) / 2,
        geometry.border_height - offset - brand.height,
        color,
    )
    return layers, scene


def _two_line_details(fields: FieldTexts) -> str:
    parts = [fields.lens, fields.focal, fields.f_number, fields.shutter, iso_label(fields.iso)]
    return "  ".join(part for part in parts if part)


def _two_line_layers(
    request: CompositionRequest,
    geometry: ResolvedGeometry,
    fields: FieldTexts,
    measurer: TextMeasurer,
    thresholds: AdaptationThresholds,
) -> tuple[list[Layer], SceneStats | None]:
    text_color = constants.CAPTION_TEXT_COLOR
    sub_color = constants.CAPTION_SUBTEXT_COLOR
    light_text = False
    show_panel = False
    scene = None
    if request.smart_adaptation and geometry.margin_bottom < thresholds.compact_margin:
        scene = analyze_region(request.image, bottom_band(request.image))
        if scene.avg_luma < thresholds.dark_luma:
            text_color = constants.CAPTION_LIGHT_TEXT_COLOR
            sub_color = constants.CAPTION_LIGHT_SUBTEXT_COLOR
            light_text = True
        if scene.variance > thresholds.variance:
            show_panel = True
    contrast = constants.WATERMARK_DARK_COLOR if light_text else constants.WATERMARK_LIGHT_COLOR

    width = geometry.border_width
    size_primary = geometry.short_edge * constants.TWO_LINE_FONT_RATIO
    size_secondary = size_primary * constants.TWO_LINE_SUB_FONT_SCALE
    gap = geometry.border_height * constants.TWO_LINE_GAP_RATIO

    brand_text = (fields.make or constants.FALLBACK_BRAND_TEXT).upper() + " "
    brand_width, brand_height = measurer.measure(brand_text, size_primary, True)
    model_width, model_height = measurer.measure(fields.model, size_primary, False)
    line1_width = brand_width + (model_width if fields.model else 0.0)
    line1_height = max(brand_height, model_height)

    details = _two_line_details(fields)
    line2_width, line2_height = measurer.measure(details, size_secondary, False)
    block_width = max(line1_width, line2_width)
    block_height = line1_height + gap + line2_height

    bottom = geometry.border_height - (
        geometry.margin_bottom * constants.TWO_LINE_BOTTOM_RATIO - request.adjustments.logo_offset_y
    )
    layers: list[Layer] = []
    if show_panel:
        panel_width = block_width + 2 * constants.PANEL_PADDING_X
        panel_height = block_height + 2 * constants.PANEL_PADDING_Y
        panel_left = (width - panel_width) / 2
        layers.append(
            PanelLayer(
                role="panel",
                box=(panel_left, bottom - panel_height, panel_left + panel_width, bottom),
                color=contrast,
                opacity=constants.PANEL_OPACITY,
                corner_radius=constants.PANEL_CORNER_RADIUS,
                blur_radius=constants.PANEL_BLUR_RADIUS,
            )
        )
        bottom -= constants.PANEL_PADDING_Y

    glow_primary = glow_secondary = None
    if show_panel:
        glow_primary = Glow(color=contrast, blur_radius=constants.GLOW_BLUR_PRIMARY, opacity=constants.GLOW_OPACITY)
        glow_secondary = Glow(color=contrast, blur_radius=constants.GLOW_BLUR_SECONDARY, opacity=constants.GLOW_OPACITY)

    top = bottom - block_height
    line1_left = (width - line1_width) / 2
    layers.append(
        TextLayer(
            role="caption_brand",
            x=line1_left,
            y=top,
            text=brand_text,
            font_size=size_primary,
            color=text_color,
            bold=True,
            glow=glow_primary,
        )
    )
    if fields.model:
        layers.append(
            TextLayer(
                role="caption_model",
                x=line1_left + brand_width,
                y=top,
                text=fields.model,
                font_size=size_primary,
                color=text_color,
                glow=glow_primary,
            )
        )
    if details:
        layers.append(
            TextLayer(
                role="caption_details",
                x=(width - line2_width) / 2,
                y=top + line1_height + gap,
                text=details,
                font_size=size_secondary,
                color=sub_color,
                glow=glow_secondary,
            )
        )
    return layers, scene


def compose(
    request: CompositionRequest,
    *,
    assets: AssetResolver | None = None,
    measurer: TextMeasurer | None = None,
    thresholds: AdaptationThresholds | None = None,
) -> Composition:
    """Lay out every layer of the framed picture for ``request``.

    Raises ``GeometryError`` for malformed numeric input; every other problem
    (missing marks, failed sampling) degrades to a plainer but complete frame.
    """
    assets = assets or AssetResolver()
    measurer = measurer or PillowTextMeasurer()
    thresholds = thresholds or AdaptationThresholds()

    image_width, image_height = request.image.size
    adjustments = request.adjustments
    geometry = resolve_geometry(
        image_width,
        image_height,
        request.template,
        adjustments,
        margin_priority=request.margin_priority,
    )

    layers: list[Layer] = [
        FillLayer(
            role="background",
            box=(0.0, 0.0, geometry.border_width, geometry.border_height),
            color=constants.BACKGROUND_COLOR,
        )
    ]
    shadow = None
    if adjustments.shadow_size > 0:
        shadow = DropShadow(
            color=constants.SHADOW_COLOR,
            direction_deg=constants.SHADOW_DIRECTION_DEG,
            depth=adjustments.shadow_size / 2,
            blur_radius=adjustments.shadow_size,
            opacity=constants.SHADOW_OPACITY,
        )
    layers.append(
        PhotoLayer(
            role="photo",
            box=(
                geometry.image_x,
                geometry.image_y,
                geometry.image_x + image_width,
                geometry.image_y + image_height,
            ),
            corner_radius=max(0.0, adjustments.corner_radius),
            shadow=shadow,
        )
    )

    fields = caption_fields(request)
    scene = None
    layout = request.template.layout
    if layout is LayoutMode.BRAND_TOP_EXIF_BOTTOM:
        layers.extend(_brand_top_layers(request, geometry, fields, assets, measurer))
    elif layout is LayoutMode.BRAND_BOTTOM_CENTERED:
        extra, scene = _brand_bottom_layers(request, geometry, fields, assets, measurer, thresholds)
        layers.extend(extra)
    else:
        extra, scene = _two_line_layers(request, geometry, fields, measurer, thresholds)
        layers.extend(extra)

    LOGGER.debug(
        "Composed %s: canvas=%s layers=%d scene=%s",
        request.template.name,
        geometry.canvas_size,
        len(layers),
        scene,
    )
    return Composition(geometry=geometry, layers=tuple(layers), scene=scene)
