from __future__ import annotations

import logging
import math
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont

from framestamp.assets import AssetError, AssetResolver
from framestamp.layers import (
    Box,
    Composition,
    DropShadow,
    FillLayer,
    MarkLayer,
    PanelLayer,
    PhotoLayer,
    TextLayer,
)
from framestamp.render.typography import font_pixel_size, load_font

LOGGER = logging.getLogger(__name__)

_MASK_SUPERSAMPLE = 4


def _rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    red, green, blue = ImageColor.getrgb(color)[:3]
    alpha = int(round(max(0.0, min(1.0, opacity)) * 255))
    return (red, green, blue, alpha)


def _int_box(box: Box) -> tuple[int, int, int, int]:
    left, top, right, bottom = box
    return (int(round(left)), int(round(top)), int(round(right)), int(round(bottom)))


def rounded_mask(size: tuple[int, int], radius: float) -> Image.Image:
    """Antialiased rounded-rectangle alpha mask drawn at 4x and downsampled."""
    width, height = size
    if radius <= 0:
        return Image.new("L", size, 255)
    radius = min(radius, width / 2, height / 2)
    big = Image.new("L", (width * _MASK_SUPERSAMPLE, height * _MASK_SUPERSAMPLE), 0)
    ImageDraw.Draw(big).rounded_rectangle(
        (0, 0, big.width - 1, big.height - 1),
        radius=int(round(radius * _MASK_SUPERSAMPLE)),
        fill=255,
    )
    return big.resize(size, Image.Resampling.LANCZOS)


def shadow_offset(shadow: DropShadow) -> tuple[float, float]:
    # Angles run counter-clockwise from +x; canvas y grows downwards.
    radians = math.radians(shadow.direction_deg)
    return (shadow.depth * math.cos(radians), -shadow.depth * math.sin(radians))


def _draw_fill(canvas: Image.Image, layer: FillLayer) -> None:
    ImageDraw.Draw(canvas).rectangle(_int_box(layer.box), fill=_rgba(layer.color))


def _blur_pad(radius: float) -> int:
    # Gaussian blur reaches about three radii out.
    return int(math.ceil(radius * 3)) + 1 if radius > 0 else 0


def _draw_shadow(canvas: Image.Image, mask: Image.Image, origin: tuple[int, int], shadow: DropShadow) -> None:
    pad = _blur_pad(shadow.blur_radius) or 1
    alpha = mask.point(lambda value: int(value * max(0.0, min(1.0, shadow.opacity))))
    shape = Image.new("L", (mask.width + pad * 2, mask.height + pad * 2), 0)
    shape.paste(alpha, (pad, pad))
    if shadow.blur_radius > 0:
        shape = shape.filter(ImageFilter.GaussianBlur(shadow.blur_radius))
    overlay = Image.new("RGBA", shape.size, _rgba(shadow.color))
    overlay.putalpha(shape)
    dx, dy = shadow_offset(shadow)
    _paste_clipped(
        canvas,
        overlay,
        (int(round(origin[0] + dx)) - pad, int(round(origin[1] + dy)) - pad),
    )


def _paste_clipped(canvas: Image.Image, overlay: Image.Image, dest: tuple[int, int]) -> None:
    # alpha_composite rejects negative destinations, so crop the overlay instead.
    x, y = dest
    left = max(0, -x)
    top = max(0, -y)
    if left >= overlay.width or top >= overlay.height:
        return
    if left or top:
        overlay = overlay.crop((left, top, overlay.width, overlay.height))
    canvas.alpha_composite(overlay, (max(0, x), max(0, y)))


def _draw_photo(canvas: Image.Image, layer: PhotoLayer, photo: Image.Image) -> None:
    left, top, _, _ = _int_box(layer.box)
    rgba = photo.convert("RGBA")
    mask = rounded_mask(rgba.size, layer.corner_radius)
    if layer.shadow is not None:
        _draw_shadow(canvas, mask, (left, top), layer.shadow)
    if layer.corner_radius > 0:
        photo_alpha = rgba.getchannel("A")
        rgba.putalpha(Image.composite(photo_alpha, Image.new("L", rgba.size, 0), mask))
    _paste_clipped(canvas, rgba, (left, top))


def _draw_mark(canvas: Image.Image, layer: MarkLayer, assets: AssetResolver) -> None:
    left, top, right, bottom = _int_box(layer.box)
    width, height = max(1, right - left), max(1, bottom - top)
    try:
        mark = assets.load(layer.asset)
    except AssetError as exc:
        LOGGER.warning("Skipping brand mark: %s", exc)
        return
    mark = mark.resize((width, height), Image.Resampling.LANCZOS)
    _paste_clipped(canvas, mark, (left, top))


def _draw_panel(canvas: Image.Image, layer: PanelLayer) -> None:
    left, top, right, bottom = _int_box(layer.box)
    if right <= left or bottom <= top:
        return
    pad = _blur_pad(layer.blur_radius)
    overlay = Image.new("RGBA", (right - left + 2 * pad, bottom - top + 2 * pad), (0, 0, 0, 0))
    ImageDraw.Draw(overlay).rounded_rectangle(
        (pad, pad, pad + right - left, pad + bottom - top),
        radius=int(round(layer.corner_radius)),
        fill=_rgba(layer.color, layer.opacity),
    )
    if layer.blur_radius > 0:
        overlay = overlay.filter(ImageFilter.GaussianBlur(layer.blur_radius))
    _paste_clipped(canvas, overlay, (left - pad, top - pad))


def _draw_glow(
    canvas: Image.Image,
    layer: TextLayer,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    anchor: str | None,
) -> None:
    glow = layer.glow
    pad = _blur_pad(glow.blur_radius)
    left, top, right, bottom = ImageDraw.Draw(canvas).textbbox((layer.x, layer.y), layer.text, font=font, anchor=anchor)
    origin_x = int(math.floor(left)) - pad
    origin_y = int(math.floor(top)) - pad
    width = int(math.ceil(right)) - origin_x + pad
    height = int(math.ceil(bottom)) - origin_y + pad
    if width <= 0 or height <= 0:
        return
    overlay = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(overlay).text(
        (layer.x - origin_x, layer.y - origin_y),
        layer.text,
        font=font,
        fill=_rgba(glow.color, glow.opacity),
        anchor=anchor,
    )
    if glow.blur_radius > 0:
        overlay = overlay.filter(ImageFilter.GaussianBlur(glow.blur_radius))
    _paste_clipped(canvas, overlay, (origin_x, origin_y))


def _draw_text(canvas: Image.Image, layer: TextLayer, font_path: Path | None) -> None:
    if not layer.text:
        return
    font = load_font(font_path, font_pixel_size(layer.font_size), layer.bold)
    # Bitmap fonts reject anchors; their origin is already the top-left.
    anchor = "la" if isinstance(font, ImageFont.FreeTypeFont) else None
    if layer.glow is not None:
        _draw_glow(canvas, layer, font, anchor)
    ImageDraw.Draw(canvas).text((layer.x, layer.y), layer.text, font=font, fill=_rgba(layer.color), anchor=anchor)


def rasterize(
    composition: Composition,
    photo: Image.Image,
    *,
    assets: AssetResolver | None = None,
    font_path: Path | None = None,
) -> Image.Image:
    """Draw ``composition`` onto a new RGB image of its canvas size."""
    assets = assets or AssetResolver()
    canvas = Image.new("RGBA", composition.canvas_size, (255, 255, 255, 255))
    for layer in composition.layers:
        if isinstance(layer, FillLayer):
            _draw_fill(canvas, layer)
        elif isinstance(layer, PhotoLayer):
            _draw_photo(canvas, layer, photo)
        elif isinstance(layer, MarkLayer):
            _draw_mark(canvas, layer, assets)
        elif isinstance(layer, PanelLayer):
            _draw_panel(canvas, layer)
        elif isinstance(layer, TextLayer):
            _draw_text(canvas, layer, font_path)
    return canvas.convert("RGB")
