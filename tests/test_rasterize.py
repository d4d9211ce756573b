from pathlib import Path

import pytest
from PIL import Image

from framestamp.assets import AssetResolver
from framestamp.compose import build_request, compose
from framestamp.layers import Composition, DropShadow, FillLayer, Glow, MarkLayer, PanelLayer, PhotoLayer, TextLayer
from framestamp.models import LayoutMode, ResolvedGeometry, ShootingRecord, Template
from framestamp.render.rasterize import rasterize, rounded_mask, shadow_offset


def _geometry(width: int, height: int, margin: float) -> ResolvedGeometry:
    return ResolvedGeometry(
        image_width=width,
        image_height=height,
        margin_top=margin,
        margin_bottom=margin,
        margin_left=margin,
        margin_right=margin,
        border_width=width + 2 * margin,
        border_height=height + 2 * margin,
    )


def _photo_only(photo: Image.Image, margin: float, corner: float = 0.0, shadow: DropShadow | None = None) -> Composition:
    geometry = _geometry(photo.width, photo.height, margin)
    return Composition(
        geometry=geometry,
        layers=(
            FillLayer(role="background", box=(0.0, 0.0, geometry.border_width, geometry.border_height), color="#FFFFFF"),
            PhotoLayer(
                role="photo",
                box=(margin, margin, margin + photo.width, margin + photo.height),
                corner_radius=corner,
                shadow=shadow,
            ),
        ),
    )


def test_photo_is_placed_on_white_canvas() -> None:
    photo = Image.new("RGB", (40, 30), (255, 0, 0))
    framed = rasterize(_photo_only(photo, 10), photo)
    assert framed.mode == "RGB"
    assert framed.size == (60, 50)
    assert framed.getpixel((0, 0)) == (255, 255, 255)
    assert framed.getpixel((30, 25)) == (255, 0, 0)
    assert framed.getpixel((10, 10)) == (255, 0, 0)


def test_rounded_corners_show_background() -> None:
    photo = Image.new("RGB", (40, 40), (0, 0, 255))
    framed = rasterize(_photo_only(photo, 10, corner=12), photo)
    assert framed.getpixel((10, 10)) == (255, 255, 255)
    assert framed.getpixel((30, 30)) == (0, 0, 255)


def test_rounded_mask_extremes() -> None:
    assert rounded_mask((10, 10), 0).getextrema() == (255, 255)
    mask = rounded_mask((40, 20), 100)
    assert mask.getpixel((0, 0)) == 0
    assert mask.getpixel((20, 10)) == 255


def test_shadow_falls_down_and_right() -> None:
    shadow = DropShadow(color="#000000", direction_deg=315, depth=10, blur_radius=2, opacity=0.4)
    dx, dy = shadow_offset(shadow)
    assert dx == pytest.approx(7.0710678)
    assert dy == pytest.approx(7.0710678)

    photo = Image.new("RGB", (40, 40), (0, 255, 0))
    framed = rasterize(_photo_only(photo, 20, shadow=shadow), photo)
    below_right = framed.getpixel((62, 62))
    above_left = framed.getpixel((17, 17))
    assert below_right[0] < 255
    assert above_left == (255, 255, 255)


def test_missing_mark_is_skipped(tmp_path: Path) -> None:
    photo = Image.new("RGB", (20, 20), (0, 0, 0))
    base = _photo_only(photo, 10)
    composition = Composition(
        geometry=base.geometry,
        layers=base.layers + (MarkLayer(role="brand", box=(0.0, 0.0, 10.0, 5.0), asset="marks/none.png"),),
    )
    framed = rasterize(composition, photo, assets=AssetResolver([tmp_path]))
    assert framed.getpixel((2, 2)) == (255, 255, 255)


def test_mark_is_drawn(tmp_path: Path) -> None:
    (tmp_path / "marks").mkdir()
    Image.new("RGBA", (10, 10), (0, 0, 255, 255)).save(tmp_path / "marks" / "sony.png")
    photo = Image.new("RGB", (20, 20), (0, 0, 0))
    base = _photo_only(photo, 10)
    composition = Composition(
        geometry=base.geometry,
        layers=base.layers + (MarkLayer(role="brand", box=(0.0, 0.0, 8.0, 8.0), asset="marks/sony.png"),),
    )
    framed = rasterize(composition, photo, assets=AssetResolver([tmp_path]))
    assert framed.getpixel((4, 4)) == (0, 0, 255)


def test_full_render_of_every_layout(tmp_path: Path) -> None:
    record = ShootingRecord(make="SONY", model="ILCE-7RM5", focal_length="35mm", f_number="f/2.8", iso_speed="100")
    photo = Image.new("RGB", (300, 200), (30, 30, 30))
    for layout in LayoutMode:
        template = Template(
            name=layout.value,
            layout=layout,
            margin_priority=True,
            margin_top=30,
            margin_bottom=60,
            margin_left=20,
            margin_right=20,
            corner_radius=8,
            shadow_size=6,
            smart_adaptation=True,
        )
        composition = compose(build_request(photo, record, template), assets=AssetResolver([tmp_path]))
        framed = rasterize(composition, photo, assets=AssetResolver([tmp_path]))
        assert framed.size == composition.canvas_size == (340, 290)


def _on_white(width: int, height: int, *layers) -> Composition:
    geometry = _geometry(width, height, 0)
    background = FillLayer(role="background", box=(0.0, 0.0, float(width), float(height)), color="#FFFFFF")
    return Composition(geometry=geometry, layers=(background,) + layers)


def test_panel_is_drawn_inside_its_box() -> None:
    panel = PanelLayer(role="panel", box=(5.0, 5.0, 35.0, 25.0), color="#000000", opacity=1.0, corner_radius=0, blur_radius=0)
    framed = rasterize(_on_white(40, 30, panel), Image.new("RGB", (40, 30)))
    assert framed.getpixel((20, 15)) == (0, 0, 0)
    assert framed.getpixel((2, 2)) == (255, 255, 255)


def test_blurred_panel_past_the_edge_is_clipped() -> None:
    panel = PanelLayer(role="panel", box=(60.0, 40.0, 120.0, 90.0), color="#000000", opacity=0.3, corner_radius=10, blur_radius=20)
    framed = rasterize(_on_white(80, 60, panel), Image.new("RGB", (80, 60)))
    assert framed.size == (80, 60)
    assert framed.getpixel((79, 59))[0] < 255
    assert framed.getpixel((0, 0)) == (255, 255, 255)


def test_glow_spreads_around_text() -> None:
    text = TextLayer(
        role="caption",
        x=20.0,
        y=20.0,
        text="HI",
        font_size=24,
        color="#FFFFFF",
        glow=Glow(color="#000000", blur_radius=3, opacity=1.0),
    )
    framed = rasterize(_on_white(120, 80, text), Image.new("RGB", (120, 80)))
    darkest = min(framed.crop((10, 10, 80, 60)).convert("L").getdata())
    assert darkest < 255
    assert framed.getpixel((119, 79)) == (255, 255, 255)
