import pytest
from PIL import Image, ImageDraw

from framestamp.models import SceneStats
from framestamp.render.scene import analyze_region, bottom_band


def _striped(size: tuple[int, int]) -> Image.Image:
    image = Image.new("RGB", size, (0, 0, 0))
    draw = ImageDraw.Draw(image)
    for y in range(1, size[1], 2):
        draw.line([(0, y), (size[0] - 1, y)], fill=(255, 255, 255))
    return image


def test_uniform_region_has_zero_variance() -> None:
    image = Image.new("RGB", (64, 64), (128, 128, 128))
    stats = analyze_region(image, (0, 0, 64, 64))
    assert abs(stats.avg_luma - 128 / 255) < 1e-9
    assert stats.variance == 0.0


def test_region_outside_image_is_empty() -> None:
    image = Image.new("RGB", (64, 64), (255, 255, 255))
    assert analyze_region(image, (100, 100, 20, 20)) == SceneStats(0.0, 0.0)
    assert analyze_region(image, (0, 0, 0, 10)) == SceneStats(0.0, 0.0)


def test_region_is_clipped_to_image() -> None:
    image = Image.new("RGB", (64, 64), (0, 0, 0))
    image.paste((255, 255, 255), (0, 32, 64, 64))
    stats = analyze_region(image, (-50, 32, 500, 500))
    assert stats.avg_luma == 1.0
    assert stats.variance == 0.0


def test_stripes_have_high_variance() -> None:
    image = _striped((200, 200))
    stats = analyze_region(image, bottom_band(image))
    assert abs(stats.avg_luma - 0.5) < 0.05
    assert stats.variance > 2000


def test_bottom_band_covers_last_fifteen_percent() -> None:
    image = Image.new("RGB", (300, 200))
    assert bottom_band(image) == pytest.approx((0.0, 170.0, 300.0, 30.0))


def test_analysis_failure_returns_neutral_stats() -> None:
    class Broken:
        size = (10, 10)

        def crop(self, box):
            raise OSError("truncated")

    assert analyze_region(Broken(), (0, 0, 10, 10)) == SceneStats.fallback()
    assert SceneStats.fallback() == SceneStats(0.5, 0.0)


def test_analysis_does_not_modify_image() -> None:
    image = _striped((40, 40))
    before = image.tobytes()
    analyze_region(image, (0, 0, 40, 40))
    assert image.tobytes() == before
