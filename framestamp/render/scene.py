from __future__ import annotations

import logging
import math

from PIL import Image

from framestamp import constants
from framestamp.models import SceneStats

LOGGER = logging.getLogger(__name__)

Region = tuple[float, float, float, float]


def bottom_band(image: Image.Image, fraction: float = constants.SCENE_BAND_FRACTION) -> Region:
    width, height = image.size
    return (0.0, height * (1.0 - fraction), float(width), height * fraction)


def _clip_region(size: tuple[int, int], region: Region) -> tuple[int, int, int, int]:
    width, height = size
    x, y, w, h = region
    left = int(max(0.0, x))
    top = int(max(0.0, y))
    right = int(min(float(width), x + w))
    bottom = int(min(float(height), y + h))
    return left, top, right, bottom


def analyze_region(image: Image.Image, region: Region) -> SceneStats:
    """Average luma (0..1) and variance of every 4th pixel in ``region``.

    The region is ``(x, y, width, height)`` and may reach past the image; it is
    clipped first. An empty intersection gives ``(0, 0)``, any failure the
    neutral ``(0.5, 0)``.
    """
    try:
        left, top, right, bottom = _clip_region(image.size, region)
        if right - left <= 0 or bottom - top <= 0:
            return SceneStats(avg_luma=0.0, variance=0.0)
        gray = image.crop((left, top, right, bottom)).convert("L")
        samples = gray.tobytes()[:: constants.SCENE_SAMPLE_STRIDE]
        count = len(samples)
        if count == 0:
            return SceneStats(avg_luma=0.0, variance=0.0)
        total = sum(samples)
        total_sq = sum(value * value for value in samples)
        mean = total / count
        variance = (total_sq / count) - (mean * mean)
        if not math.isfinite(mean) or not math.isfinite(variance):
            raise ValueError("non-finite luma statistics")
        return SceneStats(avg_luma=mean / 255.0, variance=max(0.0, variance))
    except Exception as exc:
        LOGGER.debug("Scene sampling failed, using neutral stats: %s", exc)
        return SceneStats.fallback()
