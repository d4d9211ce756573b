from __future__ import annotations

import platform
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from PIL import ImageFont


class TextMeasurer(Protocol):
    def measure(self, text: str, size: float, bold: bool = False) -> tuple[float, float]:
        """Return (advance width, line height) of ``text`` at ``size`` pixels."""
        ...


def _system_font_candidates(bold: bool) -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        if bold:
            return [Path(r"C:\Windows\Fonts\arialbd.ttf"), Path(r"C:\Windows\Fonts\bahnschrift.ttf")]
        return [Path(r"C:\Windows\Fonts\arial.ttf"), Path(r"C:\Windows\Fonts\bahnschrift.ttf")]
    if "darwin" in system:
        if bold:
            return [
                Path("/System/Library/Fonts/Supplemental/Arial Bold.ttf"),
                Path("/Library/Fonts/Arial Bold.ttf"),
                Path("/System/Library/Fonts/Helvetica.ttc"),
            ]
        return [
            Path("/System/Library/Fonts/Supplemental/Arial.ttf"),
            Path("/Library/Fonts/Arial.ttf"),
            Path("/System/Library/Fonts/Helvetica.ttc"),
        ]
    if bold:
        return [
            Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
            Path("/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
            Path("/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf"),
        ]
    return [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
    ]


@lru_cache(maxsize=64)
def load_font(font_path: Path | None, size: int, bold: bool = False) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    candidates: list[Path] = []
    if font_path:
        candidates.append(font_path)
    candidates.extend(_system_font_candidates(bold))
    for candidate in candidates:
        if candidate.exists():
            try:
                return ImageFont.truetype(str(candidate), size=size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


def font_pixel_size(size: float) -> int:
    return max(1, int(round(size)))


def line_height(font: ImageFont.ImageFont | ImageFont.FreeTypeFont) -> int:
    if isinstance(font, ImageFont.FreeTypeFont):
        ascent, descent = font.getmetrics()
        return max(1, ascent + descent)
    left, top, right, bottom = font.getbbox("Ag")
    return max(1, bottom - top)


class PillowTextMeasurer:
    """Measures text with the same fonts the rasterizer draws with."""

    def __init__(self, font_path: Path | None = None) -> None:
        self.font_path = font_path

    def measure(self, text: str, size: float, bold: bool = False) -> tuple[float, float]:
        font = load_font(self.font_path, font_pixel_size(size), bold)
        return float(font.getlength(text)), float(line_height(font))
