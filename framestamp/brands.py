from __future__ import annotations

from enum import Enum

from framestamp.constants import FALLBACK_BRAND_TEXT
from framestamp.models import MarkAssets


class RecognizedBrand(str, Enum):
    HASSELBLAD = "HASSELBLAD"
    SONY = "SONY"
    NIKON = "NIKON"
    CANON = "CANON"
    FUJIFILM = "FUJIFILM"
    LEICA = "LEICA"


# Trial order matters: the first substring found in the make wins.
_MAKE_MATCHERS: tuple[tuple[str, RecognizedBrand], ...] = (
    ("HASSELBLAD", RecognizedBrand.HASSELBLAD),
    ("SONY", RecognizedBrand.SONY),
    ("NIKON", RecognizedBrand.NIKON),
    ("CANON", RecognizedBrand.CANON),
    ("FUJI", RecognizedBrand.FUJIFILM),
    ("LEICA", RecognizedBrand.LEICA),
)

BRAND_MARKS: dict[RecognizedBrand, MarkAssets] = {
    RecognizedBrand.HASSELBLAD: MarkAssets(dark="marks/hasselblad.png", light="marks/hasselblad_white.png"),
    RecognizedBrand.SONY: MarkAssets(dark="marks/sony.png", light="marks/sony_white.png"),
    RecognizedBrand.NIKON: MarkAssets(dark="marks/nikon.png", light="marks/nikon_white.png"),
    RecognizedBrand.CANON: MarkAssets(dark="marks/canon.png", light="marks/canon_white.png"),
    RecognizedBrand.FUJIFILM: MarkAssets(dark="marks/fujifilm.png", light="marks/fujifilm_white.png"),
    RecognizedBrand.LEICA: MarkAssets(dark="marks/leica.png", light="marks/leica_white.png"),
}


def recognize_brand(make: str | None) -> RecognizedBrand | None:
    upper = (make or "").upper()
    for needle, brand in _MAKE_MATCHERS:
        if needle in upper:
            return brand
    return None


def brand_display_name(make: str | None) -> str:
    brand = recognize_brand(make)
    if brand is not None:
        return brand.value
    text = (make or "").strip().upper()
    return text or FALLBACK_BRAND_TEXT


def brand_marks(make: str | None) -> MarkAssets | None:
    brand = recognize_brand(make)
    if brand is None:
        return None
    return BRAND_MARKS[brand]
