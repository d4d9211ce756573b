from __future__ import annotations

import logging
import re
from datetime import datetime
from fractions import Fraction
from typing import Any

from framestamp.models import RawMetadata, RawTag, ShootingRecord

LOGGER = logging.getLogger(__name__)

IFD0_BLOCKS = ("IFD0", "Exif IFD0")
EXIF_BLOCKS = ("ExifIFD", "Exif SubIFD", "Exif")

LENS_BRAND_TOKENS = (
    "FE",
    "GM",
    "OSS",
    "ZA",
    "NIKKOR",
    "RF",
    "EF",
    "L",
    "APO",
    "DG",
    "DN",
    "ART",
    "XCD",
    "HC",
    "HCD",
    "ZEISS",
    "TAMRON",
    "SIGMA",
    "SAMYANG",
    "VOIGT",
    "SUMMILUX",
    "SUMMICRON",
    "Noct",
    "G-Master",
    "G Master",
)
_BARE_LENS_SPEC = re.compile(r"^\s*\d{1,3}(\s*-\s*\d{1,3})?\s*mm\s+f/?\s*\d(\.\d+)?\s*$", re.IGNORECASE)
_LETTER_RUN = re.compile(r"[A-Za-z]{2,}")
_NUMBER = re.compile(r"[-+]?\d+(\.\d+)?")


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        for codec in ("utf-8", "utf-16le", "latin1"):
            try:
                decoded = value.decode(codec, errors="ignore")
                value = decoded
                break
            except Exception:
                continue
    if isinstance(value, (list, tuple)):
        text_items = [str(v).strip() for v in value if str(v).strip()]
        value = " ".join(text_items)
    text = str(value).replace("\x00", " ").strip()
    text = re.sub(r"\s+", " ", text)
    return text or None


def to_float(value: Any) -> float | None:
    """Convert an EXIF rational (IFDRational, Fraction, (num, den), "a/b", number) to float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, tuple) and len(value) == 2 and all(isinstance(v, (int, float)) for v in value):
        numerator, denominator = value
        if denominator == 0:
            return None
        return float(numerator) / float(denominator)
    if isinstance(value, (list, tuple)):
        return to_float(value[0]) if value else None
    if isinstance(value, (int, float, Fraction)):
        return float(value)
    numerator = getattr(value, "numerator", None)
    denominator = getattr(value, "denominator", None)
    if numerator is not None and denominator is not None:
        if denominator == 0:
            return None
        return float(numerator) / float(denominator)
    text = _clean_text(value)
    if not text:
        return None
    if re.fullmatch(r"[-+]?\d+(\.\d+)?\s*/\s*\d+(\.\d+)?", text):
        left, right = text.split("/", 1)
        denominator_value = float(right)
        if denominator_value == 0:
            return None
        return float(left) / denominator_value
    try:
        return float(text)
    except ValueError:
        return None


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return format(value, ".15g")


def format_aperture(value: float) -> str:
    return f"f/{value:.1f}"


def format_exposure(seconds: float) -> str:
    if 0 < seconds < 1:
        return f"1/{round(1.0 / seconds)}"
    text = f"{seconds:.5f}".rstrip("0").rstrip(".")
    return text or "0"


def format_focal_length(value: float) -> str:
    return f"{_format_number(value)}mm"


def _tag_text(tag: RawTag | None) -> str:
    if tag is None:
        return ""
    if tag.description is not None:
        return tag.description
    if isinstance(tag.value, (str, bytes)):
        return _clean_text(tag.value) or ""
    return ""


def _formatted(tag: RawTag | None, formatter) -> str:
    if tag is None:
        return ""
    numeric = to_float(tag.value)
    if numeric is not None:
        return formatter(numeric)
    return _tag_text(tag)


def _format_iso(tag: RawTag | None) -> str:
    if tag is None:
        return ""
    if tag.description:
        return tag.description
    numeric = to_float(tag.value)
    if numeric is not None:
        return str(int(round(numeric)))
    return _tag_text(tag)


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    text = _clean_text(value)
    if not text:
        return None
    normalized = text.replace("T", " ").strip()
    if "." in normalized:
        normalized = normalized.split(".", 1)[0]
    patterns = [
        "%Y:%m:%d %H:%M:%S%z",
        "%Y:%m:%d %H:%M:%S",
        "%Y-%m-%d %H:%M:%S%z",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
    ]
    for pattern in patterns:
        try:
            return datetime.strptime(normalized, pattern)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def score_lens_candidate(text: str, name: str) -> int:
    lowered_name = name.lower()
    score = 0
    if lowered_name == "lens":
        score += 5
    if lowered_name in {"lens model", "lensmodel"}:
        score += 4
    if "aux:lens" in lowered_name:
        score += 6
    if "exifex:lensmodel" in lowered_name:
        score += 5
    if "lenstype" in lowered_name or "lens type" in lowered_name:
        score += 2
    if "specification" in lowered_name or "spec" in lowered_name:
        score -= 4
    if _BARE_LENS_SPEC.match(text):
        score -= 3
    lowered_text = text.lower()
    if any(token.lower() in lowered_text for token in LENS_BRAND_TOKENS):
        score += 3
    if _LETTER_RUN.search(text):
        score += 1
    return score


def lens_candidates(raw: RawMetadata) -> list[tuple[str, str]]:
    """Every (text, source name) pair that could carry the lens name, in discovery order."""
    candidates: list[tuple[str, str]] = []
    direct = _tag_text(raw.find(["LensModel"], blocks=EXIF_BLOCKS))
    if direct.strip():
        candidates.append((direct, "Lens Model"))
    for tag in raw.tags:
        if "lens" not in tag.name.lower():
            continue
        text = _tag_text(tag) or (_clean_text(tag.value) or "")
        if text.strip():
            candidates.append((text, tag.name))
    for aux in raw.aux:
        for key, value in aux.items():
            if not value or not str(value).strip():
                continue
            if "lens" in key.lower():
                candidates.append((str(value), key))
    return candidates


def choose_lens_name(candidates: list[tuple[str, str]]) -> str:
    best = ""
    best_score: int | None = None
    for text, name in candidates:
        score = score_lens_candidate(text, name)
        if best_score is None or score > best_score:
            best_score = score
            best = text
    return best


def _build_record(raw: RawMetadata) -> ShootingRecord:
    make = _tag_text(raw.find(["Make"], blocks=IFD0_BLOCKS) or raw.find(["Make"]))
    model = _tag_text(raw.find(["Model"], blocks=IFD0_BLOCKS) or raw.find(["Model"]))

    f_number = _formatted(raw.find(["FNumber"], blocks=EXIF_BLOCKS) or raw.find(["FNumber"]), format_aperture)
    exposure = _formatted(
        raw.find(["ExposureTime"], blocks=EXIF_BLOCKS) or raw.find(["ExposureTime"]),
        format_exposure,
    )
    focal = _formatted(
        raw.find(["FocalLength"], blocks=EXIF_BLOCKS) or raw.find(["FocalLength"]),
        format_focal_length,
    )
    iso = _format_iso(
        raw.find(["ISO", "ISOSpeedRatings", "PhotographicSensitivity"], blocks=EXIF_BLOCKS)
        or raw.find(["ISO", "ISOSpeedRatings", "PhotographicSensitivity"])
    )
    date_tag = raw.find(["DateTimeOriginal"], blocks=EXIF_BLOCKS) or raw.find(["DateTimeOriginal"])
    date_taken = _parse_datetime(date_tag.value if date_tag else None)

    lens = choose_lens_name(lens_candidates(raw))

    return ShootingRecord(
        make=(make or "").strip(),
        model=(model or "").strip(),
        lens_model=lens.strip(),
        focal_length=focal,
        f_number=f_number,
        exposure_time=exposure,
        iso_speed=iso,
        date_taken=date_taken,
    )


def normalize_metadata(raw: RawMetadata | None) -> ShootingRecord:
    """Build the canonical record; unreadable metadata yields an empty record."""
    if raw is None:
        return ShootingRecord()
    try:
        return _build_record(raw)
    except Exception as exc:
        LOGGER.warning("Metadata normalization failed, using empty record: %s", exc)
        return ShootingRecord()
