from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from PIL import Image, ImageColor, ImageOps, UnidentifiedImageError

from framestamp.constants import BACKGROUND_COLOR, HEIF_EXTENSIONS, RAW_EXTENSIONS, STANDARD_EXTENSIONS

LOGGER = logging.getLogger(__name__)

RAW_DECODERS = ("auto", "rawpy")

_HEIF_REGISTERED = False


class DecodeError(RuntimeError):
    """The source photo could not be turned into pixels."""


def _register_heif_opener() -> bool:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return True
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return False
    register_heif_opener()
    _HEIF_REGISTERED = True
    return True


def flatten_onto_background(image: Image.Image, color: str = BACKGROUND_COLOR) -> Image.Image:
    """RGB copy of ``image`` with any transparency composited over the frame colour.

    A plain ``convert("RGB")`` drops alpha and leaves transparent pixels black,
    which shows up as a dark patch inside a white border.
    """
    if image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info:
        rgba = image.convert("RGBA")
        base = Image.new("RGBA", rgba.size, ImageColor.getrgb(color)[:3] + (255,))
        return Image.alpha_composite(base, rgba).convert("RGB")
    return image.convert("RGB")


def _decode_pillow(path: Path, decoder: str) -> Image.Image:
    try:
        with Image.open(path) as image:
            upright = ImageOps.exif_transpose(image)
            return flatten_onto_background(upright)
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise DecodeError(f"{path.name}: {exc}") from exc


def _decode_heif(path: Path, decoder: str) -> Image.Image:
    if not _register_heif_opener():
        raise DecodeError("pillow-heif is required to decode HEIF/HEIC/HIF (`pip install framestamp[heif]`)")
    return _decode_pillow(path, decoder)


def _decode_raw(path: Path, decoder: str) -> Image.Image:
    if decoder not in RAW_DECODERS:
        raise ValueError(f"unknown RAW decoder: {decoder} (expected one of {', '.join(RAW_DECODERS)})")
    try:
        import rawpy
    except ImportError as exc:
        raise DecodeError("rawpy is required to decode RAW files (`pip install framestamp[raw]`)") from exc

    try:
        with rawpy.imread(str(path)) as raw:
            # Camera white balance keeps the frame's colours close to the in-camera JPEG.
            rgb = raw.postprocess(use_camera_wb=True, no_auto_bright=False, output_bps=8)
    except (rawpy.LibRawError, OSError) as exc:
        raise DecodeError(f"{path.name}: {exc}") from exc
    return Image.fromarray(rgb).convert("RGB")


_BACKENDS: tuple[tuple[frozenset[str], Callable[[Path, str], Image.Image]], ...] = (
    (frozenset(STANDARD_EXTENSIONS), _decode_pillow),
    (frozenset(HEIF_EXTENSIONS), _decode_heif),
    (frozenset(RAW_EXTENSIONS), _decode_raw),
)


def decode_image(path: Path, decoder: str = "auto") -> Image.Image:
    """Decode ``path`` to an upright RGB photo ready to be framed.

    EXIF orientation is applied and transparency is flattened onto the frame
    background. Raises :class:`DecodeError` for unreadable or unsupported
    files and ``ValueError`` for an unknown RAW ``decoder`` name.
    """
    ext = path.suffix.lower()
    for extensions, backend in _BACKENDS:
        if ext in extensions:
            LOGGER.debug("Decoding %s with %s", path, backend.__name__)
            return backend(path, decoder.lower())
    raise DecodeError(f"unsupported image format: {path.suffix or path.name}")
