from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable

from PIL import Image

LOGGER = logging.getLogger(__name__)


class AssetError(RuntimeError):
    """A logical asset path could not be found or decoded."""


class AssetResolver:
    """Look up brand-mark images by logical path (``marks/sony.png``) in a list of directories."""

    def __init__(self, search_dirs: Iterable[Path] = ()) -> None:
        self._search_dirs = tuple(Path(p).expanduser() for p in search_dirs)
        self._images: dict[str, Image.Image] = {}

    def locate(self, logical_path: str) -> Path:
        parts = PurePosixPath(str(logical_path).replace("\\", "/")).parts
        if not parts or ".." in parts:
            raise AssetError(f"invalid asset path: {logical_path!r}")
        for root in self._search_dirs:
            candidate = root.joinpath(*parts)
            if candidate.is_file():
                return candidate
        raise AssetError(f"asset not found: {logical_path}")

    def load(self, logical_path: str) -> Image.Image:
        """Fully decoded RGBA copy of the asset; decoded once per resolver."""
        cached = self._images.get(logical_path)
        if cached is None:
            path = self.locate(logical_path)
            try:
                with Image.open(path) as image:
                    cached = image.convert("RGBA")
            except Exception as exc:
                raise AssetError(f"asset could not be decoded: {logical_path} ({exc})") from exc
            if cached.width <= 0 or cached.height <= 0:
                raise AssetError(f"asset has no pixels: {logical_path}")
            self._images[logical_path] = cached
        return cached.copy()

    def size(self, logical_path: str) -> tuple[int, int]:
        cached = self._images.get(logical_path)
        if cached is None:
            self.load(logical_path)
            cached = self._images[logical_path]
        return cached.size
