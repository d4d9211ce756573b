from pathlib import Path

import pytest
from PIL import Image

from framestamp.decoders.image_decoder import DecodeError, decode_image, flatten_onto_background


def test_exif_orientation_is_applied(tmp_path: Path) -> None:
    exif = Image.Exif()
    exif[0x0112] = 6
    path = tmp_path / "portrait.jpg"
    Image.new("RGB", (40, 20), (200, 10, 10)).save(path, exif=exif.tobytes())
    photo = decode_image(path)
    assert photo.mode == "RGB"
    assert photo.size == (20, 40)


def test_transparency_is_flattened_onto_white(tmp_path: Path) -> None:
    image = Image.new("RGBA", (10, 10), (255, 0, 0, 0))
    image.putpixel((5, 5), (255, 0, 0, 255))
    path = tmp_path / "cutout.png"
    image.save(path)
    photo = decode_image(path)
    assert photo.mode == "RGB"
    assert photo.getpixel((0, 0)) == (255, 255, 255)
    assert photo.getpixel((5, 5)) == (255, 0, 0)


def test_flatten_keeps_opaque_images() -> None:
    image = Image.new("L", (4, 4), 30)
    assert flatten_onto_background(image).getpixel((1, 1)) == (30, 30, 30)
    assert flatten_onto_background(Image.new("LA", (4, 4), (0, 0)), "#000000").getpixel((0, 0)) == (0, 0, 0)


def test_corrupt_file_raises_decode_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"definitely not a jpeg")
    with pytest.raises(DecodeError, match="broken.jpg"):
        decode_image(path)


def test_unsupported_extension(tmp_path: Path) -> None:
    with pytest.raises(DecodeError, match="unsupported"):
        decode_image(tmp_path / "clip.mov")


def test_unknown_raw_decoder_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="darktable"):
        decode_image(tmp_path / "shot.arw", decoder="darktable")
