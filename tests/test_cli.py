import copy
import json
from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from framestamp import cli, config

runner = CliRunner()


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cli, "load_config", lambda: copy.deepcopy(config.DEFAULT_CONFIG))
    monkeypatch.setattr(config, "get_config_path", lambda: tmp_path / "Config" / "config.yaml")


def _photo(tmp_path: Path, name: str = "shot.jpg") -> Path:
    exif = Image.Exif()
    exif[0x010F] = "SONY"
    exif[0x0110] = "ILCE-7RM5"
    path = tmp_path / name
    Image.new("RGB", (200, 100), (90, 120, 150)).save(path, exif=exif.tobytes())
    return path


def test_render_writes_framed_image(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    out_dir = tmp_path / "out"
    result = runner.invoke(
        cli.app,
        ["render", str(source), "--out", str(out_dir), "--template", "classic", "--use-exiftool", "off"],
    )
    assert result.exit_code == 0, result.output
    output = out_dir / "Frame_shot.jpg"
    assert output.exists()
    with Image.open(output) as framed:
        assert framed.size == (211, 111)


def test_render_png_with_overrides(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    result = runner.invoke(
        cli.app,
        [
            "render",
            str(source),
            "--template",
            "two_line_compact",
            "--margin-bottom",
            "80",
            "--make",
            "Leica",
            "--format",
            "png",
            "--name",
            "{template}_{stem}.{ext}",
            "--use-exiftool",
            "off",
        ],
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "two_line_compact_shot.png").exists()


def test_layers_prints_composition(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    result = runner.invoke(
        cli.app,
        ["layers", str(source), "--template", "classic", "--use-exiftool", "off", "--shadow", "10"],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["template"] == "classic"
    assert payload["record"]["make"] == "SONY"
    assert [layer["kind"] for layer in payload["layers"][:2]] == ["fill", "photo"]
    assert payload["layers"][1]["shadow"]["blur_radius"] == 10
    brand = "".join(layer["text"] for layer in payload["layers"] if layer["role"] == "brand")
    assert brand == "SONY"


def test_invalid_geometry_exits_with_error(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    result = runner.invoke(
        cli.app,
        ["layers", str(source), "--use-exiftool", "off", "--margin-priority", "--margin-top=-5"],
    )
    assert result.exit_code == 1
    assert "Invalid frame geometry" in result.output


def test_unknown_template_exits_with_error(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    result = runner.invoke(cli.app, ["layers", str(source), "--template", "nope", "--use-exiftool", "off"])
    assert result.exit_code == 1
    assert "Template load failed" in result.output


def test_inspect_reports_lens_candidates(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    result = runner.invoke(cli.app, ["inspect", str(source), "--use-exiftool", "off", "--lens", "--raw"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["make"] == "SONY"
    assert payload["model"] == "ILCE-7RM5"
    assert payload["lens_candidates"] == []
    assert payload["lens_choice"] == ""
    assert any(tag["name"] == "Make" for tag in payload["raw_metadata"]["tags"])


def test_templates_lists_catalog() -> None:
    result = runner.invoke(cli.app, ["templates"])
    assert result.exit_code == 0
    first_line = result.stdout.splitlines()[0]
    assert first_line.startswith("0\tclassic\tbrand_top_exif_bottom")


def test_init_config_writes_file(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["init-config"])
    assert result.exit_code == 0
    assert (tmp_path / "Config" / "config.yaml").exists()


def test_template_can_be_picked_by_catalog_index(tmp_path: Path) -> None:
    source = _photo(tmp_path)
    result = runner.invoke(cli.app, ["layers", str(source), "--template", "3", "--use-exiftool", "off"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["template"] == "two_line"
