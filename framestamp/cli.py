from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path

import typer
from PIL import Image

from framestamp.assets import AssetResolver
from framestamp.compose import build_request, compose
from framestamp.config import adaptation_thresholds, asset_dirs, load_config, write_default_config
from framestamp.constants import SUPPORTED_EXTENSIONS
from framestamp.decoders.image_decoder import decode_image
from framestamp.layers import Composition
from framestamp.layout import GeometryError
from framestamp.meta.normalize import choose_lens_name, lens_candidates, normalize_metadata, score_lens_candidate
from framestamp.meta.reader import read_metadata
from framestamp.models import FieldTexts, ShootingRecord, Template
from framestamp.naming import build_output_name
from framestamp.render.rasterize import rasterize
from framestamp.render.typography import PillowTextMeasurer
from framestamp.template_loader import load_catalog, resolve_template

app = typer.Typer(add_completion=False, no_args_is_help=True, help="FrameStamp photo frame CLI.")
LOGGER = logging.getLogger("framestamp")


@dataclass(slots=True)
class _Prepared:
    image: Image.Image
    record: ShootingRecord
    template: Template
    composition: Composition
    assets: AssetResolver
    font_path: Path | None


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> typer.Exit:
    typer.secho(message, err=True, fg=typer.colors.RED)
    return typer.Exit(1)


def _resolve_output_format(fmt: str) -> tuple[str, str]:
    f = fmt.lower()
    if f in {"jpeg", "jpg"}:
        return "jpg", "JPEG"
    if f == "png":
        return "png", "PNG"
    raise ValueError(f"output format must be jpeg/jpg or png, got: {fmt!r}")


def _save_image(image: Image.Image, path: Path, pil_format: str, quality: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if pil_format == "JPEG":
        image.save(path, format="JPEG", quality=max(1, min(100, quality)), optimize=True, progressive=True)
    else:
        image.save(path, format="PNG", optimize=True)


def _font_path(value: str | None) -> Path | None:
    return Path(value).expanduser() if value else None


def _prepare(
    file: Path,
    *,
    cfg: dict,
    template_arg: str | None,
    exiftool_mode: str,
    texts: FieldTexts,
    margin_priority: bool | None,
    smart: bool | None,
    numeric: dict[str, float | None],
) -> _Prepared:
    if file.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise _fail(f"unsupported image format: {file.suffix}")
    template_name = template_arg or str(cfg.get("template", "classic"))
    try:
        template = resolve_template(template_name)
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(f"Template load failed: {exc}")

    try:
        image = decode_image(file, decoder=str(cfg.get("decoder", "auto")))
    except (RuntimeError, ValueError, OSError) as exc:
        raise _fail(f"Image decode failed: {exc}")
    try:
        raw = read_metadata(file, mode=exiftool_mode)
    except (RuntimeError, ValueError) as exc:
        raise _fail(f"Metadata extraction failed: {exc}")
    record = normalize_metadata(raw)

    request = build_request(
        image,
        record,
        template,
        texts=texts,
        margin_priority=margin_priority,
        smart_adaptation=smart,
        **numeric,
    )
    assets = AssetResolver(asset_dirs(cfg))
    font_path = _font_path(cfg.get("font_path"))
    try:
        composition = compose(
            request,
            assets=assets,
            measurer=PillowTextMeasurer(font_path),
            thresholds=adaptation_thresholds(cfg),
        )
    except GeometryError as exc:
        raise _fail(f"Invalid frame geometry: {exc}")
    return _Prepared(
        image=image,
        record=record,
        template=template,
        composition=composition,
        assets=assets,
        font_path=font_path,
    )


@app.command()
def render(
    input_path: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    out: Path | None = typer.Option(None, "--out", help="Output directory (default: next to the input)."),
    template: str | None = typer.Option(None, "--template", help="Built-in template name, catalog index or .yaml file path."),
    scale: float | None = typer.Option(None, "--scale", help="Photo scale percentage when margins are derived."),
    margin_top: float | None = typer.Option(None, "--margin-top"),
    margin_bottom: float | None = typer.Option(None, "--margin-bottom"),
    margin_left: float | None = typer.Option(None, "--margin-left"),
    margin_right: float | None = typer.Option(None, "--margin-right"),
    corner_radius: float | None = typer.Option(None, "--corner-radius"),
    shadow_size: float | None = typer.Option(None, "--shadow"),
    text_spacing: float | None = typer.Option(None, "--spacing"),
    logo_offset: float | None = typer.Option(None, "--logo-offset"),
    margin_priority: bool | None = typer.Option(None, "--margin-priority/--no-margin-priority"),
    smart: bool | None = typer.Option(None, "--smart/--no-smart", help="Adapt caption colours to the photo."),
    make: str = typer.Option("", "--make"),
    model: str = typer.Option("", "--model"),
    lens: str = typer.Option("", "--lens"),
    focal: str = typer.Option("", "--focal"),
    aperture: str = typer.Option("", "--aperture"),
    shutter: str = typer.Option("", "--shutter"),
    iso: str = typer.Option("", "--iso"),
    output_format: str | None = typer.Option(None, "--format", help="Output format: jpeg|png"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    name_template: str | None = typer.Option(None, "--name", help='Output filename template, e.g. "Frame_{stem}.{ext}"'),
    use_exiftool: str | None = typer.Option(None, "--use-exiftool", help="auto|on|off"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    """Frame one photo with a template and save the result."""
    cfg = load_config()
    _setup_logging(log_level or str(cfg.get("log_level", "INFO")))

    fmt_str = output_format or str(cfg.get("output_format", "jpeg"))
    try:
        out_ext, pil_format = _resolve_output_format(fmt_str)
    except ValueError as exc:
        raise _fail(str(exc))
    quality_val = int(quality if quality is not None else cfg.get("quality", 92))
    name_tmpl = name_template or str(cfg.get("name_template", "Frame_{stem}.{ext}"))
    exiftool_mode = (use_exiftool or str(cfg.get("use_exiftool", "auto"))).lower()

    t0 = time.perf_counter()
    prepared = _prepare(
        input_path,
        cfg=cfg,
        template_arg=template,
        exiftool_mode=exiftool_mode,
        texts=FieldTexts(make, model, lens, focal, aperture, shutter, iso),
        margin_priority=margin_priority,
        smart=smart,
        numeric={
            "scale_pct": scale,
            "margin_top": margin_top,
            "margin_bottom": margin_bottom,
            "margin_left": margin_left,
            "margin_right": margin_right,
            "corner_radius": corner_radius,
            "shadow_size": shadow_size,
            "text_spacing": text_spacing,
            "logo_offset_y": logo_offset,
        },
    )
    try:
        output_name = build_output_name(
            name_tmpl,
            input_path,
            prepared.record,
            extension=out_ext,
            template_name=prepared.template.name,
        )
    except ValueError as exc:
        raise _fail(str(exc))
    output_file = (out or input_path.parent) / output_name

    framed = rasterize(
        prepared.composition,
        prepared.image,
        assets=prepared.assets,
        font_path=prepared.font_path,
    )
    _save_image(framed, output_file, pil_format=pil_format, quality=quality_val)
    LOGGER.info("OK   %s -> %s  (%.2fs)", input_path.name, output_file.name, time.perf_counter() - t0)
    typer.echo(str(output_file))


@app.command()
def layers(
    input_path: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    template: str | None = typer.Option(None, "--template", help="Built-in template name, catalog index or .yaml file path."),
    scale: float | None = typer.Option(None, "--scale"),
    margin_top: float | None = typer.Option(None, "--margin-top"),
    margin_bottom: float | None = typer.Option(None, "--margin-bottom"),
    margin_left: float | None = typer.Option(None, "--margin-left"),
    margin_right: float | None = typer.Option(None, "--margin-right"),
    corner_radius: float | None = typer.Option(None, "--corner-radius"),
    shadow_size: float | None = typer.Option(None, "--shadow"),
    text_spacing: float | None = typer.Option(None, "--spacing"),
    logo_offset: float | None = typer.Option(None, "--logo-offset"),
    margin_priority: bool | None = typer.Option(None, "--margin-priority/--no-margin-priority"),
    smart: bool | None = typer.Option(None, "--smart/--no-smart"),
    make: str = typer.Option("", "--make"),
    model: str = typer.Option("", "--model"),
    lens: str = typer.Option("", "--lens"),
    focal: str = typer.Option("", "--focal"),
    aperture: str = typer.Option("", "--aperture"),
    shutter: str = typer.Option("", "--shutter"),
    iso: str = typer.Option("", "--iso"),
    use_exiftool: str | None = typer.Option(None, "--use-exiftool", help="auto|on|off"),
) -> None:
    """Print the composed layer list as JSON without drawing it."""
    cfg = load_config()
    exiftool_mode = (use_exiftool or str(cfg.get("use_exiftool", "auto"))).lower()
    prepared = _prepare(
        input_path,
        cfg=cfg,
        template_arg=template,
        exiftool_mode=exiftool_mode,
        texts=FieldTexts(make, model, lens, focal, aperture, shutter, iso),
        margin_priority=margin_priority,
        smart=smart,
        numeric={
            "scale_pct": scale,
            "margin_top": margin_top,
            "margin_bottom": margin_bottom,
            "margin_left": margin_left,
            "margin_right": margin_right,
            "corner_radius": corner_radius,
            "shadow_size": shadow_size,
            "text_spacing": text_spacing,
            "logo_offset_y": logo_offset,
        },
    )
    payload = prepared.composition.to_dict()
    payload["template"] = prepared.template.name
    payload["record"] = prepared.record.to_dict()
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("inspect")
def inspect_file(
    file: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    use_exiftool: str = typer.Option("auto", "--use-exiftool", help="auto|on|off"),
    lens: bool = typer.Option(False, "--lens", help="Include scored lens candidates."),
    raw: bool = typer.Option(False, "--raw", help="Include raw metadata payload."),
) -> None:
    """Print the normalized shooting record of one photo as JSON."""
    try:
        raw_metadata = read_metadata(file, mode=use_exiftool.lower())
    except (RuntimeError, ValueError) as exc:
        raise _fail(f"Metadata extraction failed: {exc}")
    payload = normalize_metadata(raw_metadata).to_dict()
    if lens:
        candidates = lens_candidates(raw_metadata)
        payload["lens_candidates"] = [
            {"name": name, "text": text, "score": score_lens_candidate(text, name)}
            for text, name in candidates
        ]
        payload["lens_choice"] = choose_lens_name(candidates)
    if raw:
        payload["raw_metadata"] = raw_metadata.to_dict()
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("templates")
def list_templates() -> None:
    """List the built-in templates in catalog order."""
    for index, tpl in enumerate(load_catalog()):
        typer.echo(f"{index}\t{tpl.name}\t{tpl.layout.value}\t{tpl.title}")


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
