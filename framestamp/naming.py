from __future__ import annotations

import re
from pathlib import Path

from framestamp.models import ShootingRecord

INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


def sanitize_token(value: str | None, fallback: str = "NA") -> str:
    text = (value or "").strip()
    if not text:
        text = fallback
    text = INVALID_FILENAME_CHARS.sub("_", text)
    text = re.sub(r"\s+", "_", text)
    text = text.strip(" ._")
    return text or fallback


def build_output_name(
    name_template: str,
    source: Path,
    record: ShootingRecord,
    extension: str,
    template_name: str = "",
) -> str:
    """Expand ``{stem} {date} {make} {model} {lens} {template} {ext}`` into a file name."""
    ext = extension.lower().lstrip(".")
    taken = record.date_taken.strftime("%Y%m%d_%H%M") if record.date_taken else "unknown_date"
    values = {
        "stem": sanitize_token(source.stem, fallback="image"),
        "date": sanitize_token(taken),
        "make": sanitize_token(record.make),
        "model": sanitize_token(record.model),
        "lens": sanitize_token(record.lens_model),
        "template": sanitize_token(template_name, fallback="frame"),
        "ext": ext,
    }
    try:
        rendered = name_template.format(**values)
    except KeyError as exc:
        missing = str(exc).strip("'")
        raise ValueError(f"name template contains unknown key: {missing}") from exc

    rendered = INVALID_FILENAME_CHARS.sub("_", rendered).strip(" .")
    if not rendered:
        rendered = f"Frame_{values['stem']}.{ext}"
    if not Path(rendered).suffix:
        rendered = f"{rendered}.{ext}"
    return rendered
