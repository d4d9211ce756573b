from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from PIL import ExifTags, Image

from framestamp.models import RawMetadata, RawTag

LOGGER = logging.getLogger(__name__)

_EXIF_IFD_POINTER = 0x8769
_RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
_RDF_DESC_TAG = f"{{{_RDF_NS}}}Description"
_RDF_LI_TAG = f"{{{_RDF_NS}}}li"
_XMP_NS_TO_PREFIX = {
    "http://ns.adobe.com/exif/1.0/aux/": "aux",
    "http://cipa.jp/exif/1.0/": "exifEX",
    "http://ns.adobe.com/exif/1.0/": "exif",
    "http://ns.adobe.com/tiff/1.0/": "tiff",
    "http://ns.adobe.com/xap/1.0/": "xmp",
    "http://purl.org/dc/elements/1.1/": "dc",
    "http://ns.adobe.com/photoshop/1.0/": "photoshop",
    "http://ns.adobe.com/camera-raw-settings/1.0/": "crs",
}


def _split_xml_tag(tag: str) -> tuple[str, str]:
    if tag.startswith("{") and "}" in tag:
        uri, local = tag[1:].split("}", 1)
        return (uri, local)
    return ("", tag)


def _xmp_key(tag: str) -> str | None:
    namespace_uri, local = _split_xml_tag(tag)
    if not local or namespace_uri == _RDF_NS:
        return None
    prefix = _XMP_NS_TO_PREFIX.get(namespace_uri, "xmp")
    return f"{prefix}:{local}"


def _text_of(node: ET.Element) -> str | None:
    li_nodes = node.findall(f".//{_RDF_LI_TAG}")
    if li_nodes:
        values = [li.text.strip() for li in li_nodes if li.text and li.text.strip()]
        return values[0] if values else None
    if node.text and node.text.strip():
        return node.text.strip()
    return None


def parse_xmp_packet(payload: bytes | str) -> dict[str, str]:
    """Flatten rdf:Description attributes and children into ``prefix:Name`` keys."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="ignore")
    payload = payload.strip().strip("\x00")
    if not payload:
        return {}
    root = ET.fromstring(payload)
    parsed: dict[str, str] = {}
    for desc in root.iter(_RDF_DESC_TAG):
        for attr, value in desc.attrib.items():
            key = _xmp_key(attr)
            if key and value.strip():
                parsed.setdefault(key, value.strip())
        for child in list(desc):
            if not isinstance(child.tag, str):
                continue
            key = _xmp_key(child.tag)
            text = _text_of(child)
            if key and text:
                parsed.setdefault(key, text)
    return parsed


def _describe(value: Any) -> str | None:
    if isinstance(value, bytes):
        text = value.decode("utf-8", errors="ignore")
    elif isinstance(value, str):
        text = value
    else:
        return None
    text = text.replace("\x00", " ").strip()
    return text or None


def _exif_tags(image: Image.Image) -> list[RawTag]:
    exif = image.getexif()
    if not exif:
        return []
    tags: list[RawTag] = []
    for tag_id, value in exif.items():
        if tag_id == _EXIF_IFD_POINTER:
            continue
        name = ExifTags.TAGS.get(tag_id, str(tag_id))
        tags.append(RawTag(block="IFD0", name=name, value=value, description=_describe(value)))
    for tag_id, value in exif.get_ifd(_EXIF_IFD_POINTER).items():
        name = ExifTags.TAGS.get(tag_id, str(tag_id))
        tags.append(RawTag(block="ExifIFD", name=name, value=value, description=_describe(value)))
    return tags


def extract_pillow_metadata(path: Path) -> RawMetadata:
    metadata = RawMetadata()
    try:
        with Image.open(path) as image:
            metadata.tags.extend(_exif_tags(image))
            xmp_payload = image.info.get("xmp") or image.info.get("XML:com.adobe.xmp")
            if xmp_payload:
                try:
                    aux = parse_xmp_packet(xmp_payload)
                except ET.ParseError as exc:
                    LOGGER.debug("Embedded XMP could not be parsed for %s: %s", path, exc)
                    aux = {}
                if aux:
                    metadata.aux.append(aux)
    except Exception as exc:
        LOGGER.debug("Pillow metadata fallback failed for %s: %s", path, exc)
    return metadata
