"""
Parsers for the Servicio de Hidrografía Naval RSS feeds.

- alerts feed: item descriptions passed through verbatim (HTML included)
- heights feed: free-text descriptions scanned for the San Fernando reading
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET

import structlog

from mareatigre.errors import NoDataFound, ParseFailure
from mareatigre.types import HeightReading
from mareatigre.utils import strip_tags

log = structlog.get_logger()

SAN_FERNANDO_RE = re.compile(r"San Fernando:\s*(\d+(?:,\d+)?)\s*m", re.IGNORECASE)
FECHA_HORA_RE = re.compile(r"FECHA y HORA:\s*([0-9/:\s]+)")


def _parse_xml(xml_text: str) -> ET.Element:
    try:
        return ET.fromstring(xml_text)
    except (ET.ParseError, ValueError) as exc:
        raise ParseFailure("No hay datos disponibles") from exc


def _descriptions(root: ET.Element) -> list[str]:
    out: list[str] = []
    for item in root.iter("item"):
        desc = item.find("description")
        if desc is None:
            continue
        out.append(desc.text or "")
    return out


def parse_alerts(xml_text: str | None, strict: bool = False) -> list[str]:
    """
    Return every item description in document order.

    The descriptions keep their markup; rendering is the client's job.
    An empty or unparseable document yields an empty list, or raises
    ParseFailure when `strict` is set so a cache never stores it.
    """
    try:
        if not xml_text:
            raise ParseFailure("No hay datos disponibles")
        root = _parse_xml(xml_text)
    except ParseFailure:
        log.warning("alerts_rss_unparseable")
        if strict:
            raise
        return []
    return _descriptions(root)


def parse_height(xml_text: str) -> HeightReading:
    """
    Find the San Fernando height and its observation time.

    Returns the first item whose description has both the
    "San Fernando: X,XX m" and "FECHA y HORA: ..." lines, with the height
    normalised to a dot decimal. Raises ParseFailure for malformed XML and
    NoDataFound when no item carries both.
    """
    root = _parse_xml(xml_text)
    for desc in _descriptions(root):
        text = strip_tags(desc)
        height_match = SAN_FERNANDO_RE.search(text)
        if height_match is None:
            continue
        time_match = FECHA_HORA_RE.search(text)
        if time_match is None:
            continue
        altura = height_match.group(1).replace(",", ".")
        hora = time_match.group(1).strip()
        return HeightReading(altura=altura, hora=hora)
    raise NoDataFound("No se encontraron datos de San Fernando")
