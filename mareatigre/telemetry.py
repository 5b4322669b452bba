"""
Parser for the Comisión Río de la Plata telemetry endpoint (Pilote Norden).

The endpoint answers with a preamble, the literal token `JSON**`, then a JSON
object whose `tide.latest` and `wind.latest` fields hold URL-encoded HTML
tables. The last row of each table is the most recent sample.

Telemetry is unreliable by nature: a missing table, row or cell degrades that
field to its "unavailable" default instead of raising.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any
from urllib.parse import unquote_plus

from bs4 import BeautifulSoup

from mareatigre.constants import (
    COMPASS_POINTS,
    KNOTS_TO_KMH,
    NOT_AVAILABLE,
    SECURITY_BLOCK_MARKERS,
    TELEMETRY_DELIMITER,
)
from mareatigre.errors import ParseFailure, SecurityBlocked, UnexpectedFormat
from mareatigre.types import TideReading, WindReading
from mareatigre.utils import fmt_meters, is_numeric, parse_local_datetime

_DECIMAL_RE = re.compile(r"\d+(?:\.\d+)?")


def _tide_default() -> TideReading:
    return TideReading(
        datetime=None,
        datetime_raw=None,
        height=None,
        height_formatted=NOT_AVAILABLE,
    )


def _wind_default() -> WindReading:
    return WindReading(
        speed_knots=None,
        speed_kmh=None,
        speed_formatted=NOT_AVAILABLE,
        direction_deg=None,
        direction_compass=None,
        direction_formatted="-",
    )


def _fmt_number(value: float) -> str:
    """5.0 -> '5', 5.5 -> '5.5'"""
    return f"{value:g}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def degrees_to_compass(degrees: float) -> str:
    """Map a bearing to one of 16 Spanish compass points (N, NNE, ..., NNO)."""
    index = _round_half_up(degrees / 22.5) % 16
    return COMPASS_POINTS[index]


def extract_envelope(raw: str | None) -> dict[str, Any]:
    """
    Split the scraped body at `JSON**` and decode the JSON payload.

    Raises SecurityBlocked for challenge/redirect pages, UnexpectedFormat when
    the delimiter is missing, and ParseFailure when the payload is not a
    non-empty JSON object.
    """
    raw = raw or ""
    if any(marker in raw for marker in SECURITY_BLOCK_MARKERS):
        raise SecurityBlocked()
    if TELEMETRY_DELIMITER not in raw:
        raise UnexpectedFormat()

    payload = raw.split(TELEMETRY_DELIMITER)[1]
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise ParseFailure() from exc
    if not isinstance(data, dict) or not data:
        raise ParseFailure()
    return data


def latest_fragment(envelope: dict[str, Any], section: str) -> str | None:
    """Return envelope[section]["latest"] if it is a string."""
    block = envelope.get(section)
    if not isinstance(block, dict):
        return None
    fragment = block.get("latest")
    return fragment if isinstance(fragment, str) and fragment else None


def extract_last_row(fragment: str | None) -> list[str] | None:
    """
    Return the cell texts of the last row of the first table in `fragment`.

    `fragment` is URL-encoded ('+' for spaces). Returns None when there is no
    table or the table has no rows.
    """
    if not fragment:
        return None
    decoded = unquote_plus(fragment)
    soup = BeautifulSoup(decoded, "html.parser")
    table = soup.find("table")
    if table is None:
        return None
    rows = table.find_all("tr")
    if not rows:
        return None
    cells = rows[-1].find_all("td")
    return [cell.get_text().strip() for cell in cells]


def parse_tide(fragment: str | None) -> TideReading:
    """Cell 0 is the sample time, cell 1 the height in meters."""
    cells = extract_last_row(fragment)
    if not cells or len(cells) < 2:
        return _tide_default()

    raw_ts = cells[0] or None
    formatted_ts = raw_ts
    if raw_ts:
        parsed = parse_local_datetime(raw_ts)
        if parsed is not None:
            formatted_ts = parsed.strftime("%d/%m/%Y %H:%M")

    height = None
    match = _DECIMAL_RE.search(cells[1])
    if match:
        height = float(match.group(0))

    return TideReading(
        datetime=formatted_ts,
        datetime_raw=raw_ts,
        height=height,
        height_formatted=fmt_meters(height) if height is not None else NOT_AVAILABLE,
    )


def parse_wind(fragment: str | None) -> WindReading:
    """Cell 1 is the speed in knots, cell 4 the direction in degrees."""
    reading = _wind_default()
    cells = extract_last_row(fragment)
    if not cells:
        return reading

    if len(cells) > 1 and is_numeric(cells[1]):
        knots = float(cells[1])
        kmh = round(knots * KNOTS_TO_KMH, 1)
        reading["speed_knots"] = knots
        reading["speed_kmh"] = kmh
        reading["speed_formatted"] = f"{_fmt_number(knots)} kn ({_fmt_number(kmh)} km/h)"

    if len(cells) > 4 and is_numeric(cells[4]):
        degrees = float(cells[4])
        compass = degrees_to_compass(degrees)
        reading["direction_deg"] = degrees
        reading["direction_compass"] = compass
        reading["direction_formatted"] = f"{_round_half_up(degrees)}° {compass}"

    return reading


def parse_telemetry(raw: str | None) -> tuple[TideReading, WindReading]:
    """Full pipeline: envelope, then both tables."""
    envelope = extract_envelope(raw)
    tide = parse_tide(latest_fragment(envelope, "tide"))
    wind = parse_wind(latest_fragment(envelope, "wind"))
    return tide, wind
