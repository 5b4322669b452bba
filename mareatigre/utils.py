"""
Mareatigre utility functions.

Pure helpers for number coercion, Spanish-style formatting and parsing of
the loosely formatted local timestamps published upstream.
No side effects, no state access.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup

# Day-first formats seen on the Hidrografía and CARP pages, tried in order
# after ISO8601.
LOCAL_DATETIME_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%d/%m/%Y",
)

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def coerce_float(val) -> float | None:
    """Safely coerce a value to float, returning None on failure."""
    if val is None or isinstance(val, bool):
        return None
    try:
        f = float(val)
        return f if math.isfinite(f) else None
    except (TypeError, ValueError):
        return None


def is_numeric(text: str) -> bool:
    """True when `text` is a plain number (no units, no thousands separator)."""
    return bool(_NUMERIC_RE.match(text.strip()))


def fmt_decimal(value: float, places: int = 2) -> str:
    """Format with a comma decimal separator: 1.5 -> '1,50'."""
    return f"{value:.{places}f}".replace(".", ",")


def fmt_meters(value: float) -> str:
    """Format a height in meters for display: 1.5 -> '1,50 m'."""
    return f"{fmt_decimal(value)} m"


def strip_tags(markup: str) -> str:
    """Return the text content of an HTML fragment."""
    if not markup:
        return ""
    return BeautifulSoup(markup, "html.parser").get_text()


def now_iso() -> str:
    """Current local time as ISO8601 with offset."""
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


def parse_local_datetime(text: str | None) -> datetime | None:
    """
    Parse a timestamp as published by the upstream sources.

    Tries ISO8601 first, then the day-first formats used by the Argentine
    sources. Returns None if nothing matches.
    """
    if not text:
        return None
    text = text.strip()
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in LOCAL_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
