"""
Mareatigre type definitions using TypedDict.

These document the shape of the persisted JSON documents and of the payloads
handed to the presentation layer.
"""

from __future__ import annotations

from typing import TypedDict


class HeightSample(TypedDict, total=False):
    """A single river height observation in a bounded history."""
    altura: float           # Meters
    hora: str | None        # Local observation time as published upstream
    timestamp: str          # ISO8601 time we recorded it
    timestamp_unix: int     # Pilote records only


class HeightHistory(TypedDict, total=False):
    """alturas_historico.json"""
    sf: list[HeightSample]


class PiloteHistory(TypedDict, total=False):
    """pilote_historico.json"""
    registros: list[HeightSample]


class SurgeEvent(TypedDict, total=False):
    """
    sudestada_actual.json

    Peak fields survive deactivation as the record of the last event.
    """
    activa: bool
    pico_maximo: float
    hora_pico: str | None
    timestamp_pico: int | None  # Unix seconds of last peak detection
    inicio: str | None          # ISO8601 activation time


class TideReading(TypedDict):
    datetime: str | None
    datetime_raw: str | None
    height: float | None
    height_formatted: str


class WindReading(TypedDict):
    speed_knots: float | None
    speed_kmh: float | None
    speed_formatted: str
    direction_deg: float | None
    direction_compass: str | None
    direction_formatted: str


class TrendResult(TypedDict):
    tendencia: str          # "subiendo" | "bajando" | "estable" | "error"
    tendencia_label: str
    cambio: float
    cambio_formatted: str


class HeightReading(TypedDict):
    """San Fernando reading extracted from the RSS feed."""
    altura: str             # Dot-decimal as published, e.g. "1.23"
    hora: str


class FetchResult(TypedDict):
    status_code: int
    body: str
    ok: bool
