"""
Sudestada (storm-surge) tracker and Tigre prediction.

State machine over the singleton sudestada_actual.json document:

    Inactive --(height >= 2.0 m)--> Active
    Active   --(height > peak)----> Active, peak updated
    Active   --(current < 1.8 m and >= 4 h since last peak)--> Inactive

Deactivation keeps the peak fields as the record of the last event. All
transitions run inside RecordStore.update so concurrent callers serialize.

The Tigre estimate is derived on read: peak + 0.35 m, peak time + 3h30.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog

from mareatigre.constants import (
    FILE_PILOTE,
    FILE_SUDESTADA,
    NOT_AVAILABLE,
    SURGE_ACTIVATION_M,
    SURGE_DEACTIVATION_M,
    SURGE_DWELL_SEC,
    TIGRE_HEIGHT_OFFSET_M,
    TIGRE_TIME_OFFSET_MIN,
)
from mareatigre.store import RecordStore, default_for
from mareatigre.types import SurgeEvent
from mareatigre.utils import coerce_float, fmt_meters, parse_local_datetime

log = structlog.get_logger()

# Tried in order on the peak time before the general parser.
PEAK_TIME_FORMATS: tuple[str, ...] = (
    "%H:%M",
    "%H:%M:%S",
    "%H.%M",
    "%I:%M %p",
    "%I:%M%p",
)

INACTIVE_MESSAGE = "No hay sudestada activa"


def _normalize(state: dict[str, Any]) -> SurgeEvent:
    if not isinstance(state, dict) or "activa" not in state:
        return default_for(FILE_SUDESTADA)  # type: ignore[return-value]
    return dict(state)  # type: ignore[return-value]


def _peak(state: dict[str, Any]) -> float:
    return coerce_float(state.get("pico_maximo")) or 0.0


def apply_reading(
    state: dict[str, Any],
    height: float,
    observed_at: str | None,
    now: float,
) -> SurgeEvent:
    """Activation and peak tracking for a new Pilote height."""
    new = _normalize(state)
    if not new.get("activa"):
        if height >= SURGE_ACTIVATION_M:
            new["activa"] = True
            new["pico_maximo"] = height
            new["hora_pico"] = observed_at
            new["timestamp_pico"] = int(now)
            new["inicio"] = datetime.fromtimestamp(now, tz=timezone.utc).astimezone().isoformat(
                timespec="seconds"
            )
            log.warning("sudestada_detected", altura=height, hora=observed_at)
    elif height > _peak(new):
        previous = _peak(new)
        new["pico_maximo"] = height
        new["hora_pico"] = observed_at
        new["timestamp_pico"] = int(now)
        log.warning("sudestada_new_peak", altura=height, anterior=previous, hora=observed_at)
    return new


def apply_current_height(state: dict[str, Any], height: float, now: float) -> SurgeEvent:
    """Deactivate once the river is back under 1.8 m and the peak is 4 h old."""
    new = _normalize(state)
    if not new.get("activa"):
        return new
    if height < SURGE_DEACTIVATION_M:
        since_peak = now - (coerce_float(new.get("timestamp_pico")) or 0.0)
        if since_peak >= SURGE_DWELL_SEC:
            new["activa"] = False
            log.info("sudestada_ended", pico_maximo=_peak(new))
    return new


def tigre_height(peak: float) -> float:
    return round(peak + TIGRE_HEIGHT_OFFSET_M, 2)


def tigre_time(hora_pico: str | None) -> str:
    """
    Estimated Tigre time (HH:MM) for a Pilote peak time.

    Accepts 24h "HH:MM", "HH:MM:SS", "HH.MM" and 12h "h:MM AM/PM" before a
    general date-time parse; if nothing matches, returns "~<time> + 3.5h".
    """
    if not hora_pico or not hora_pico.strip():
        return NOT_AVAILABLE

    full = hora_pico.strip()
    token = full.split()[0]
    offset = timedelta(minutes=TIGRE_TIME_OFFSET_MIN)

    # Whole string first so "2:00 PM" is not read as a 24h "2:00".
    for candidate in (full, token):
        for fmt in PEAK_TIME_FORMATS:
            try:
                parsed = datetime.strptime(candidate, fmt)
            except ValueError:
                continue
            return (parsed + offset).strftime("%H:%M")

    parsed = parse_local_datetime(full)
    if parsed is not None:
        return (parsed + offset).strftime("%H:%M")

    return f"~{token} + 3.5h"


def status_payload(state: dict[str, Any]) -> dict[str, Any]:
    """Client payload for the current surge document."""
    if not isinstance(state, dict) or not state.get("activa"):
        return {"activa": False, "mensaje": INACTIVE_MESSAGE}

    peak = _peak(state)
    hora_pico = state.get("hora_pico")
    altura_tigre = tigre_height(peak)
    hora_tigre = tigre_time(hora_pico)
    pico_formatted = fmt_meters(peak)
    tigre_formatted = fmt_meters(altura_tigre)

    return {
        "activa": True,
        "pico_maximo": peak,
        "pico_maximo_formatted": pico_formatted,
        "hora_pico": hora_pico,
        "altura_tigre_estimada": altura_tigre,
        "altura_tigre_formatted": tigre_formatted,
        "hora_tigre_estimada": hora_tigre,
        "mensaje": f"Pico detectado: {pico_formatted} a las {hora_pico or NOT_AVAILABLE}",
        "prediccion_tigre": f"Tigre: ~{tigre_formatted} para las {hora_tigre}",
    }


class SurgeTracker:
    """Persistent sudestada state backed by a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def update_peak(self, height: float, observed_at: str | None) -> bool:
        now = self._clock()
        return self._store.update(
            FILE_SUDESTADA,
            lambda state: apply_reading(state, height, observed_at, now),
        )

    def check_deactivation(self, current_height: float) -> bool:
        now = self._clock()
        return self._store.update(
            FILE_SUDESTADA,
            lambda state: apply_current_height(state, current_height, now),
        )

    def state(self) -> SurgeEvent:
        return _normalize(self._store.read(FILE_SUDESTADA))

    def status(self) -> dict[str, Any]:
        return status_payload(self.state())

    def reset(self) -> bool:
        """Put the document back to its inactive default."""
        return self._store.update(FILE_SUDESTADA, lambda _state: default_for(FILE_SUDESTADA))

    def history(self) -> dict[str, Any]:
        """Raw Pilote Norden height records."""
        return self._store.read(FILE_PILOTE)
