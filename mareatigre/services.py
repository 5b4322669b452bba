"""
Service boundary for mareatigre.

Each service turns one upstream source into the JSON payload served to the
client. Pipeline errors are caught here and returned as `{"error": message}`
so nothing below this layer reaches the transport as an unhandled fault.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog

import http_client
from mareatigre.cache import FeedCache
from mareatigre.config import Settings
from mareatigre.constants import (
    FILE_ALTURAS,
    FILE_PILOTE,
    PILOTE_HISTORY_LIMIT,
    PILOTE_KEY,
    SF_HISTORY_LIMIT,
    SF_KEY,
    SURGE_ACTIVATION_M,
    TELEMETRY_HEADERS,
    TELEMETRY_PAYLOAD,
)
from mareatigre.errors import MareaTigreError, ParseFailure, UpstreamUnavailable
from mareatigre.rss import parse_alerts, parse_height
from mareatigre.store import RecordStore
from mareatigre.surge import SurgeTracker
from mareatigre.telemetry import parse_telemetry
from mareatigre.trend import compute_trend
from mareatigre.types import FetchResult, TrendResult
from mareatigre.utils import coerce_float, now_iso

log = structlog.get_logger()

Fetch = Callable[..., FetchResult]


def _require_ok(result: FetchResult) -> str:
    if not result["ok"]:
        raise UpstreamUnavailable(f"Error remoto: {result['status_code']}")
    return result["body"]


class AlertService:
    """River alerts (Hidrografía RSS), served from a fresh/stale cache."""

    def __init__(
        self,
        settings: Settings,
        cache: FeedCache,
        fetch: Fetch | None = None,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._fetch = fetch or http_client.fetch

    def _load(self, timeout: float) -> list[str]:
        url = self._settings.sources.alerts_url
        body = _require_ok(self._fetch(url, timeout=timeout, legacy_tls=True))
        alerts = parse_alerts(body, strict=True)
        log.info("alerts_fetched", count=len(alerts))
        return alerts

    def get_alerts(self) -> list[str]:
        """List of alert descriptions; empty on any failure."""
        http = self._settings.http
        try:
            return self._cache.get(
                self._settings.sources.alerts_url,
                lambda: self._load(http.timeout_sec),
                lambda: self._load(http.background_timeout_sec),
            )
        except MareaTigreError as exc:
            log.error("alerts_failed", error=exc.message)
            return []


class SanFernandoService:
    """San Fernando height (Hidrografía RSS) and its trend."""

    def __init__(
        self,
        settings: Settings,
        store: RecordStore,
        cache: FeedCache,
        fetch: Fetch | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._cache = cache
        self._fetch = fetch or http_client.fetch

    def get_tendency(self) -> TrendResult:
        """Trend from the stored history, without touching upstream."""
        history = self._store.read(FILE_ALTURAS)
        samples = history.get(SF_KEY)
        if not isinstance(samples, list):
            samples = []
        return compute_trend(samples)

    def _save_height(self, altura: float, hora: str | None) -> None:
        record = {"altura": altura, "hora": hora, "timestamp": now_iso()}
        self._store.append(FILE_ALTURAS, SF_KEY, record, SF_HISTORY_LIMIT)

    def _load(self) -> dict[str, Any]:
        url = self._settings.sources.height_url
        body = _require_ok(
            self._fetch(url, timeout=self._settings.http.timeout_sec, legacy_tls=True)
        )
        reading = parse_height(body)
        altura = reading["altura"]
        hora = reading["hora"]
        value = coerce_float(altura)
        if value is None:
            raise ParseFailure(f"Altura inválida: {altura}")

        self._save_height(value, hora)
        trend = self.get_tendency()
        log.info("sf_height_fetched", altura=altura, hora=hora)

        return {
            "altura": altura,
            "altura_formatted": altura.replace(".", ",") + " m",
            "hora": hora,
            "tendencia": trend["tendencia"],
            "tendencia_label": trend["tendencia_label"],
            "cambio": trend["cambio"],
            "cambio_formatted": trend["cambio_formatted"],
        }

    def get_height(self) -> dict[str, Any]:
        """Height + trend payload, or {"error": message}."""
        try:
            return self._cache.get(self._settings.sources.height_url, self._load)
        except MareaTigreError as exc:
            log.error("sf_height_failed", error=exc.message)
            return {"error": exc.message}


class TelemetryService:
    """Pilote Norden tide and wind (CARP telemetry)."""

    def __init__(
        self,
        settings: Settings,
        store: RecordStore,
        tracker: SurgeTracker,
        fetch_with_session: Fetch | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._tracker = tracker
        self._fetch_with_session = fetch_with_session or http_client.fetch_with_session

    def _fetch_raw(self) -> str:
        sources = self._settings.sources
        result = self._fetch_with_session(
            sources.telemetry_base_url,
            sources.telemetry_url,
            timeout=self._settings.http.timeout_sec,
            legacy_tls=True,
            method="POST",
            data=TELEMETRY_PAYLOAD,
            headers=TELEMETRY_HEADERS,
        )
        return _require_ok(result)

    def _record_pilote(self, altura: float, hora: str | None) -> None:
        record = {
            "altura": altura,
            "hora": hora,
            "timestamp": now_iso(),
            "timestamp_unix": int(self._tracker.now()),
        }
        self._store.append(FILE_PILOTE, PILOTE_KEY, record, PILOTE_HISTORY_LIMIT)
        log.info("pilote_recorded", altura=altura, hora=hora)

        if altura >= SURGE_ACTIVATION_M:
            self._tracker.update_peak(altura, hora)
        self._tracker.check_deactivation(altura)

    def get_telemetry(self) -> dict[str, Any]:
        """{"tide", "wind", "updated"} or {"error": message}."""
        try:
            tide, wind = parse_telemetry(self._fetch_raw())
        except MareaTigreError as exc:
            log.error("telemetry_failed", error=exc.message)
            return {"error": exc.message}

        if tide["height"] is not None:
            self._record_pilote(tide["height"], tide["datetime_raw"])

        return {"tide": tide, "wind": wind, "updated": now_iso()}


class SudestadaService:
    """Sudestada status with the Tigre prediction."""

    def __init__(self, tracker: SurgeTracker) -> None:
        self._tracker = tracker

    def get_status(self) -> dict[str, Any]:
        return self._tracker.status()

    def history(self) -> dict[str, Any]:
        return self._tracker.history()

    def reset(self) -> bool:
        ok = self._tracker.reset()
        log.info("sudestada_reset", ok=ok)
        return ok


class MareaTigre:
    """
    All services wired to one store and one cache per source family.

    The caches live as long as this object; a long-running host should keep
    a single instance.
    """

    def __init__(
        self,
        settings: Settings,
        fetch: Fetch | None = None,
        fetch_with_session: Fetch | None = None,
    ) -> None:
        self.settings = settings
        self.store = RecordStore(settings.storage.data_dir)
        self.tracker = SurgeTracker(self.store)
        self.alerts = AlertService(settings, self._new_cache(), fetch=fetch)
        self.san_fernando = SanFernandoService(
            settings, self.store, self._new_cache(), fetch=fetch
        )
        self.telemetry = TelemetryService(
            settings, self.store, self.tracker, fetch_with_session=fetch_with_session
        )
        self.sudestada = SudestadaService(self.tracker)

    def _new_cache(self) -> FeedCache:
        cache = self.settings.cache
        return FeedCache(fresh_ttl=cache.fresh_sec, stale_ttl=cache.stale_sec)

    def initialize(self) -> None:
        """Create the data files with their default documents."""
        self.store.initialize_files()
