"""
Mareatigre configuration constants.

Upstream sources, persistence layout, cache ages and the thresholds used by
the trend engine and the sudestada tracker are defined here.
"""

from __future__ import annotations

from pathlib import Path

# --- Upstream sources ---
# Servicio de Hidrografía Naval RSS feeds
ALERTS_RSS_URL = "https://www.hidro.gob.ar/RSS/AACrioplarss.asp"
HEIGHT_RSS_URL = "https://www.hidro.gob.ar/rss/AHrss.asp"

# Comisión Río de la Plata telemetry (Pilote Norden)
TELEMETRY_BASE_URL = "https://meteo.comisionriodelaplata.org/"
TELEMETRY_URL = (
    "https://meteo.comisionriodelaplata.org/ecsCommand.php"
    "?c=telemetry%2FupdateTelemetry&s=0.21097539498237183"
)
TELEMETRY_PAYLOAD: dict[str, str] = {"p": "1", "p1": "2", "p2": "1", "p3": "1"}
TELEMETRY_HEADERS: dict[str, str] = {
    "Referer": "https://meteo.comisionriodelaplata.org/",
    "Origin": "https://meteo.comisionriodelaplata.org",
    "X-Requested-With": "XMLHttpRequest",
}
TELEMETRY_DELIMITER = "JSON**"
SECURITY_BLOCK_MARKERS = ("<!DOCTYPE html", "redirect_form")

# --- HTTP ---
DEFAULT_TIMEOUT_SEC = 10.0
BACKGROUND_TIMEOUT_SEC = 5.0         # Background cache refresh
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# --- Persistence ---
DATA_DIR_DEFAULT = Path("data")
FILE_ALTURAS = "alturas_historico.json"
FILE_PILOTE = "pilote_historico.json"
FILE_SUDESTADA = "sudestada_actual.json"

SF_KEY = "sf"
PILOTE_KEY = "registros"
SF_HISTORY_LIMIT = 72                # ~3 days of hourly readings
PILOTE_HISTORY_LIMIT = 100

# --- Cache ---
CACHE_FRESH_SEC = 10 * 60            # Serve without touching upstream
CACHE_STALE_SEC = 30 * 60            # Serve stale, refresh in background

# --- Trend ---
TREND_THRESHOLD_M = 0.02             # 2 cm to call rising/falling
TREND_NOISE_FLOOR_M = 0.001          # Ignore near-duplicate readings

# --- Sudestada ---
SURGE_ACTIVATION_M = 2.0
SURGE_DEACTIVATION_M = 1.8
SURGE_DWELL_SEC = 4 * 3600           # Below threshold this long after the peak
TIGRE_HEIGHT_OFFSET_M = 0.35
TIGRE_TIME_OFFSET_MIN = 3 * 60 + 30

# 16-point compass, Spanish convention (O = oeste)
COMPASS_POINTS: tuple[str, ...] = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSO", "SO", "OSO", "O", "ONO", "NO", "NNO",
)
KNOTS_TO_KMH = 1.852

# --- User-facing labels ---
NOT_AVAILABLE = "No disponible"
