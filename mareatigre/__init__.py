"""
Mareatigre: Río de la Plata river level monitoring for Tigre / San Fernando.

This package provides:
- Alerts and San Fernando heights from the Hidrografía Naval RSS feeds
- Pilote Norden tide and wind from the CARP telemetry endpoint
- A noise-tolerant rising/falling/stable trend for San Fernando
- Sudestada detection with a Tigre height/time estimate

Public API:
    main(argv=None) - CLI entrypoint
    MareaTigre(settings) - all services wired to one store
    load_settings(path=None) - config.toml + environment
"""

from __future__ import annotations

# Version
__version__ = "0.1.0"

from mareatigre.cache import FeedCache
from mareatigre.cli import main
from mareatigre.config import Settings, load_settings
from mareatigre.errors import (
    MareaTigreError,
    NoDataFound,
    ParseFailure,
    SecurityBlocked,
    StorageFailure,
    UnexpectedFormat,
    UpstreamUnavailable,
)
from mareatigre.services import (
    AlertService,
    MareaTigre,
    SanFernandoService,
    SudestadaService,
    TelemetryService,
)
from mareatigre.store import RecordStore
from mareatigre.surge import SurgeTracker, tigre_height, tigre_time
from mareatigre.trend import compute_trend

# Type exports
from mareatigre.types import (
    FetchResult,
    HeightSample,
    SurgeEvent,
    TideReading,
    TrendResult,
    WindReading,
)

__all__ = [
    # Version
    "__version__",
    # Entry points
    "main",
    "MareaTigre",
    "load_settings",
    "Settings",
    # Components
    "AlertService",
    "SanFernandoService",
    "TelemetryService",
    "SudestadaService",
    "RecordStore",
    "FeedCache",
    "SurgeTracker",
    "compute_trend",
    "tigre_height",
    "tigre_time",
    # Errors
    "MareaTigreError",
    "UpstreamUnavailable",
    "SecurityBlocked",
    "UnexpectedFormat",
    "ParseFailure",
    "NoDataFound",
    "StorageFailure",
    # Types
    "FetchResult",
    "HeightSample",
    "SurgeEvent",
    "TideReading",
    "TrendResult",
    "WindReading",
]
