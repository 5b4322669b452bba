"""
San Fernando trend engine.

Classifies the bounded height history as rising, falling or stable. Instead
of diffing the last two samples, the reference value is the most recent
sample that differs meaningfully from the current one, so repeated
near-identical readings do not make the trend flicker.
"""

from __future__ import annotations

from typing import Any, Sequence

import structlog

from mareatigre.constants import TREND_NOISE_FLOOR_M, TREND_THRESHOLD_M
from mareatigre.types import TrendResult
from mareatigre.utils import coerce_float, fmt_decimal

log = structlog.get_logger()

STABLE = TrendResult(
    tendencia="estable",
    tendencia_label="ESTABLE",
    cambio=0,
    cambio_formatted="±0,00 m",
)

ERROR = TrendResult(
    tendencia="error",
    tendencia_label="ERROR",
    cambio=0,
    cambio_formatted="- m",
)


def _heights(samples: Sequence[Any]) -> list[float]:
    out: list[float] = []
    for sample in samples:
        value = coerce_float(sample.get("altura")) if isinstance(sample, dict) else None
        if value is None:
            raise ValueError(f"malformed height sample: {sample!r}")
        out.append(value)
    return out


def reference_height(heights: Sequence[float]) -> float | None:
    """
    Pick the value to compare the latest height against.

    Walk back from the penultimate sample to the first one that differs from
    the latest by more than the noise floor. If none does, fall back to the
    oldest sample (with two or more samples it always exists, so the delta
    is then within the noise floor and the trend is stable).
    """
    if len(heights) < 2:
        return None
    current = heights[-1]
    for value in reversed(heights[:-1]):
        if abs(value - current) > TREND_NOISE_FLOOR_M:
            return value
    return heights[0]


def classify(delta: float) -> TrendResult:
    """Turn a rounded height change into a trend payload."""
    if delta > TREND_THRESHOLD_M:
        return TrendResult(
            tendencia="subiendo",
            tendencia_label="SUBIENDO",
            cambio=delta,
            cambio_formatted=f"+{fmt_decimal(delta)} m",
        )
    if delta < -TREND_THRESHOLD_M:
        return TrendResult(
            tendencia="bajando",
            tendencia_label="BAJANDO",
            cambio=delta,
            cambio_formatted=f"{fmt_decimal(delta)} m",
        )
    return dict(STABLE)  # type: ignore[return-value]


def compute_trend(samples: Sequence[Any]) -> TrendResult:
    """
    Trend of the `sf` history (oldest first).

    Fewer than two samples is "stable" with no change; malformed samples give
    the "error" payload.
    """
    if len(samples) < 2:
        return dict(STABLE)  # type: ignore[return-value]
    try:
        heights = _heights(samples)
    except ValueError as exc:
        log.error("trend_failed", error=str(exc))
        return dict(ERROR)  # type: ignore[return-value]

    previous = reference_height(heights)
    if previous is None:
        return dict(STABLE)  # type: ignore[return-value]
    delta = round(heights[-1] - previous, 2)
    return classify(delta)
