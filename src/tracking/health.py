# src/tracking/health.py — v1
"""Trailing-window health classification.

Health is derived, never stored: ``aggregate`` summarizes the recorder's
buffer over the window and ``classify_health`` applies fixed thresholds.
``HealthMonitor`` is a pure observability hook. It notifies listeners on
status transitions and has no effect on admission or scoring.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable

from scamguard.core.models import utc_now
from scamguard.tracking.metrics_recorder import MetricsRecorder
from scamguard.tracking.models import (
    HealthSnapshot,
    HealthStatus,
    HealthThresholds,
    MetricSample,
)

logger = logging.getLogger(__name__)

HealthListener = Callable[[HealthStatus, HealthSnapshot], None]


def calculate_percentile(values: list[float], percentile: float) -> float:
    """Percentile with linear interpolation; 0.0 for no values."""
    if not values:
        return 0.0

    sorted_values = sorted(values)
    n = len(sorted_values)
    index = (percentile / 100.0) * (n - 1)
    lower_idx = int(index)
    upper_idx = min(lower_idx + 1, n - 1)
    fraction = index - lower_idx
    return sorted_values[lower_idx] + fraction * (
        sorted_values[upper_idx] - sorted_values[lower_idx]
    )


def classify_health(
    error_rate: float,
    avg_response_time_ms: float,
    cache_hit_rate: float | None,
    thresholds: HealthThresholds | None = None,
) -> HealthStatus:
    """Classify health from aggregates (rates in percent).

    A ``None`` cache hit rate (no lookups yet) does not count against health.
    """
    t = thresholds or HealthThresholds()
    has_lookups = cache_hit_rate is not None

    if (
        error_rate > t.critical_error_rate
        or avg_response_time_ms > t.critical_latency_ms
        or (has_lookups and cache_hit_rate < t.critical_cache_hit_rate)
    ):
        return "critical"
    if (
        error_rate > t.warning_error_rate
        or avg_response_time_ms > t.warning_latency_ms
        or (has_lookups and cache_hit_rate < t.warning_cache_hit_rate)
    ):
        return "warning"
    return "healthy"


def aggregate(
    samples: Iterable[MetricSample],
    window_minutes: float = 60.0,
    thresholds: HealthThresholds | None = None,
    now: datetime | None = None,
) -> HealthSnapshot:
    """Summarize samples (already limited to the window) into a snapshot."""
    hits = misses = successes = errors = 0
    latencies: list[float] = []
    total = 0
    for sample in samples:
        total += 1
        if sample.name == "cache_hit":
            hits += 1
        elif sample.name == "cache_miss":
            misses += 1
        elif sample.name == "analysis_success":
            successes += 1
        elif sample.name == "analysis_error":
            errors += 1
        elif sample.name == "response_time":
            latencies.append(sample.value)

    lookups = hits + misses
    cache_hit_rate = hits / lookups * 100 if lookups else None
    analyses = successes + errors
    error_rate = errors / analyses * 100 if analyses else 0.0
    avg_latency = sum(latencies) / len(latencies) if latencies else 0.0

    return HealthSnapshot(
        cache_hit_rate=cache_hit_rate,
        avg_response_time_ms=avg_latency,
        p95_response_time_ms=calculate_percentile(latencies, 95),
        error_rate=error_rate,
        requests_per_minute=len(latencies) / window_minutes if window_minutes else 0.0,
        sample_count=total,
        cache_lookups=lookups,
        analyses=analyses,
        window_minutes=window_minutes,
        computed_at=now or utc_now(),
        system_health=classify_health(error_rate, avg_latency, cache_hit_rate, thresholds),
    )


class HealthMonitor:
    """Computes snapshots and notifies listeners when the status changes."""

    def __init__(
        self,
        recorder: MetricsRecorder,
        thresholds: HealthThresholds | None = None,
        window_minutes: float = 60.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._recorder = recorder
        self._thresholds = thresholds or HealthThresholds()
        self._window_minutes = window_minutes
        self._clock = clock
        self._listeners: list[HealthListener] = []
        self._last_status: HealthStatus = "healthy"

    @property
    def last_status(self) -> HealthStatus:
        return self._last_status

    def add_listener(self, listener: HealthListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: HealthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def snapshot(self) -> HealthSnapshot:
        """Aggregate the trailing window and fire listeners on a transition."""
        now = self._clock()
        since = now - timedelta(minutes=self._window_minutes)
        snap = aggregate(
            self._recorder.samples(since=since),
            window_minutes=self._window_minutes,
            thresholds=self._thresholds,
            now=now,
        )
        previous = self._last_status
        self._last_status = snap.system_health
        if snap.system_health != previous:
            logger.info("System health %s -> %s", previous, snap.system_health)
            for listener in list(self._listeners):
                try:
                    listener(previous, snap)
                except Exception:
                    logger.exception("Health listener failed")
        return snap
