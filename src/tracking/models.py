# src/tracking/models.py — v1
"""Tracking domain models: MetricSample, HealthThresholds, HealthSnapshot."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from scamguard.core.models import utc_now

if TYPE_CHECKING:
    from scamguard.config.settings import Settings

HealthStatus = Literal["healthy", "warning", "critical"]


class MetricSample(BaseModel):
    """One recorded measurement. Append-only."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: float = 1.0
    tags: dict[str, str] = Field(default_factory=dict)
    recorded_at: datetime = Field(default_factory=utc_now)


class HealthThresholds(BaseModel):
    """Fixed thresholds for health classification (rates in percent)."""

    model_config = ConfigDict(frozen=True)

    warning_error_rate: float = 10.0
    critical_error_rate: float = 25.0
    warning_latency_ms: float = 5000.0
    critical_latency_ms: float = 10000.0
    warning_cache_hit_rate: float = 50.0
    critical_cache_hit_rate: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> HealthThresholds:
        return cls(
            warning_error_rate=settings.health_warning_error_rate,
            critical_error_rate=settings.health_critical_error_rate,
            warning_latency_ms=settings.health_warning_latency_ms,
            critical_latency_ms=settings.health_critical_latency_ms,
            warning_cache_hit_rate=settings.health_warning_cache_hit_rate,
            critical_cache_hit_rate=settings.health_critical_cache_hit_rate,
        )


class HealthSnapshot(BaseModel):
    """Trailing-window aggregates and the health derived from them.

    ``cache_hit_rate`` is None when no cache lookups happened in the window.
    """

    cache_hit_rate: float | None = None
    avg_response_time_ms: float = 0.0
    p95_response_time_ms: float = 0.0
    error_rate: float = 0.0
    requests_per_minute: float = 0.0
    sample_count: int = 0
    cache_lookups: int = 0
    analyses: int = 0
    window_minutes: float = 60.0
    computed_at: datetime = Field(default_factory=utc_now)
    system_health: HealthStatus = "healthy"
