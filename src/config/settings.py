# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for every tunable of the gateway: rate limits,
retry policy, cache TTL and write gating, content/batch caps, scorer
routing, durable store location, health thresholds and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Rate limiting ===
    rate_limit_max_requests: int = 100
    rate_limit_window_minutes: float = 60.0
    rate_limit_min_interval_ms: int = 100
    rate_limit_backend: Literal["memory", "sqlite"] = "memory"

    # === Retry / backoff ===
    retry_attempts: int = 3
    retry_base_delay_s: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_jitter: bool = False
    retry_wait_on_rate_limit: bool = True
    retry_max_rate_limit_wait_s: float = 60.0

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "sqlite", "redis"] = "memory"
    cache_ttl_hours: float = 24.0
    cache_min_frequency: int = 1
    cache_redis_url: str = ""

    # === Content / batch limits ===
    max_content_length: int = 10_000
    batch_max_size: int = 20
    batch_concurrency_limit: int = 5
    batch_inter_group_delay_ms: int = 500
    max_upload_size_mb: int = 50

    # === External scorer ===
    scorer_provider: Literal["heuristic", "anthropic", "openai"] = "heuristic"
    scorer_model: str = "claude-sonnet-4-20250514"
    scorer_url_model: str = ""
    scorer_timeout_s: float = 10.0
    scorer_max_tokens: int = 1000
    scorer_temperature: float = 0.1

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""

    # === Domain scoring (URL content without an LLM scorer) ===
    domain_blocklist_path: Path | None = None
    domain_check_timeout_s: float = 5.0

    # === Durable store ===
    store_backend: Literal["memory", "sqlite"] = "memory"
    database_path: Path = Path("~/.scamguard/scamguard.db")
    store_search_limit: int = 10

    # === Metrics / health ===
    metrics_buffer_size: int = 5000
    metrics_window_minutes: float = 60.0
    health_warning_error_rate: float = 10.0
    health_critical_error_rate: float = 25.0
    health_warning_latency_ms: float = 5000.0
    health_critical_latency_ms: float = 10000.0
    health_warning_cache_hit_rate: float = 50.0
    health_critical_cache_hit_rate: float = 30.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "rate_limit_max_requests",
        "max_content_length",
        "batch_max_size",
        "batch_concurrency_limit",
        "cache_min_frequency",
        "metrics_buffer_size",
        "store_search_limit",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @field_validator(
        "retry_attempts", "rate_limit_min_interval_ms", "batch_inter_group_delay_ms"
    )
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator(
        "rate_limit_window_minutes",
        "cache_ttl_hours",
        "scorer_timeout_s",
        "domain_check_timeout_s",
    )
    @classmethod
    def validate_positive_duration(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        uses_sqlite = "sqlite" in (
            self.cache_backend, self.store_backend, self.rate_limit_backend
        )
        if uses_sqlite and not str(self.database_path).strip():
            errors.append("DATABASE_PATH must be set when a sqlite backend is used")

        if self.batch_concurrency_limit > self.batch_max_size:
            errors.append("BATCH_CONCURRENCY_LIMIT must be <= BATCH_MAX_SIZE")

        if self.health_warning_error_rate > self.health_critical_error_rate:
            errors.append("HEALTH_WARNING_ERROR_RATE must be <= HEALTH_CRITICAL_ERROR_RATE")
        if self.health_warning_latency_ms > self.health_critical_latency_ms:
            errors.append("HEALTH_WARNING_LATENCY_MS must be <= HEALTH_CRITICAL_LATENCY_MS")
        if self.health_warning_cache_hit_rate < self.health_critical_cache_hit_rate:
            errors.append(
                "HEALTH_WARNING_CACHE_HIT_RATE must be >= HEALTH_CRITICAL_CACHE_HIT_RATE"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def rate_limit_window_ms(self) -> int:
        """Rate-limit window length in milliseconds."""
        return int(self.rate_limit_window_minutes * 60 * 1000)

    @property
    def cache_ttl_seconds(self) -> float:
        """Cache TTL in seconds."""
        return self.cache_ttl_hours * 3600

    @property
    def scorer_api_key(self) -> str:
        """API key for the configured scorer provider ("" for heuristic)."""
        if self.scorer_provider == "anthropic":
            return self.anthropic_api_key
        if self.scorer_provider == "openai":
            return self.openai_api_key
        return ""


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-deployment config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
