# src/api/facade.py — v1
"""Public API facade: wiring plus request-level entry points.

Usage:
    from scamguard.api.facade import analyze, build_gateway
    container = build_gateway()
    response = await analyze({"content": "..."}, container)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from scamguard.api.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    BatchAnalyzeRequest,
    BatchAnalyzeResponse,
    BatchItemResponse,
)
from scamguard.batch.coordinator import BatchCoordinator
from scamguard.batch.models import BatchItem
from scamguard.batch.uploader import BaseUploader, LocalFileUploader
from scamguard.cache.analysis_cache import AnalysisCache
from scamguard.cache.cache_factory import create_cache_store
from scamguard.cache.frequency import ContentFrequencyCounter
from scamguard.cache.models import CacheStats
from scamguard.config.settings import Settings
from scamguard.core.errors import ScamGuardError
from scamguard.core.models import utc_now
from scamguard.gateway.gateway import AnalysisGateway
from scamguard.ratelimit.limiter import resolve_client_id
from scamguard.ratelimit.ratelimit_factory import create_rate_limiter
from scamguard.scoring.scorer_factory import create_scorers
from scamguard.storage.store_factory import create_report_store
from scamguard.tracking.health import HealthMonitor, aggregate
from scamguard.tracking.metrics_recorder import MetricsRecorder
from scamguard.tracking.models import HealthSnapshot, HealthThresholds

logger = logging.getLogger(__name__)


@dataclass
class GatewayContainer:
    """Everything one process needs to serve analysis requests."""

    settings: Settings
    gateway: AnalysisGateway
    health_monitor: HealthMonitor
    uploader: BaseUploader

    def new_coordinator(self, **kwargs: Any) -> BatchCoordinator:
        """Fresh coordinator for one batch run."""
        s = self.settings
        return BatchCoordinator(
            self.gateway,
            uploader=self.uploader,
            concurrency_limit=s.batch_concurrency_limit,
            max_batch_size=s.batch_max_size,
            inter_group_delay_s=s.batch_inter_group_delay_ms / 1000,
            **kwargs,
        )

    async def close(self) -> None:
        await self.gateway.close()


def build_gateway(settings: Settings | None = None) -> GatewayContainer:
    """Wire stores, limiter, scorers and metrics from settings."""
    settings = settings or Settings()

    store = create_report_store(settings)
    cache = (
        AnalysisCache(create_cache_store(settings), ttl_seconds=settings.cache_ttl_seconds)
        if settings.cache_enabled
        else None
    )
    metrics = MetricsRecorder(buffer_size=settings.metrics_buffer_size, sink=store)
    gateway = AnalysisGateway(
        cache=cache,
        frequency=ContentFrequencyCounter(),
        store=store,
        scorers=create_scorers(settings),
        rate_limiter=create_rate_limiter(settings),
        metrics=metrics,
        max_content_length=settings.max_content_length,
        min_cache_frequency=settings.cache_min_frequency,
        scorer_timeout_s=settings.scorer_timeout_s,
        search_limit=settings.store_search_limit,
    )
    monitor = HealthMonitor(
        metrics,
        thresholds=HealthThresholds.from_settings(settings),
        window_minutes=settings.metrics_window_minutes,
    )
    uploader = LocalFileUploader(max_size_bytes=settings.max_upload_size_mb * 1024 * 1024)
    logger.info(
        "Gateway ready: cache=%s store=%s scorer=%s",
        settings.cache_backend if cache else "disabled",
        settings.store_backend,
        settings.scorer_provider,
    )
    return GatewayContainer(
        settings=settings, gateway=gateway, health_monitor=monitor, uploader=uploader
    )


async def analyze(
    request: AnalyzeRequest | Mapping[str, Any],
    container: GatewayContainer,
) -> AnalyzeResponse:
    """Analyze one submission.

    Raises:
        ValidationError: Empty or over-length content.
        RateLimited: Client out of budget.
    """
    if not isinstance(request, AnalyzeRequest):
        request = AnalyzeRequest.model_validate(request)

    content = request.content
    for path in request.files:
        text = await container.uploader.read(path)
        content = f"{content}\n\n{text}" if content else text

    outcome = await container.gateway.analyze(
        content,
        category=request.category,
        client_id=resolve_client_id(request.user_id, request.ip_address),
    )
    return AnalyzeResponse.from_outcome(outcome)


async def analyze_batch(
    request: BatchAnalyzeRequest | Mapping[str, Any],
    container: GatewayContainer,
) -> BatchAnalyzeResponse:
    """Analyze a batch of text items. Invalid batches are rejected whole."""
    if not isinstance(request, BatchAnalyzeRequest):
        request = BatchAnalyzeRequest.model_validate(request)

    items = [BatchItem(content=i.content, category=i.category) for i in request.batch]
    coordinator = container.new_coordinator()
    run = await coordinator.process_batch(
        items, client_id=resolve_client_id(request.user_id, request.ip_address)
    )

    responses = []
    for index, item in enumerate(run.items):
        responses.append(
            BatchItemResponse(
                index=index,
                item_id=item.id,
                status=item.status,
                result=AnalyzeResponse.from_outcome(item.result) if item.result else None,
                error=item.error,
            )
        )
    return BatchAnalyzeResponse(
        batch_id=run.batch_id,
        results=responses,
        completed=run.completed,
        failed=run.failed,
    )


def error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """Map an exception to (status_code, body). Unknown errors become 500."""
    if isinstance(exc, ScamGuardError):
        return exc.status_code, exc.to_payload()
    logger.error("Unhandled error: %s", exc, exc_info=exc)
    return 500, {"error": "Internal server error", "kind": "internal"}


def health(container: GatewayContainer) -> HealthSnapshot:
    return container.health_monitor.snapshot()


async def cache_stats(container: GatewayContainer) -> CacheStats | None:
    """Cache statistics, or None when caching is disabled."""
    cache = container.gateway.cache
    return await cache.stats() if cache is not None else None


async def cache_cleanup(container: GatewayContainer) -> int:
    """Remove expired cache entries. Returns count removed."""
    cache = container.gateway.cache
    return await cache.purge_expired() if cache is not None else 0


async def stored_health(container: GatewayContainer) -> HealthSnapshot:
    """Health over metrics persisted by any process sharing the store."""
    window = container.settings.metrics_window_minutes
    now = utc_now()
    since = now - timedelta(minutes=window)
    samples = await container.gateway.store.list_metrics(since=since)
    return aggregate(
        samples,
        window_minutes=window,
        thresholds=HealthThresholds.from_settings(container.settings),
        now=now,
    )
