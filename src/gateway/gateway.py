# src/gateway/gateway.py — v1
"""Analysis gateway: the single entry point for analyzing one piece of content.

Flow for ``analyze(content, category, client_id)``:
  1. Validate (non-empty, within max length), else ValidationError
  2. Fingerprint and count the submission
  3. Cache lookup; a hit returns immediately (source=cache)
  4. Stored-report match by fingerprint (source=database), no scorer call
  5. Rate-limited scorer call with retries; URLs go to the URL scorer
  6. Frequency-gated cache write, then persistence (best effort)
  7. Success/error metrics tagged with confidence bucket and category
  8. Outcome annotated source=api, with a submission hint when unsafe

When the scorer keeps failing the gateway answers with the heuristic
classifier (source=fallback). Fallback verdicts are neither cached nor
persisted. RateLimited and ValidationError are surfaced to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable

from scamguard.cache.fingerprint import fingerprint
from scamguard.core.errors import (
    RateLimited,
    ScorerError,
    ScorerMalformedResponse,
    ScorerTransientError,
    ScorerUnavailable,
    ValidationError,
)
from scamguard.core.models import SUBMIT_SUGGESTION, AnalysisOutcome, Verdict
from scamguard.logging.context import (
    clear_request_context,
    set_fingerprint_context,
    set_request_context,
)
from scamguard.ratelimit.limiter import ANONYMOUS_CLIENT
from scamguard.ratelimit.retry import TRANSIENT_ERRORS
from scamguard.scoring.heuristic import heuristic_verdict
from scamguard.scoring.response_parser import ParseFailure, parse_scorer_response
from scamguard.storage.models import StoredReport

if TYPE_CHECKING:
    from scamguard.cache.analysis_cache import AnalysisCache
    from scamguard.cache.frequency import ContentFrequencyCounter
    from scamguard.cache.models import CacheLookupResult
    from scamguard.ratelimit.limiter import RateLimiter
    from scamguard.scoring.scorer_factory import ScorerSet
    from scamguard.storage.base_report_store import BaseReportStore
    from scamguard.tracking.metrics_recorder import MetricsRecorder

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_LENGTH = 10_000


def validate_content(content: Any, max_length: int = DEFAULT_MAX_CONTENT_LENGTH) -> str:
    """Return content if it is a non-empty string within ``max_length``."""
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Content is required")
    if len(content) > max_length:
        raise ValidationError(
            f"Content exceeds maximum length of {max_length} characters"
        )
    return content


class AnalysisGateway:
    """Orchestrates cache, stored reports, rate limiter and scorer.

    Args:
        cache: TTL cache, or None to disable caching.
        frequency: Submission counter gating cache writes.
        store: Durable report store.
        scorers: Text and URL scorers.
        rate_limiter: Admission control and retries around scorer calls.
        metrics: Metric recorder.
        max_content_length: Longest accepted content, in characters.
        min_cache_frequency: Submissions required before a verdict is cached.
        scorer_timeout_s: Bound on each individual scorer call.
        search_limit: Max stored reports fetched for the match path.
    """

    def __init__(
        self,
        *,
        cache: AnalysisCache | None,
        frequency: ContentFrequencyCounter,
        store: BaseReportStore,
        scorers: ScorerSet,
        rate_limiter: RateLimiter,
        metrics: MetricsRecorder,
        max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
        min_cache_frequency: int = 1,
        scorer_timeout_s: float = 10.0,
        search_limit: int = 10,
        perf_clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._cache = cache
        self._frequency = frequency
        self._store = store
        self._scorers = scorers
        self._rate_limiter = rate_limiter
        self._metrics = metrics
        self._max_content_length = max_content_length
        self._min_cache_frequency = min_cache_frequency
        self._scorer_timeout_s = scorer_timeout_s
        self._search_limit = search_limit
        self._perf_clock = perf_clock

    @property
    def cache(self) -> AnalysisCache | None:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def metrics(self) -> MetricsRecorder:
        return self._metrics

    @property
    def store(self) -> BaseReportStore:
        return self._store

    @property
    def max_content_length(self) -> int:
        return self._max_content_length

    async def analyze(
        self,
        content: str,
        category: str | None = None,
        client_id: str = ANONYMOUS_CLIENT,
        endpoint: str | None = None,
    ) -> AnalysisOutcome:
        """Analyze one piece of content for the given client.

        ``endpoint`` names the calling surface (e.g. ``"batch"``); when set,
        cache lookups are also recorded as ``<endpoint>_cache_hit`` or
        ``<endpoint>_cache_miss`` tagged with endpoint and category.

        Raises:
            ValidationError: Empty or over-length content.
            RateLimited: Client budget exhausted and waiting is not allowed
                or retries ran out.
        """
        validate_content(content, self._max_content_length)
        category = category or None

        set_request_context(uuid.uuid4().hex[:12], client_id)
        start = self._perf_clock()
        try:
            outcome = await self._analyze(content, category, client_id, endpoint)
        except RateLimited as e:
            self._metrics.record("rate_limited", 1, {"client_id": client_id})
            self._record_error("rate_limited", category, start)
            logger.info("Analysis rejected: %s", e)
            raise
        except Exception as e:
            self._record_error(type(e).__name__, category, start)
            logger.exception("Analysis failed")
            raise
        else:
            self._record_success(outcome, category, start)
            return outcome
        finally:
            await self._metrics.flush()
            clear_request_context()

    async def _analyze(
        self,
        content: str,
        category: str | None,
        client_id: str,
        endpoint: str | None = None,
    ) -> AnalysisOutcome:
        fp = fingerprint(content).digest
        set_fingerprint_context(fp)
        frequency = self._frequency.increment(fp)

        if self._cache is not None:
            lookup = await self._lookup_cache(fp)
            if lookup is not None and lookup.hit and lookup.entry is not None:
                self._record_lookup("cache_hit", category, endpoint)
                logger.info("Cache hit (age %.0fs)", lookup.age_seconds or 0)
                return self._annotate(
                    lookup.entry.verdict,
                    fingerprint=fp,
                    source="cache",
                    cached=True,
                    cache_age_seconds=lookup.age_seconds,
                )
            self._record_lookup("cache_miss", category, endpoint)

        matches = await self._search_reports(fp)
        if matches:
            best = matches[0]
            similar = await self._count_reports(fp, fallback=len(matches))
            self._metrics.record("database_hit", 1, {"matches": str(similar)})
            logger.info("Matched %d stored report(s)", similar)
            await self._maybe_cache(fp, best.verdict, frequency)
            return self._annotate(
                best.verdict,
                fingerprint=fp,
                source="database",
                similar_reports=similar,
            )

        verdict, source = await self._score(content, category, client_id)
        if source == "api":
            await self._maybe_cache(fp, verdict, frequency)
            await self._persist(fp, content, category, client_id, verdict)
        return self._annotate(verdict, fingerprint=fp, source=source)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def _score(
        self, content: str, category: str | None, client_id: str
    ) -> tuple[Verdict, str]:
        scorer = self._scorers.select(content)
        attempts = 1

        def count_retry(attempt: int, delay_s: float) -> None:
            nonlocal attempts
            attempts = attempt + 1

        async def call() -> Verdict:
            try:
                raw = await asyncio.wait_for(
                    scorer.analyze(content, category), timeout=self._scorer_timeout_s
                )
            except asyncio.TimeoutError as e:
                raise ScorerTransientError(
                    f"Scorer {scorer.name} timed out after {self._scorer_timeout_s}s"
                ) from e
            result = parse_scorer_response(raw, category)
            if isinstance(result, ParseFailure):
                raise ScorerMalformedResponse(result.reason, result.raw)
            return result.verdict

        try:
            verdict = await self._rate_limiter.make_request(
                call, client_id, on_retry=count_retry
            )
            return verdict, "api"
        except RateLimited:
            raise
        except Exception as e:
            # Any scorer backend failure degrades to the heuristic answer
            unavailable = ScorerUnavailable(attempts, e)
            if isinstance(e, (ScorerError, *TRANSIENT_ERRORS)):
                logger.warning("%s; answering with heuristic fallback", unavailable)
            else:
                logger.error(
                    "Scorer %s raised unexpected %s; answering with heuristic fallback",
                    scorer.name, type(e).__name__, exc_info=True,
                )
            self._metrics.record(
                "scorer_fallback", 1, {"error_type": type(e).__name__, "scorer": scorer.name}
            )
            return heuristic_verdict(content, category), "fallback"

    # ------------------------------------------------------------------
    # Best-effort side effects
    # ------------------------------------------------------------------

    async def _lookup_cache(self, fp: str) -> CacheLookupResult | None:
        try:
            return await self._cache.get(fp)
        except Exception:
            logger.warning("Cache lookup failed, treating as miss", exc_info=True)
            return None

    async def _search_reports(self, fp: str) -> list[StoredReport]:
        try:
            return await self._store.search_reports(fp, limit=self._search_limit)
        except Exception:
            logger.warning("Stored report search failed", exc_info=True)
            return []

    async def _count_reports(self, fp: str, fallback: int) -> int:
        try:
            return await self._store.count_reports(fp)
        except Exception:
            logger.warning("Stored report count failed", exc_info=True)
            return fallback

    async def _maybe_cache(self, fp: str, verdict: Verdict, frequency: int) -> None:
        if self._cache is None:
            return
        if frequency < self._min_cache_frequency:
            logger.debug(
                "Not caching: seen %d time(s), need %d",
                frequency, self._min_cache_frequency,
            )
            return
        try:
            await self._cache.put(fp, verdict)
        except Exception:
            logger.warning("Cache write failed", exc_info=True)

    async def _persist(
        self,
        fp: str,
        content: str,
        category: str | None,
        client_id: str,
        verdict: Verdict,
    ) -> None:
        report = StoredReport(
            fingerprint=fp,
            content=content,
            category=category,
            client_id=client_id,
            verdict=verdict,
        )
        try:
            await self._store.insert_report(report)
        except Exception:
            # PersistenceError included: a verdict is still returned
            logger.warning("Failed to persist report %s", report.id, exc_info=True)

    # ------------------------------------------------------------------
    # Outcome and metrics
    # ------------------------------------------------------------------

    @staticmethod
    def _annotate(verdict: Verdict, **kwargs: Any) -> AnalysisOutcome:
        suggestion = None if verdict.is_safe else SUBMIT_SUGGESTION
        return AnalysisOutcome(verdict=verdict, suggestion=suggestion, **kwargs)

    def _elapsed_ms(self, start: float) -> float:
        return (self._perf_clock() - start) * 1000

    def _record_success(
        self, outcome: AnalysisOutcome, category: str | None, start: float
    ) -> None:
        elapsed = self._elapsed_ms(start)
        self._metrics.record("response_time", elapsed, {"source": outcome.source})
        self._metrics.record(
            "analysis_success",
            1,
            {
                "source": outcome.source,
                "confidence": outcome.verdict.confidence_bucket,
                "category": category or "unknown",
            },
        )
        logger.info(
            "Analysis complete: source=%s safe=%s confidence=%d in %.0fms",
            outcome.source, outcome.is_safe, outcome.confidence, elapsed,
        )

    def _record_lookup(self, name: str, category: str | None, endpoint: str | None) -> None:
        self._metrics.record(name)
        if endpoint:
            self._metrics.record(
                f"{endpoint}_{name}",
                1,
                {"endpoint": endpoint, "category": category or "unknown"},
            )

    def _record_error(self, error_type: str, category: str | None, start: float) -> None:
        self._metrics.record("response_time", self._elapsed_ms(start), {"source": "error"})
        self._metrics.record(
            "analysis_error",
            1,
            {"error_type": error_type, "category": category or "unknown"},
        )

    async def close(self) -> None:
        """Flush metrics and release backends."""
        await self._metrics.flush()
        if self._cache is not None:
            self._cache.close()
        self._store.close()
        self._rate_limiter.close()
