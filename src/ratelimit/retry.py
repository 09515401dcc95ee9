# src/ratelimit/retry.py — v1
"""Retry combinator with exponential backoff and typed error classification.

Errors are classified by type into three kinds:
  - rate_limited: wait the indicated retry-after, then retry
  - transient: wait ``base_delay * factor ** attempt``, then retry
  - fatal: propagate immediately
After ``retry_attempts`` retries the last error propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, TypeVar

from scamguard.core.errors import RateLimited, ScorerMalformedResponse, ScorerTransientError

if TYPE_CHECKING:
    from scamguard.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
ErrorKind = Literal["rate_limited", "transient", "fatal"]

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ScorerTransientError,
    ScorerMalformedResponse,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and pacing parameters for one kind of outbound call."""

    retry_attempts: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = False
    min_interval_s: float = 0.1
    wait_on_rate_limit: bool = True
    max_rate_limit_wait_s: float | None = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            retry_attempts=settings.retry_attempts,
            base_delay_s=settings.retry_base_delay_s,
            backoff_factor=settings.retry_backoff_factor,
            jitter=settings.retry_jitter,
            min_interval_s=settings.rate_limit_min_interval_ms / 1000,
            wait_on_rate_limit=settings.retry_wait_on_rate_limit,
            max_rate_limit_wait_s=settings.retry_max_rate_limit_wait_s,
        )


def classify_error(error: BaseException) -> ErrorKind:
    """Classify an exception by type."""
    if isinstance(error, RateLimited):
        return "rate_limited"
    if isinstance(error, TRANSIENT_ERRORS):
        return "transient"
    return "fatal"


def compute_delay(policy: RetryPolicy, attempt: int) -> float:
    """Backoff delay before retry number ``attempt + 1`` (attempt is 0-based)."""
    delay = policy.base_delay_s * (policy.backoff_factor ** attempt)
    if policy.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    classify: Callable[[BaseException], ErrorKind] = classify_error,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_retry: Callable[[int, float], None] | None = None,
    on_rate_limit: Callable[[int], None] | None = None,
    label: str = "request",
) -> T:
    """Execute ``fn`` with retry logic.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt.
        policy: Attempt cap and backoff parameters.
        classify: Maps an exception to its ErrorKind.
        sleep: Awaitable sleep (injectable for tests).
        on_retry: Called with (retry_number, delay_s) before each wait.
        on_rate_limit: Called with retry_after_ms whenever a RateLimited is seen.
        label: Name used in log lines.

    Raises:
        The last error once it is fatal or retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            kind = classify(e)
            if kind == "fatal":
                raise

            if kind == "rate_limited":
                retry_after_ms = getattr(e, "retry_after_ms", 0)
                if on_rate_limit is not None:
                    on_rate_limit(retry_after_ms)
                delay = retry_after_ms / 1000
                if not policy.wait_on_rate_limit:
                    raise
                if (
                    policy.max_rate_limit_wait_s is not None
                    and delay > policy.max_rate_limit_wait_s
                ):
                    raise
            else:
                delay = compute_delay(policy, attempt)

            if attempt >= policy.retry_attempts:
                raise

            attempt += 1
            logger.warning(
                "%s: %s (retry %d/%d), waiting %.2fs",
                label, kind, attempt, policy.retry_attempts, delay,
            )
            if on_retry is not None:
                on_retry(attempt, delay)
            await sleep(delay)
