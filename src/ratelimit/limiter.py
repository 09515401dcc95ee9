# src/ratelimit/limiter.py — v1
"""Per-client rate limiter with admission control, pacing and retries.

State lives in an injectable window store; the limiter itself only keeps
the last-issued timestamp per client for minimum-spacing. A consumed
budget unit is never refunded, even when the caller is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable, TypeVar

from scamguard.core.errors import RateLimited
from scamguard.ratelimit.models import RateLimitDecision, RateLimitInfo, Rejected
from scamguard.ratelimit.retry import RetryPolicy, with_retry
from scamguard.ratelimit.window_store import BaseWindowStore, InMemoryWindowStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANONYMOUS_CLIENT = "anonymous"

# Stale pacing entries are swept once the map grows past this size
_PRUNE_THRESHOLD = 256


def resolve_client_id(user_id: str | None = None, ip_address: str | None = None) -> str:
    """Client identity: user id if authenticated, else IP, else anonymous."""
    if user_id:
        return f"user:{user_id}"
    if ip_address:
        # x-forwarded-for may carry a proxy chain; the first hop is the client
        return f"ip:{ip_address.split(',')[0].strip()}"
    return ANONYMOUS_CLIENT


class RateLimiter:
    """Fixed-window limiter keyed by client identity."""

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60 * 60 * 1000,
        store: BaseWindowStore | None = None,
        policy: RetryPolicy | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._store = store or InMemoryWindowStore()
        self._policy = policy or RetryPolicy()
        self._clock = clock
        self._sleep = sleep
        self._next_slot: dict[str, float] = {}
        self._slot_lock = threading.Lock()
        self._prune_at = _PRUNE_THRESHOLD

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def check_and_consume(self, client_id: str) -> RateLimitDecision:
        """Admit and count one request, or reject with the time to reset."""
        decision = self._store.check_and_consume(
            client_id, self._now_ms(), self._max_requests, self._window_ms
        )
        if isinstance(decision, Rejected):
            logger.info(
                "Rate limit hit for %s, retry after %dms",
                client_id, decision.retry_after_ms,
            )
        return decision

    def info(self, client_id: str) -> RateLimitInfo:
        """Current budget for a client, without consuming anything."""
        now_ms = self._now_ms()
        window = self._store.get_window(client_id)
        if window is None or window.is_expired(now_ms):
            return RateLimitInfo(
                client_id=client_id,
                current_requests=0,
                remaining_requests=self._max_requests,
                reset_at_ms=now_ms + self._window_ms,
                time_until_reset_ms=self._window_ms,
                is_limited=False,
            )
        remaining = max(0, self._max_requests - window.request_count)
        return RateLimitInfo(
            client_id=client_id,
            current_requests=window.request_count,
            remaining_requests=remaining,
            reset_at_ms=window.reset_at_ms,
            time_until_reset_ms=max(0, window.reset_at_ms - now_ms),
            is_limited=remaining == 0,
        )

    def reset(self, client_id: str) -> None:
        """Drop a client's window and pacing state."""
        self._store.reset(client_id)
        with self._slot_lock:
            self._next_slot.pop(client_id, None)

    async def make_request(
        self,
        fn: Callable[[], Awaitable[T]],
        client_id: str,
        policy: RetryPolicy | None = None,
        on_rate_limit: Callable[[int], None] | None = None,
        on_retry: Callable[[int, float], None] | None = None,
    ) -> T:
        """Run ``fn`` under admission control with retries.

        Every attempt consumes one unit of the client's budget. A rejected
        admission waits for the window to reset while attempts remain,
        otherwise RateLimited is raised. Transient failures from ``fn``
        back off exponentially. The last error propagates once retries
        are exhausted.
        """
        policy = policy or self._policy

        async def attempt() -> T:
            decision = self.check_and_consume(client_id)
            if isinstance(decision, Rejected):
                raise RateLimited(client_id, decision.retry_after_ms)
            await self._pace(client_id, policy.min_interval_s)
            return await fn()

        return await with_retry(
            attempt,
            policy=policy,
            sleep=self._sleep,
            on_retry=on_retry,
            on_rate_limit=on_rate_limit,
            label=f"request for {client_id}",
        )

    async def _pace(self, client_id: str, min_interval_s: float) -> None:
        """Enforce minimum spacing between calls issued for one client."""
        if min_interval_s <= 0:
            return
        now = self._clock()
        with self._slot_lock:
            slot = max(now, self._next_slot.get(client_id, now))
            self._next_slot[client_id] = slot + min_interval_s
            if len(self._next_slot) > self._prune_at:
                self._prune_slots(now)
        wait = slot - now
        if wait > 0:
            await self._sleep(wait)

    def _prune_slots(self, now: float) -> None:
        """Drop pacing slots already in the past. Caller holds the lock."""
        self._next_slot = {k: v for k, v in self._next_slot.items() if v > now}
        self._prune_at = max(_PRUNE_THRESHOLD, 2 * len(self._next_slot))

    def close(self) -> None:
        self._store.close()
