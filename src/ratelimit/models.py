# src/ratelimit/models.py — v1
"""Rate-limit domain models: RateLimitWindow, admission decisions, RateLimitInfo.

All times are integer milliseconds since the epoch.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict


class RateLimitWindow(BaseModel):
    """Fixed request window for one client identity."""

    client_id: str
    window_start_ms: int
    request_count: int = 0
    max_requests: int
    window_duration_ms: int

    @property
    def reset_at_ms(self) -> int:
        return self.window_start_ms + self.window_duration_ms

    def is_expired(self, now_ms: int) -> bool:
        """A window expires strictly after ``window_start + duration``."""
        return now_ms > self.reset_at_ms


class Admitted(BaseModel):
    """The request was admitted and counted."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    request_count: int
    remaining: int


class Rejected(BaseModel):
    """The request was refused; admission reopens after ``retry_after_ms``."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    retry_after_ms: int


RateLimitDecision = Union[Admitted, Rejected]


class RateLimitInfo(BaseModel):
    """Read-only view of a client's current budget."""

    client_id: str
    current_requests: int
    remaining_requests: int
    reset_at_ms: int
    time_until_reset_ms: int
    is_limited: bool


def consume(
    window: RateLimitWindow | None,
    client_id: str,
    now_ms: int,
    max_requests: int,
    window_ms: int,
) -> tuple[RateLimitWindow, RateLimitDecision]:
    """Apply one admission attempt to a window.

    Pure transition used by every window store inside its own atomic
    section: reset on expiry, admit and increment while under budget,
    otherwise reject with the delay until the first admitting millisecond.
    """
    if window is None or window.is_expired(now_ms):
        window = RateLimitWindow(
            client_id=client_id,
            window_start_ms=now_ms,
            request_count=0,
            max_requests=max_requests,
            window_duration_ms=window_ms,
        )
    else:
        # Budget changes apply to live windows without resetting them
        window = window.model_copy(
            update={"max_requests": max_requests, "window_duration_ms": window_ms}
        )

    if window.request_count < window.max_requests:
        window = window.model_copy(update={"request_count": window.request_count + 1})
        return window, Admitted(
            client_id=client_id,
            request_count=window.request_count,
            remaining=window.max_requests - window.request_count,
        )

    # First millisecond at which the window counts as expired
    retry_after = window.reset_at_ms - now_ms + 1
    return window, Rejected(client_id=client_id, retry_after_ms=retry_after)
