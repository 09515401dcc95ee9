# src/core/errors.py — v1
"""Typed error taxonomy for the analysis gateway.

Callers distinguish "try again later" (RateLimited) from "this request
failed" (ScorerError family) by type, never by message text.
"""

from __future__ import annotations

import math
from typing import Any


class ScamGuardError(Exception):
    """Base class for every error raised by the gateway."""

    status_code: int = 500
    kind: str = "internal"

    def to_payload(self) -> dict[str, Any]:
        """Render as a client-facing error body."""
        return {"error": str(self), "kind": self.kind}


class ValidationError(ScamGuardError):
    """Bad or oversized input. Never retried."""

    status_code = 400
    kind = "validation"


class RateLimited(ScamGuardError):
    """Client exhausted its request budget for the current window."""

    status_code = 429
    kind = "rate_limited"

    def __init__(self, client_id: str, retry_after_ms: int) -> None:
        self.client_id = client_id
        self.retry_after_ms = max(0, int(retry_after_ms))
        super().__init__(
            f"Rate limit exceeded. Retry after {self.retry_after_seconds} seconds."
        )

    @property
    def retry_after_seconds(self) -> int:
        """Retry-after rounded up to whole seconds."""
        return math.ceil(self.retry_after_ms / 1000)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["retryAfterMs"] = self.retry_after_ms
        return payload


class ScorerError(ScamGuardError):
    """Base class for failures of the external scorer."""

    status_code = 502
    kind = "scorer"


class ScorerTransientError(ScorerError):
    """Network failure, timeout or upstream 5xx. Eligible for retry."""

    kind = "scorer_transient"


class ScorerMalformedResponse(ScorerError):
    """Scorer answered, but not with a usable verdict."""

    kind = "scorer_malformed"

    def __init__(self, reason: str, raw: Any = None) -> None:
        self.reason = reason
        self.raw = raw
        super().__init__(f"Malformed scorer response: {reason}")


class ScorerUnavailable(ScorerError):
    """Scorer still failing after all retries were spent."""

    status_code = 503
    kind = "scorer_unavailable"

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Scorer unavailable after {attempts} attempts: {last_error}"
        )


class PersistenceError(ScamGuardError):
    """Durable store write failed. Logged, never blocks a verdict."""

    kind = "persistence"


class ItemCancelled(ScamGuardError):
    """A batch item was cancelled before reaching a terminal status."""

    status_code = 499
    kind = "cancelled"

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__("cancelled")
