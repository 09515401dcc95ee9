# src/logging/context.py — v1
"""Contextual logging support: attach request_id, client_id, fingerprint
and batch_id to log records.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per gateway request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_client_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "client_id", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_batch_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    client_id: str | None = None
    fingerprint: str | None = None
    batch_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        client_id=_client_id.get(),
        fingerprint=_fingerprint.get(),
        batch_id=_batch_id.get(),
    )


def set_request_context(request_id: str, client_id: str) -> None:
    """Set request-level context (called once per gateway request)."""
    _request_id.set(request_id)
    _client_id.set(client_id)


def set_fingerprint_context(fingerprint: str | None) -> None:
    """Attach the short content fingerprint of the current request."""
    _fingerprint.set(fingerprint[:12] if fingerprint else None)


def set_batch_context(batch_id: str | None) -> None:
    """Set batch-level context (called once per batch run)."""
    _batch_id.set(batch_id)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _client_id.set(None)
    _fingerprint.set(None)
    _batch_id.set(None)


def clear_request_context() -> None:
    """Reset request-level variables, keeping any enclosing batch id."""
    _request_id.set(None)
    _client_id.set(None)
    _fingerprint.set(None)
