# src/tracking/metrics_recorder.py — v1
"""Process-wide metric recorder.

Samples go into a bounded in-memory buffer used for health aggregation.
When a sink store is attached, samples are also queued and written to it
on ``flush()``; sink failures are logged and never reach the caller.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from scamguard.core.models import utc_now
from scamguard.tracking.models import MetricSample

if TYPE_CHECKING:
    from scamguard.storage.base_report_store import BaseReportStore

logger = logging.getLogger(__name__)


class MetricsRecorder:
    """Append-only metric buffer with an optional durable sink."""

    def __init__(
        self,
        buffer_size: int = 5000,
        sink: BaseReportStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._samples: deque[MetricSample] = deque(maxlen=buffer_size)
        self._pending: list[MetricSample] = []
        self._sink = sink
        self._clock = clock
        self._lock = threading.Lock()

    def record(
        self,
        name: str,
        value: float = 1.0,
        tags: dict[str, str] | None = None,
    ) -> MetricSample:
        """Append one sample."""
        sample = MetricSample(
            name=name,
            value=value,
            tags=dict(tags or {}),
            recorded_at=self._clock(),
        )
        with self._lock:
            self._samples.append(sample)
            if self._sink is not None:
                self._pending.append(sample)
        return sample

    def samples(
        self, since: datetime | None = None, name: str | None = None
    ) -> list[MetricSample]:
        """Buffered samples, optionally filtered by age and name."""
        with self._lock:
            snapshot = list(self._samples)
        return [
            s for s in snapshot
            if (since is None or s.recorded_at >= since)
            and (name is None or s.name == name)
        ]

    def count(self, name: str) -> int:
        return len(self.samples(name=name))

    async def flush(self) -> int:
        """Write queued samples to the sink. Returns how many were written."""
        if self._sink is None:
            return 0
        with self._lock:
            pending, self._pending = self._pending, []
        written = 0
        for sample in pending:
            try:
                await self._sink.append_metric(sample)
                written += 1
            except Exception:
                logger.warning("Failed to persist metric %s", sample.name, exc_info=True)
        return written

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
            self._pending.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
