# src/cache/frequency.py — v1
"""Per-content submission counter gating cache writes.

Kept apart from cache hit/miss bookkeeping: it counts how often a given
normalized content has been submitted, regardless of how it was answered.
"""

from __future__ import annotations

import threading
from collections import OrderedDict


class ContentFrequencyCounter:
    """Thread-safe bounded counter keyed by content fingerprint.

    When more than ``max_tracked`` distinct fingerprints are tracked, the
    least recently submitted one is forgotten.
    """

    def __init__(self, max_tracked: int = 100_000) -> None:
        self._counts: OrderedDict[str, int] = OrderedDict()
        self._max_tracked = max_tracked
        self._lock = threading.Lock()

    def increment(self, key: str) -> int:
        """Record one submission and return the new count."""
        with self._lock:
            count = self._counts.pop(key, 0) + 1
            self._counts[key] = count
            while len(self._counts) > self._max_tracked:
                self._counts.popitem(last=False)
            return count

    def count(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or everything when key is None."""
        with self._lock:
            if key is None:
                self._counts.clear()
            else:
                self._counts.pop(key, None)

    def __len__(self) -> int:
        return len(self._counts)
