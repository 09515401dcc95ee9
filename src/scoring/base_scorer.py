# src/scoring/base_scorer.py — v1
"""Abstract external scorer capability.

A scorer returns the raw ``{isSafe, confidence, threats, analysis}``
payload, either as a mapping or as the text an LLM produced. The gateway
treats that payload as untrusted and validates it with
``scamguard.scoring.response_parser`` before building a Verdict.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Union

RawScore = Union[str, Mapping[str, Any]]


class BaseScorer(ABC):
    """Unified interface for LLM and heuristic scorers."""

    @abstractmethod
    async def analyze(self, content: str, category: str | None = None) -> RawScore:
        """Score content and return the raw, unvalidated payload.

        Raises:
            ScorerTransientError: Network failure, timeout or upstream 5xx.
            ScorerError: Non-retryable upstream failure.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Scorer identifier used in logs and metric tags."""
