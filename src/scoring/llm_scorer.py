# src/scoring/llm_scorer.py — v1
"""LLM-backed scorers for general text and for URLs.

SDK failures are mapped onto the scorer error taxonomy by status code:
429 and 5xx (and anything without a status, e.g. connection resets)
become ScorerTransientError; other 4xx become a non-retryable ScorerError.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from scamguard.core.errors import ScorerError, ScorerTransientError
from scamguard.llm.models import Message
from scamguard.scoring.base_scorer import BaseScorer

if TYPE_CHECKING:
    from scamguard.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent / "prompts"


def build_user_message(content: str, category: str | None) -> str:
    return f"Category: {category or 'unknown'}\n\nContent to analyze:\n{content}"


class LLMScorer(BaseScorer):
    """Scores general text with an LLM and returns its raw reply text."""

    prompt_file = "text_scorer.txt"

    def __init__(
        self,
        client: BaseLLMClient,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._system_prompt: str | None = None

    @property
    def name(self) -> str:
        return f"llm:{self._client.provider_name}/{self._client.model}"

    def _load_prompt(self) -> str:
        if self._system_prompt is None:
            self._system_prompt = (_PROMPTS_DIR / self.prompt_file).read_text(
                encoding="utf-8"
            )
        return self._system_prompt

    async def analyze(self, content: str, category: str | None = None) -> str:
        try:
            response = await self._client.complete(
                messages=[Message(role="user", content=build_user_message(content, category))],
                system=self._load_prompt(),
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except ScorerError:
            raise
        except ImportError:
            raise
        except Exception as exc:
            raise _map_provider_error(exc) from exc

        logger.debug(
            "Scorer %s answered in %dms (%d output tokens)",
            self.name, response.latency_ms, response.output_tokens,
        )
        return response.content


class UrlScorer(LLMScorer):
    """LLM scorer with a prompt specialized for links and domains."""

    prompt_file = "url_scorer.txt"


def _map_provider_error(exc: Exception) -> ScorerError:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int) and 400 <= status < 500 and status != 429:
        return ScorerError(f"Scorer request rejected ({status}): {exc}")
    return ScorerTransientError(f"Scorer call failed: {type(exc).__name__}: {exc}")
