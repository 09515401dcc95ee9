# src/scoring/scorer_factory.py — v1
"""Factory: build the text and URL scorers from settings.

Without a provider key, text goes to the keyword heuristic and links
to the domain scorer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from scamguard.config.settings import Settings
from scamguard.llm.client_factory import create_llm_client
from scamguard.scoring.base_scorer import BaseScorer
from scamguard.scoring.domain_scorer import DomainScorer, StaticBlocklist
from scamguard.scoring.heuristic import HeuristicScorer
from scamguard.scoring.llm_scorer import LLMScorer, UrlScorer

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(
    r"^(?:https?://|www\.)\S+$"
    r"|^[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,}(?:[/:?#]\S*)?$",
    re.IGNORECASE,
)


def is_url(content: str) -> bool:
    """True when the whole (trimmed) content is a single link or domain."""
    return bool(_URL_PATTERN.match(content.strip()))


@dataclass(frozen=True)
class ScorerSet:
    """Text scorer plus the URL-specialized variant."""

    text: BaseScorer
    url: BaseScorer

    def select(self, content: str) -> BaseScorer:
        return self.url if is_url(content) else self.text


def create_scorers(settings: Settings | None = None) -> ScorerSet:
    """Build scorers for the configured provider."""
    if settings is None:
        settings = Settings()

    provider = settings.scorer_provider
    if provider == "heuristic":
        return _heuristic_set(settings)
    if not settings.scorer_api_key:
        logger.warning(
            "No API key configured for scorer provider %s, using heuristic scorer",
            provider,
        )
        return _heuristic_set(settings)

    text_client = create_llm_client(provider, settings.scorer_model, settings)
    url_client = (
        create_llm_client(provider, settings.scorer_url_model, settings)
        if settings.scorer_url_model
        else text_client
    )
    kwargs = {
        "max_tokens": settings.scorer_max_tokens,
        "temperature": settings.scorer_temperature,
    }
    logger.info("Scorer provider %s, model %s", provider, settings.scorer_model)
    return ScorerSet(
        text=LLMScorer(text_client, **kwargs),
        url=UrlScorer(url_client, **kwargs),
    )


def _heuristic_set(settings: Settings) -> ScorerSet:
    checks = []
    if settings.domain_blocklist_path is not None:
        checks.append(StaticBlocklist.from_file(settings.domain_blocklist_path.expanduser()))
    return ScorerSet(
        text=HeuristicScorer(),
        url=DomainScorer(checks, check_timeout_s=settings.domain_check_timeout_s),
    )
