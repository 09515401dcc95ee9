# src/llm/base_client.py — v1
"""Abstract LLM client interface used by LLM-backed scorers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scamguard.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name sent to the provider."""
