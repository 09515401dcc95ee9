# src/llm/adapters/anthropic_adapter.py — v1
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK, imported lazily on first call.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from scamguard.llm.base_client import BaseLLMClient
from scamguard.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            kwargs: dict[str, Any] = {"api_key": self._api_key or ""}
            if self._timeout_s is not None:
                kwargs["timeout"] = self._timeout_s
            # Retries are owned by the rate limiter, not the SDK
            kwargs["max_retries"] = 0
            self.__client = anthropic.AsyncAnthropic(**kwargs)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        response = await self._client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=self._extract_text(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate text blocks of an Anthropic response."""
        parts = [
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        ]
        return "".join(parts)
