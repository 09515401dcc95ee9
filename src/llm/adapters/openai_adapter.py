# src/llm/adapters/openai_adapter.py — v1
"""OpenAI-compatible chat adapter implementing BaseLLMClient.

Uses the official openai SDK. ``base_url`` points it at any compatible
gateway (e.g. OpenRouter).
"""

from __future__ import annotations

import time
from typing import Any

from scamguard.llm.base_client import BaseLLMClient
from scamguard.llm.models import LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI chat-completions adapter."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str = "",
        base_url: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url or None
        self._timeout_s = timeout_s
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError("openai package required: pip install openai") from e
            kwargs: dict[str, Any] = {"api_key": self._api_key, "max_retries": 0}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            if self._timeout_s is not None:
                kwargs["timeout"] = self._timeout_s
            self.__client = openai.AsyncOpenAI(**kwargs)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        t0 = time.monotonic()
        resp = await self._client.chat.completions.create(
            model=self._model,
            messages=oai_messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model
