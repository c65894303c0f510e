# src/llm/adapters/openai_adapter.py - v2
"""OpenAI GPT adapter implementing BaseLLMClient.

Uses the official openai SDK. ``OpenAICompatibleAdapter`` holds the chat
completions call and is reused by providers that speak the same wire API
(Perplexity, hosted Llama endpoints) through ``base_url``.
"""

from __future__ import annotations

import base64
import time
from typing import Any

from docuforge.llm.base_client import BaseLLMClient, VisionCapable
from docuforge.llm.errors import classify_provider_exception
from docuforge.llm.models import ImageInput, LLMResponse


class OpenAICompatibleAdapter(BaseLLMClient):
    """Chat-completions client for any OpenAI-compatible endpoint."""

    _provider = "openai"
    _default_model = "gpt-4o"

    def __init__(
        self,
        model: str | None = None,
        api_key: str = "",
        base_url: str | None = None,
        timeout: float = 120.0,
        input_share: float = 0.6,
        **kwargs: Any,
    ) -> None:
        self._model = model or self._default_model
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self.input_share = input_share
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init OpenAI client (only on first API call)."""
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            kwargs: dict[str, Any] = {"api_key": self._api_key or "", "timeout": self._timeout}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self.__client = openai.AsyncOpenAI(**kwargs)
        return self.__client

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def default_model(self) -> str:
        return self._model

    def resolve_model(self, model: str | None) -> str:
        return model or self._model

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        resp, latency = await self._chat(
            model=self.resolve_model(model),
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return self._to_response(resp, prompt, latency, model)

    async def _chat(self, **kwargs: Any) -> tuple[Any, int]:
        client = self._client
        t0 = time.monotonic()
        try:
            resp = await client.chat.completions.create(**kwargs)
        except Exception as e:
            raise classify_provider_exception(e, self.provider_name) from e
        return resp, int((time.monotonic() - t0) * 1000)

    def _to_response(
        self, resp: Any, prompt: str, latency: int, model: str | None
    ) -> LLMResponse:
        choice = resp.choices[0]
        content = choice.message.content or ""
        usage = resp.usage
        prompt_tokens = usage.prompt_tokens if usage else self.count_tokens(prompt)
        completion_tokens = usage.completion_tokens if usage else self.count_tokens(content)
        return LLMResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=getattr(resp, "model", None) or self.resolve_model(model),
            provider=self.provider_name,
            latency_ms=latency,
            raw_response=resp,
        )


class OpenAIAdapter(OpenAICompatibleAdapter, VisionCapable):
    """OpenAI GPT adapter."""

    chars_per_token = 3.8

    async def complete_with_vision(
        self,
        prompt: str,
        images: list[ImageInput],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        # Build multimodal content
        content_parts: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for img in images:
            b64 = base64.b64encode(img.data).decode()
            content_parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{img.media_type};base64,{b64}"},
            })
        messages.append({"role": "user", "content": content_parts})

        resp, latency = await self._chat(
            model=self.resolve_model(model), messages=messages, max_tokens=max_tokens,
        )
        return self._to_response(resp, prompt, latency, model)
