# src/llm/adapters/anthropic_adapter.py - v3
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK (Messages API). Supports vision.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

from docuforge.llm.base_client import BaseLLMClient, VisionCapable
from docuforge.llm.errors import classify_provider_exception
from docuforge.llm.models import ImageInput, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseLLMClient, VisionCapable):
    """Adapter for Anthropic Claude models."""

    chars_per_token = 3.5

    def __init__(
        self,
        model: str = "claude-3-5-sonnet-20240620",
        api_key: str | None = None,
        timeout: float = 120.0,
        input_share: float = 0.6,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self.input_share = input_share
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
            self.__client = anthropic.AsyncAnthropic(
                api_key=self._api_key or "", timeout=self._timeout,
            )
        return self.__client

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        params: dict[str, Any] = {
            "model": model or self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            params["system"] = system_prompt
        return await self._create(params)

    async def complete_with_vision(
        self,
        prompt: str,
        images: list[ImageInput],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        """Vision-enabled completion with images."""
        content_blocks: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": img.media_type,
                    "data": base64.b64encode(img.data).decode("ascii"),
                },
            }
            for img in images
        ]
        content_blocks.append({"type": "text", "text": prompt})

        params: dict[str, Any] = {
            "model": model or self._model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content_blocks}],
        }
        if system_prompt:
            params["system"] = system_prompt
        return await self._create(params)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return self._model

    # --- Internal helpers ---

    async def _create(self, params: dict[str, Any]) -> LLMResponse:
        client = self._client
        start = time.monotonic()
        try:
            response = await client.messages.create(**params)
        except Exception as e:
            raise classify_provider_exception(e, "anthropic") from e
        latency_ms = int((time.monotonic() - start) * 1000)

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        return LLMResponse(
            content=self._extract_content(response),
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @staticmethod
    def _extract_content(response: Any) -> str:
        """Concatenate text blocks from an Anthropic response."""
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
