# src/llm/adapters/gemini_adapter.py - v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses google-generativeai SDK. Supports vision via Gemini multimodal input.
"""

from __future__ import annotations

import time
from typing import Any

from docuforge.llm.base_client import BaseLLMClient, VisionCapable
from docuforge.llm.errors import classify_provider_exception
from docuforge.llm.models import ImageInput, LLMResponse


class GeminiAdapter(BaseLLMClient, VisionCapable):
    """Google Gemini adapter."""

    chars_per_token = 3.8

    def __init__(
        self,
        model: str = "gemini-1.5-pro",
        api_key: str = "",
        timeout: float = 120.0,
        input_share: float = 0.6,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self.input_share = input_share

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        gen_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        contents = [{"role": "user", "parts": [{"text": prompt}]}]
        return await self._generate(contents, system_prompt, model, gen_config, prompt)

    async def complete_with_vision(
        self,
        prompt: str,
        images: list[ImageInput],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        for img in images:
            parts.append({"inline_data": {"mime_type": img.media_type, "data": img.data}})
        return await self._generate(
            parts, system_prompt, model, {"max_output_tokens": max_tokens}, prompt,
        )

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return self._model

    async def _generate(
        self,
        contents: Any,
        system_prompt: str | None,
        model: str | None,
        gen_config: dict[str, Any],
        prompt: str,
    ) -> LLMResponse:
        import google.generativeai as genai

        model_name = model or self._model
        genai.configure(api_key=self._api_key)
        gmodel = genai.GenerativeModel(model_name, system_instruction=system_prompt)

        t0 = time.monotonic()
        try:
            resp = await gmodel.generate_content_async(
                contents,
                generation_config=gen_config,
                request_options={"timeout": self._timeout},
            )
            text = resp.text or ""
        except Exception as e:
            raise classify_provider_exception(e, "gemini") from e
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        prompt_tokens = getattr(usage, "prompt_token_count", 0) if usage else self.count_tokens(prompt)
        completion_tokens = getattr(usage, "candidates_token_count", 0) if usage else self.count_tokens(text)
        return LLMResponse(
            content=text,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=model_name,
            provider="gemini",
            latency_ms=latency,
            raw_response=resp,
        )
