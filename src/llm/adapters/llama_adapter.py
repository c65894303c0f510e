# src/llm/adapters/llama_adapter.py - v2
"""Llama adapter implementing BaseLLMClient.

Two hosting modes behind one provider name:
  - ``local``: an Ollama server, through the ollama Python SDK;
  - ``together`` / ``groq``: hosted OpenAI-compatible endpoints, through the
    openai SDK with a custom base_url.
"""

from __future__ import annotations

import time
from typing import Any

from docuforge.llm.adapters.openai_adapter import OpenAICompatibleAdapter
from docuforge.llm.base_client import BaseLLMClient
from docuforge.llm.errors import classify_provider_exception
from docuforge.llm.models import LLMResponse

HOSTED_BASE_URLS: dict[str, str] = {
    "together": "https://api.together.xyz/v1",
    "groq": "https://api.groq.com/openai/v1",
}

# Friendly names -> host-specific model ids.
HOSTED_MODELS: dict[str, dict[str, str]] = {
    "local": {"llama-3-70b": "llama3:70b", "llama-3-8b": "llama3"},
    "together": {
        "llama-3-70b": "meta-llama/Llama-3-70b-chat-hf",
        "llama-3-8b": "meta-llama/Llama-3-8b-chat-hf",
    },
    "groq": {"llama-3-70b": "llama3-70b-8192", "llama-3-8b": "llama3-8b-8192"},
}


class _HostedLlama(OpenAICompatibleAdapter):
    _provider = "llama"
    _default_model = "llama-3-70b"


class LlamaAdapter(BaseLLMClient):
    """Llama models on a local Ollama server or a hosted endpoint."""

    def __init__(
        self,
        model: str = "llama-3-70b",
        host: str = "local",
        base_url: str = "http://localhost:11434",
        api_key: str = "",
        timeout: float = 120.0,
        input_share: float = 0.6,
        **kwargs: Any,
    ):
        if host not in HOSTED_MODELS:
            raise ValueError(f"Unsupported Llama host: {host!r}")
        self._model = model
        self._host = host
        self._base_url = base_url
        self._timeout = timeout
        self.input_share = input_share
        self._hosted: _HostedLlama | None = None
        if host != "local":
            self._hosted = _HostedLlama(
                model=model,
                api_key=api_key,
                base_url=HOSTED_BASE_URLS[host],
                timeout=timeout,
            )

    def resolve_model(self, model: str | None) -> str:
        name = model or self._model
        return HOSTED_MODELS[self._host].get(name, name)

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        if self._hosted is not None:
            response = await self._hosted.generate_completion(
                prompt, system_prompt, self.resolve_model(model), temperature, max_tokens,
            )
            response.model = model or self._model
            return response
        return await self._generate_local(prompt, system_prompt, model, temperature, max_tokens)

    async def _generate_local(
        self,
        prompt: str,
        system_prompt: str | None,
        model: str | None,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        import ollama

        client = ollama.AsyncClient(host=self._base_url, timeout=self._timeout)
        msgs: list[dict[str, str]] = []
        if system_prompt:
            msgs.append({"role": "system", "content": system_prompt})
        msgs.append({"role": "user", "content": prompt})

        options: dict[str, Any] = {
            "num_predict": max_tokens,
            "temperature": temperature,
        }
        t0 = time.monotonic()
        try:
            resp = await client.chat(model=self.resolve_model(model), messages=msgs, options=options)
        except Exception as e:
            raise classify_provider_exception(e, "llama") from e
        latency = int((time.monotonic() - t0) * 1000)

        content = resp["message"]["content"]
        prompt_tokens = resp.get("prompt_eval_count") or self.count_tokens(prompt)
        completion_tokens = resp.get("eval_count") or self.count_tokens(content)
        return LLMResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=model or self._model,
            provider="llama",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "llama"

    @property
    def default_model(self) -> str:
        return self._model
