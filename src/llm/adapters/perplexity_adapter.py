# src/llm/adapters/perplexity_adapter.py - v1
"""Perplexity adapter (OpenAI-compatible API with live web search).

Implements SearchCapable: ``generate_with_search`` asks for citations and
returns them alongside the content, with a numbered sources list appended.
Short model aliases map to Perplexity's online model ids.
"""

from __future__ import annotations

from typing import Any

from docuforge.llm.adapters.openai_adapter import OpenAICompatibleAdapter
from docuforge.llm.base_client import SearchCapable
from docuforge.llm.models import LLMResponse, SearchResponse

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

MODEL_ALIASES: dict[str, str] = {
    "sonar-small": "llama-3-sonar-small-32k-online",
    "sonar-medium": "llama-3-sonar-medium-32k-online",
    "sonar-large": "llama-3-sonar-large-32k-online",
    "chat-small": "llama-3-sonar-small-32k-chat",
    "chat-large": "llama-3-sonar-large-32k-chat",
}


class PerplexityAdapter(OpenAICompatibleAdapter, SearchCapable):
    """Perplexity online models."""

    _provider = "perplexity"
    _default_model = "sonar-large"
    chars_per_token = 3.8

    def __init__(
        self,
        model: str | None = None,
        api_key: str = "",
        base_url: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            model=model, api_key=api_key, base_url=base_url or PERPLEXITY_BASE_URL, **kwargs,
        )

    def resolve_model(self, model: str | None) -> str:
        name = model or self._model
        return MODEL_ALIASES.get(name, name)

    def _to_response(
        self, resp: Any, prompt: str, latency: int, model: str | None
    ) -> LLMResponse:
        response = super()._to_response(resp, prompt, latency, model)
        # Report the alias so cost lookups hit the pricing table.
        response.model = model or self._model
        return response

    async def generate_with_search(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        search_domains: list[str] | None = None,
        search_recency: str = "month",
    ) -> SearchResponse:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        resp, latency = await self._chat(
            model=self.resolve_model(model),
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            extra_body={
                "return_citations": True,
                "search_domain_filter": search_domains or [],
                "search_recency_filter": search_recency,
            },
        )
        base = self._to_response(resp, prompt, latency, model)
        citations = [str(c) for c in (getattr(resp, "citations", None) or [])]
        content = base.content
        if citations:
            sources = "\n".join(f"[{i}] {c}" for i, c in enumerate(citations, start=1))
            content = f"{content}\n\n**Sources:**\n{sources}"
        return SearchResponse(
            **base.model_dump(exclude={"content", "raw_response"}),
            content=content,
            raw_response=resp,
            citations=citations,
        )
