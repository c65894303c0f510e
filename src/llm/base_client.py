# src/llm/base_client.py - v2
"""Abstract LLM client interface plus optional capability interfaces.

Every provider implements BaseLLMClient. Extra features (vision, live
search) are separate ABCs; callers feature-detect with ``supports`` instead
of assuming every provider has them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TypeVar

from docuforge.llm.models import ImageInput, LLMResponse, SearchResponse
from docuforge.tracking.cost_calculator import estimate_cost

T = TypeVar("T")


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    # Character-to-token ratio used by count_tokens.
    chars_per_token: float = 4.0
    # Assumed input share of a token total when the split is unknown.
    input_share: float = 0.6

    @abstractmethod
    async def generate_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        """Text completion.

        Raises:
            ProviderError: Classified provider failure.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic, gemini, perplexity, llama)."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a call does not name one."""

    def count_tokens(self, text: str) -> int:
        """Approximate token count from character length."""
        if not text:
            return 0
        return max(1, round(len(text) / self.chars_per_token))

    def estimate_cost(self, total_tokens: int, model: str | None = None) -> float:
        """USD estimate for ``total_tokens`` using the assumed input/output split."""
        return estimate_cost(
            self.provider_name,
            model or self.default_model,
            total_tokens,
            input_share=self.input_share,
        )


class VisionCapable(ABC):
    """Provider can take images alongside the prompt."""

    @abstractmethod
    async def complete_with_vision(
        self,
        prompt: str,
        images: list[ImageInput],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        """Vision-enabled completion (images + text)."""


class SearchCapable(ABC):
    """Provider can ground a completion in live web search with citations."""

    @abstractmethod
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
        """Search-grounded completion."""


def supports(client: object, capability: type[T]) -> bool:
    """Feature-detect an optional capability interface."""
    return isinstance(client, capability)
