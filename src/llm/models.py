# src/llm/models.py - v2
"""LLM-specific types: ImageInput, LLMResponse, SearchResponse."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ImageInput(BaseModel):
    """Image payload for vision-enabled completions."""

    data: bytes
    media_type: str
    source_id: str | None = None


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    provider: str
    latency_ms: int = 0
    raw_response: Any = None


class SearchResponse(LLMResponse):
    """Completion grounded in live search results."""

    citations: list[str] = []
