# tests/unit/pipeline/test_refinement_chain.py - v2
"""Tests for pipeline/refinement_chain.py - combination and polish fallback."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from docuforge.core.errors import ProviderError, ProviderErrorKind, RetryExhausted
from docuforge.core.models import Outline, OutlineSection
from docuforge.llm.models import LLMResponse
from docuforge.pipeline.refinement_chain import RefinementChain, combine_sections


def _response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content, prompt_tokens=10, completion_tokens=20, total_tokens=30,
        model="gpt-4o", provider="openai",
    )


@pytest.fixture
def outline() -> Outline:
    return Outline(
        title="Plan",
        sections={
            "c": OutlineSection(title="Gamma", order=3),
            "a": OutlineSection(title="Alpha", order=1),
            "b": OutlineSection(title="Beta", order=2),
        },
    )


class TestCombineSections:
    def test_outline_order(self, outline):
        content = combine_sections(outline, {"c": "C text", "a": " A text \n", "b": "B text"})
        assert content == "# Plan\n\n## Alpha\n\nA text\n\n## Beta\n\nB text\n\n## Gamma\n\nC text"

    def test_missing_section_skipped(self, outline):
        content = combine_sections(outline, {"a": "A"})
        assert "Beta" not in content
        assert content.endswith("## Alpha\n\nA")


class TestRefinementChain:
    @pytest.mark.asyncio
    async def test_refined(self):
        call = AsyncMock(return_value=_response("  Polished.  "))
        text, response = await RefinementChain("business_plan").refine(call, "openai", "Draft", {}, 0.3)
        assert text == "Polished."
        assert response is not None
        prompt, _, temperature, max_tokens = call.await_args.args
        assert prompt.endswith("---\nDraft")
        assert temperature == 0.3
        assert max_tokens == 5000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ProviderError(ProviderErrorKind.UNAVAILABLE, "openai", "503"),
        RetryExhausted(3, ProviderError(ProviderErrorKind.RATE_LIMITED, "openai")),
    ])
    async def test_failure_keeps_draft(self, error):
        call = AsyncMock(side_effect=error)
        text, response = await RefinementChain("business_plan").refine(call, "openai", "Draft", {}, 0.3)
        assert text == "Draft"
        assert response is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [ProviderErrorKind.UNAUTHORIZED, ProviderErrorKind.INVALID_REQUEST])
    async def test_non_transient_error_propagates(self, kind):
        call = AsyncMock(side_effect=ProviderError(kind, "openai", "rejected"))
        with pytest.raises(ProviderError):
            await RefinementChain("business_plan").refine(call, "openai", "Draft", {}, 0.3)

    @pytest.mark.asyncio
    async def test_empty_reply_keeps_draft(self):
        call = AsyncMock(return_value=_response("   "))
        text, response = await RefinementChain("grant_proposal").refine(call, "openai", "Draft", {}, 0.3)
        assert text == "Draft"
        assert response is not None
