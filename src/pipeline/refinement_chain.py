# src/pipeline/refinement_chain.py - v2
"""Refinement stage: combine sections in outline order, optionally polish.

A failed polish call falls back to the unrefined combination. Only a
non-transient provider error (bad credentials, rejected request) propagates
and fails the run.
"""

from __future__ import annotations

import logging
from typing import Any

from docuforge.config.document_types import DocumentType
from docuforge.core.errors import DocuforgeError, ProviderError
from docuforge.core.models import Outline
from docuforge.llm.models import LLMResponse
from docuforge.pipeline.state import CompletionCall
from docuforge.prompts.builder import PromptBuilder

logger = logging.getLogger(__name__)

REFINEMENT_MAX_TOKENS = 5000


def combine_sections(outline: Outline, sections: dict[str, str]) -> str:
    """Render the document: title, then each section under its heading by ``order``."""
    parts = [f"# {outline.title}"]
    for section_id, section in outline.ordered_sections():
        text = sections.get(section_id)
        if text is None:
            continue
        parts.append(f"## {section.title}\n\n{text.strip()}")
    return "\n\n".join(parts)


class RefinementChain:
    """Low-temperature polish over the combined document."""

    def __init__(self, document_type: DocumentType | str, max_tokens: int = REFINEMENT_MAX_TOKENS) -> None:
        self._document_type = DocumentType(document_type)
        self._builder = PromptBuilder(self._document_type)
        self._max_tokens = max_tokens

    async def refine(
        self,
        call: CompletionCall,
        provider: str,
        content: str,
        payload: dict[str, Any],
        temperature: float,
        prompt_style: str = "professional",
    ) -> tuple[str, LLMResponse | None]:
        """Return (refined content, response), or (content, None) when the polish fails."""
        try:
            response = await call(
                self._builder.refinement_prompt(content, payload),
                self._builder.system_prompt(provider, prompt_style),
                temperature,
                self._max_tokens,
            )
        except DocuforgeError as exc:
            if isinstance(exc, ProviderError) and not exc.is_transient:
                raise
            logger.warning("Refinement failed, keeping unrefined document: %s", exc)
            return content, None

        refined = response.content.strip() if response.content else ""
        if not refined:
            logger.warning("Refinement returned empty text, keeping unrefined document")
            return content, response
        return refined, response
