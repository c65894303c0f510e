# src/pipeline/outline_chain.py - v1
"""Outline stage: prompt, parse and per-document-type post-processing.

Parsing is strict first (JSON, optionally inside a fenced block). When that
fails the response goes through a line-based extractor that recognises
numbered, bulleted or markdown headings. The fallback is logged every time
it runs so prompt drift stays visible.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from docuforge.config.document_types import BIOGRAPHY_CHRONOLOGY, DocumentType
from docuforge.core.errors import OutlineParseError
from docuforge.core.models import Outline, OutlineSection
from docuforge.llm.models import LLMResponse
from docuforge.pipeline.state import CompletionCall
from docuforge.prompts.builder import PromptBuilder

logger = logging.getLogger(__name__)

# Provider -> stage -> sampling temperature.
STAGE_TEMPERATURES: dict[str, dict[str, float]] = {
    "openai": {"outline": 0.7, "section": 0.8, "refinement": 0.3},
    "anthropic": {"outline": 0.7, "section": 0.8, "refinement": 0.4},
    "gemini": {"outline": 0.6, "section": 0.7, "refinement": 0.3},
    "perplexity": {"outline": 0.5, "section": 0.6, "refinement": 0.3},
    "llama": {"outline": 0.7, "section": 0.8, "refinement": 0.4},
}
DEFAULT_STAGE_TEMPERATURE = 0.7

FALLBACK_SECTION_WORDS = 500
FINANCIAL_MIN_WORDS = 800

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_HEADING_RE = re.compile(r"^(?:\d+\.|#{1,3}|-)?\s*([A-Za-z\s]+):?$")
_LIST_MARKER_RE = re.compile(r"^(?:\d+\.|#{1,3}|-)")


def stage_temperature(provider: str, stage: str, override: float | None = None) -> float:
    """Sampling temperature for ``stage``; an explicit override wins."""
    if override is not None:
        return override
    return STAGE_TEMPERATURES.get(provider, {}).get(stage, DEFAULT_STAGE_TEMPERATURE)


def parse_outline(content: str) -> Outline:
    """Parse a provider response into an Outline.

    Raises:
        OutlineParseError: Neither strict nor fallback parsing found a section.
    """
    try:
        outline = Outline.model_validate(_extract_json(content))
        if outline.sections:
            return outline
        reason = "outline has no sections"
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        reason = str(exc).splitlines()[0] if str(exc) else type(exc).__name__

    logger.warning("Strict outline parse failed (%s); using line-based fallback", reason)
    outline = extract_outline_from_text(content)
    if not outline.sections:
        raise OutlineParseError("No outline structure found in provider response")
    return outline


def _extract_json(content: str) -> Any:
    block = _CODE_BLOCK_RE.search(content)
    if block:
        text = block.group(1)
    else:
        match = _JSON_OBJECT_RE.search(content)
        text = match.group(0) if match else content
    return json.loads(text)


def extract_outline_from_text(text: str) -> Outline:
    """Heuristic outline from headings and the lines that follow them.

    A heading starts a section. The first plain line under it becomes the
    description and later plain lines become key points.
    """
    sections: dict[str, OutlineSection] = {}
    current = ""
    order = 0

    for line in text.splitlines():
        trimmed = line.strip()
        heading = _HEADING_RE.match(trimmed)
        if heading and trimmed and len(trimmed) < 50 and heading.group(1).strip():
            title = heading.group(1).strip()
            current = re.sub(r"\s+", "_", title.lower())
            sections[current] = OutlineSection(
                title=title, estimated_words=FALLBACK_SECTION_WORDS, order=order,
            )
            order += 1
        elif current and trimmed and not _LIST_MARKER_RE.match(trimmed):
            section = sections[current]
            if not section.description:
                section.description = trimmed
            else:
                section.key_points.append(trimmed)

    outline = Outline(title="Generated Document", sections=sections)
    outline.metadata.total_sections = len(sections)
    outline.metadata.estimated_total_words = len(sections) * FALLBACK_SECTION_WORDS
    return outline


def post_process_outline(document_type: DocumentType | str, outline: Outline) -> Outline:
    """Apply document-type structure rules and recompute totals."""
    doc_type = DocumentType(document_type)

    if doc_type == DocumentType.BIOGRAPHY:
        chronological = [sid for sid in BIOGRAPHY_CHRONOLOGY if sid in outline.sections]
        if chronological:
            rest = [sid for sid, _ in outline.ordered_sections() if sid not in chronological]
            for order, sid in enumerate(chronological + rest):
                outline.sections[sid].order = order

    elif doc_type == DocumentType.BUSINESS_PLAN:
        financial = outline.sections.get("financial_projections")
        if financial is not None:
            financial.estimated_words = max(financial.estimated_words, FINANCIAL_MIN_WORDS)

    elif doc_type == DocumentType.GRANT_PROPOSAL:
        if "budget" not in outline.sections:
            next_order = max((s.order for s in outline.sections.values()), default=-1) + 1
            outline.sections["budget"] = OutlineSection(
                title="Budget Justification",
                description="Detailed budget breakdown and justification",
                key_points=["Personnel costs", "Equipment", "Operations", "Indirect costs"],
                estimated_words=600,
                order=max(next_order, len(outline.sections)),
            )

    outline.metadata.total_sections = len(outline.sections)
    outline.metadata.estimated_total_words = sum(
        s.estimated_words for s in outline.sections.values()
    )
    return outline


class OutlineChain:
    """Builds the outline prompt, calls the provider and parses the result."""

    def __init__(self, document_type: DocumentType | str, max_tokens: int = 2000) -> None:
        self._document_type = DocumentType(document_type)
        self._builder = PromptBuilder(self._document_type)
        self._max_tokens = max_tokens

    async def generate(
        self,
        call: CompletionCall,
        provider: str,
        payload: dict[str, Any],
        prompt_style: str = "professional",
        temperature: float | None = None,
    ) -> tuple[Outline, LLMResponse]:
        """Generate and post-process an outline.

        Raises:
            ProviderError / RetryExhausted: From ``call``.
            OutlineParseError: Response held no usable structure.
        """
        response = await call(
            self._builder.outline_prompt(provider, payload),
            self._builder.system_prompt(provider, prompt_style),
            stage_temperature(provider, "outline", temperature),
            self._max_tokens,
        )
        outline = post_process_outline(self._document_type, parse_outline(response.content))
        logger.info(
            "Outline ready: %d sections, ~%d words",
            outline.metadata.total_sections, outline.metadata.estimated_total_words,
        )
        return outline, response
