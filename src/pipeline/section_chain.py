# src/pipeline/section_chain.py - v1
"""Section stage: one provider call per outline section.

Each prompt carries the section's outline entry, the original input and a
first/last-sentence digest of every section written so far. The response is
cleaned up and scored against the outline (word count, key-point coverage,
overlap with earlier sections); scores become revision hints on the result
and never trigger extra provider calls.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from docuforge.config.document_types import DocumentType
from docuforge.core.errors import SectionParseError
from docuforge.core.models import GeneratedSection, Outline, OutlineSection
from docuforge.llm.models import LLMResponse
from docuforge.pipeline.outline_chain import stage_temperature
from docuforge.pipeline.state import CompletionCall
from docuforge.prompts.builder import PromptBuilder

logger = logging.getLogger(__name__)

TOKENS_PER_WORD = 1.3
TOKEN_HEADROOM = 1.2
PHRASE_LENGTH = 5
OVERLAP_THRESHOLD = 0.2

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_STRUCTURAL_LINE_RE = re.compile(r"^\s*(?:#|[-*>]|\d+[.)])")


def max_tokens_for(target_words: int, cap: int | None = None) -> int:
    """Completion budget for a section of ``target_words`` words."""
    tokens = math.ceil(math.ceil(target_words * TOKENS_PER_WORD) * TOKEN_HEADROOM)
    return min(tokens, cap) if cap else tokens


def fix_formatting(content: str) -> str:
    """Collapse runs of spaces and blank lines, close dangling prose lines, straighten quotes."""
    content = re.sub(r" {2,}", " ", content.strip())
    content = re.sub(r"\n{3,}", "\n\n", content)

    lines = content.split("\n")
    for i, line in enumerate(lines[:-1]):
        # Prose lines ending in a bare word get a full stop; headings and lists don't.
        if (
            line.rstrip()[-1:].isalpha()
            and len(line.split()) >= 6
            and not _STRUCTURAL_LINE_RE.match(line)
        ):
            lines[i] = line.rstrip() + "."
    content = "\n".join(lines)

    return content.replace("``", '"').replace("''", '"')


def count_words(content: str) -> int:
    return len(re.sub(r"[^\w\s]|_", " ", content).split())


def split_key_points(content: str, key_points: list[str]) -> tuple[list[str], list[str]]:
    """Split ``key_points`` into (covered, missing).

    A point counts as covered when at least half of its words longer than
    three characters appear in the content.
    """
    lowered = content.lower()
    covered: list[str] = []
    missing: list[str] = []
    for point in key_points:
        keywords = [w for w in point.lower().split() if len(w) > 3]
        matches = sum(1 for w in keywords if w in lowered)
        (covered if matches >= len(keywords) * 0.5 else missing).append(point)
    return covered, missing


def _phrases(text: str, length: int = PHRASE_LENGTH) -> list[str]:
    words = text.lower().split()
    return [" ".join(words[i:i + length]) for i in range(len(words) - length + 1)]


def has_significant_overlap(content: str, previous_texts: list[str]) -> bool:
    current = _phrases(content)
    if not current:
        return False
    for previous in previous_texts:
        seen = set(_phrases(previous))
        overlap = sum(1 for phrase in current if phrase in seen)
        if overlap > len(current) * OVERLAP_THRESHOLD:
            return True
    return False


def identify_revisions(
    word_count: int,
    target_words: int,
    missing: list[str],
    overlaps: bool,
) -> list[str]:
    suggestions: list[str] = []
    if word_count < target_words * 0.8:
        suggestions.append(f"Section is {target_words - word_count} words short of target")
    elif word_count > target_words * 1.3:
        suggestions.append(f"Section exceeds target by {word_count - target_words} words")
    if missing:
        suggestions.append(f"Missing key points: {', '.join(missing)}")
    if overlaps:
        suggestions.append("Content may overlap with previous sections")
    return suggestions


def summarize_for_context(content: str) -> str:
    """First and last sentence of a section, or all of it when short."""
    sentences = [s.strip() for s in _SENTENCE_RE.findall(content)]
    if not sentences:
        return content.strip()[:200]
    if len(sentences) > 3:
        return f"{sentences[0]} [...] {sentences[-1]}"
    return " ".join(sentences)


class SectionChain:
    """Generates and scores a single section."""

    def __init__(self, document_type: DocumentType | str, max_tokens_cap: int | None = 4000) -> None:
        self._document_type = DocumentType(document_type)
        self._builder = PromptBuilder(self._document_type)
        self._max_tokens_cap = max_tokens_cap

    def build_prompt(
        self,
        provider: str,
        section_id: str,
        section: OutlineSection,
        outline: Outline,
        payload: dict[str, Any],
        previous: dict[str, str],
    ) -> str:
        summaries = {sid: summarize_for_context(text) for sid, text in previous.items()}
        return self._builder.section_prompt(
            provider, section_id, section, outline, payload, summaries,
        )

    async def generate(
        self,
        call: CompletionCall,
        provider: str,
        section_id: str,
        outline: Outline,
        payload: dict[str, Any],
        previous: dict[str, str],
        prompt_style: str = "professional",
        temperature: float | None = None,
    ) -> tuple[GeneratedSection, LLMResponse]:
        """Generate one section with continuity context from ``previous``.

        Raises:
            ProviderError / RetryExhausted: From ``call``.
            SectionParseError: Provider returned no text.
        """
        section = outline.sections[section_id]
        response = await call(
            self.build_prompt(provider, section_id, section, outline, payload, previous),
            self._builder.system_prompt(provider, prompt_style),
            stage_temperature(provider, "section", temperature),
            max_tokens_for(section.estimated_words, self._max_tokens_cap),
        )
        if not response.content or not response.content.strip():
            raise SectionParseError(f"Empty response for section '{section_id}'")

        return self.finalize(section_id, section, response.content, previous, response), response

    def finalize(
        self,
        section_id: str,
        section: OutlineSection,
        raw_content: str,
        previous: dict[str, str],
        response: LLMResponse | None = None,
    ) -> GeneratedSection:
        """Clean up raw section text and attach quality hints."""
        content = fix_formatting(raw_content)
        word_count = count_words(content)
        covered, missing = split_key_points(content, section.key_points)
        overlaps = has_significant_overlap(content, list(previous.values()))
        revisions = identify_revisions(word_count, section.estimated_words, missing, overlaps)
        if revisions:
            logger.debug("Section '%s' revision hints: %s", section_id, "; ".join(revisions))

        return GeneratedSection(
            section_id=section_id,
            title=section.title,
            content=content,
            word_count=word_count,
            target_words=section.estimated_words,
            key_points_covered=covered,
            missing_key_points=missing,
            suggested_revisions=revisions,
            citations=list(getattr(response, "citations", []) or []),
        )
