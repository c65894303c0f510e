# src/prompts/builder.py - v1
"""Assemble outline, section and refinement prompts from profiles."""

from __future__ import annotations

import json
from typing import Any

from docuforge.config.document_types import DocumentType
from docuforge.core.models import Outline, OutlineSection
from docuforge.prompts.profiles import LENGTH_IN_WORDS, PROMPT_STYLES, get_profile

OUTLINE_JSON_SHAPE = {
    "title": "Document title",
    "introduction": {"hook": "...", "thesis": "...", "preview": "..."},
    "sections": {
        "section_id": {
            "title": "Section title",
            "description": "What the section covers",
            "keyPoints": ["point 1", "point 2"],
            "estimatedWords": 500,
            "order": 1,
        }
    },
    "conclusion": {"summary": "...", "callToAction": "optional"},
    "metadata": {"totalSections": 4, "estimatedTotalWords": 2000, "suggestedTone": "professional"},
}

# Appended per stage so each provider gets the instruction style it follows best.
_PROVIDER_SUFFIX: dict[str, dict[str, str]] = {
    "outline": {
        "openai": "Respond with a single JSON object only.",
        "anthropic": "Respond with the JSON object only, no preamble.",
        "gemini": "Output valid JSON. Do not wrap it in prose.",
        "perplexity": "Respond with JSON only; put any sources inside the section descriptions.",
        "llama": "Output only JSON. Start your reply with '{'.",
    },
    "section": {
        "anthropic": "Write in flowing prose; avoid bullet lists unless essential.",
        "perplexity": "Cite sources inline where you rely on them.",
        "llama": "Write the section text only, without repeating the instructions.",
    },
}


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


class PromptBuilder:
    """Stateless prompt assembly for one document type."""

    def __init__(self, document_type: DocumentType | str) -> None:
        self._profile = get_profile(document_type)

    @property
    def noun(self) -> str:
        return self._profile.noun

    def system_prompt(self, provider: str, style: str = "professional") -> str:
        modifier = PROMPT_STYLES.get(style, PROMPT_STYLES["professional"])
        return f"{self._profile.role_for(provider)}\n\nWriting Style: {modifier}"

    def outline_prompt(self, provider: str, payload: dict[str, Any]) -> str:
        length = LENGTH_IN_WORDS.get(str(payload.get("outputLength", "medium")), LENGTH_IN_WORDS["medium"])
        parts = [
            f"Create a detailed outline for a {self.noun}.",
            "",
            "Details:",
            self._profile.describe(payload),
            f"Target length: approximately {length} words",
            "",
            "The outline must:",
            _bullets(self._profile.outline_focus),
        ]
        hint = self._profile.provider_outline_hints.get(provider)
        if hint:
            parts += ["", hint]
        parts += [
            "",
            "Return JSON with this structure (section ids are snake_case, "
            "order starts at 1):",
            json.dumps(OUTLINE_JSON_SHAPE, indent=2),
        ]
        suffix = _PROVIDER_SUFFIX["outline"].get(provider)
        if suffix:
            parts += ["", suffix]
        return "\n".join(parts)

    def section_prompt(
        self,
        provider: str,
        section_id: str,
        section: OutlineSection,
        outline: Outline,
        payload: dict[str, Any],
        previous_summaries: dict[str, str],
    ) -> str:
        parts = [
            f"Write the \"{section.title}\" section ({section_id}) of the {self.noun} "
            f"titled \"{outline.title}\".",
            "",
            "Document details:",
            self._profile.describe(payload),
            "",
            f"Overall thesis: {outline.introduction.thesis or 'Not specified'}",
            f"Tone: {outline.metadata.suggested_tone}",
            "",
            f"Section purpose: {section.description or section.title}",
            "Cover these key points:",
            _bullets(section.key_points) if section.key_points else "- Use your judgement",
            f"Target length: about {section.estimated_words} words.",
        ]
        if previous_summaries:
            parts += ["", "Previously written sections (keep continuity, do not repeat):"]
            parts += [f"- {sid}: {summary}" for sid, summary in previous_summaries.items()]
        parts += ["", "Guidelines:", _bullets(self._profile.section_guidance)]
        suffix = _PROVIDER_SUFFIX["section"].get(provider)
        if suffix:
            parts += ["", suffix]
        parts += ["", "Return only the section body text, without the section heading."]
        return "\n".join(parts)

    def refinement_prompt(self, content: str, payload: dict[str, Any]) -> str:
        return "\n".join([
            f"Polish the following {self.noun} for flow and consistency.",
            "",
            "Goals:",
            _bullets(self._profile.refinement_goals + [
                "Preserve every section heading and its order",
                "Do not add new facts",
            ]),
            "",
            "Return the full revised document only.",
            "",
            "---",
            content,
        ])
