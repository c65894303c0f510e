# src/jobs/cache_warmer.py - v2
"""Pre-populate outline cache entries for common request patterns.

Warming runs the same outline get-or-generate path as a real generation,
but the generator builds a synthetic outline from the document type's
default section plan, so warming never bills a provider. Patterns are
processed one at a time with a delay between them; a pattern that fails is
logged and skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from docuforge.cache.manager import CacheManager, should_cache
from docuforge.cache.models import GeneratedValue
from docuforge.config.document_types import DEFAULT_SECTIONS, DocumentType
from docuforge.core.errors import DocuforgeError
from docuforge.core.inputs import canonical_payload
from docuforge.core.models import (
    Outline,
    OutlineConclusion,
    OutlineIntroduction,
    OutlineMetadata,
    OutlineSection,
)
from docuforge.pipeline.outline_chain import post_process_outline

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]

SYNTHETIC_SECTION_WORDS = 500

COMMON_PATTERNS: dict[DocumentType, list[dict[str, Any]]] = {
    DocumentType.BIOGRAPHY: [
        {
            "subject": {"name": "Executive", "occupation": "CEO"},
            "purpose": "professional",
            "tone": "formal",
            "focusAreas": ["leadership", "achievements", "vision"],
            "outputLength": "medium",
        },
        {
            "subject": {"name": "Academic", "occupation": "Professor"},
            "purpose": "academic",
            "tone": "formal",
            "focusAreas": ["research", "publications", "teaching"],
            "outputLength": "long",
        },
    ],
    DocumentType.BUSINESS_PLAN: [
        {
            "business": {"industry": "technology", "stage": "startup"},
            "sections": ["executive_summary", "market_analysis", "financial_projections"],
        },
        {
            "business": {"industry": "retail", "stage": "growth"},
            "sections": ["executive_summary", "marketing_strategy", "operations_plan"],
        },
    ],
    DocumentType.GRANT_PROPOSAL: [
        {
            "organization": {"name": "Nonprofit", "type": "nonprofit"},
            "grant": {"programName": "Community Development", "amount": "50000"},
            "project": {"title": "Youth Education Program", "duration": "12 months"},
            "focusArea": "education",
        },
        {
            "organization": {"name": "Research Institute", "type": "research"},
            "grant": {"programName": "Scientific Research", "amount": "200000"},
            "project": {"title": "Climate Study", "duration": "24 months"},
            "focusArea": "environment",
        },
    ],
    DocumentType.CASE_SUMMARY: [
        {
            "caseInfo": {"caseName": "Contract Dispute", "court": "federal"},
            "includeAnalysis": True,
        },
    ],
    DocumentType.MEDICAL_REPORT: [
        # Templates only; real reports are never warmed.
        {
            "reportType": "consultation",
            "specialty": "general_practice",
            "templateOnly": True,
            "includeDisclaimer": True,
        },
    ],
}


class WarmResult(BaseModel):
    warmed: int
    total: int
    skipped: int = 0


def synthetic_outline(document_type: DocumentType | str, payload: dict[str, Any]) -> Outline:
    """Outline built from the default section plan; no provider involved."""
    doc_type = DocumentType(document_type)
    sections = {
        section_id: OutlineSection(
            title=title,
            description=f"{title} of the {doc_type.value.replace('_', ' ')}",
            key_points=list(key_points),
            estimated_words=SYNTHETIC_SECTION_WORDS,
            order=order,
        )
        for order, (section_id, title, key_points) in enumerate(DEFAULT_SECTIONS[doc_type])
    }
    outline = Outline(
        title=str(payload.get("title") or doc_type.value.replace("_", " ").title()),
        introduction=OutlineIntroduction(
            hook="Engaging opening statement",
            thesis="Main theme of the document",
            preview="Overview of what follows",
        ),
        sections=sections,
        conclusion=OutlineConclusion(summary="Key takeaways", call_to_action="Next steps"),
        metadata=OutlineMetadata(),
    )
    return post_process_outline(doc_type, outline)


class CacheWarmer:
    """Serialized outline warming for one cache.

    Args:
        cache_manager: Cache front end shared with the orchestrator.
        delay_s: Pause between patterns.
        sleep: Injected sleep (tests pass a no-op).
    """

    def __init__(
        self,
        cache_manager: CacheManager,
        delay_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._cache = cache_manager
        self._delay_s = delay_s
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()

    async def warm(
        self,
        document_type: DocumentType | str,
        provider: str,
        model: str,
        patterns: list[dict[str, Any]] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> WarmResult:
        """Warm outline entries for ``patterns`` (or the common ones).

        Returns:
            WarmResult with the number of patterns warmed out of the total.
        """
        doc_type = DocumentType(document_type)
        to_warm = patterns if patterns is not None else COMMON_PATTERNS.get(doc_type, [])
        total = len(to_warm)
        if total == 0:
            logger.info("No patterns to warm for %s", doc_type.value)
            return WarmResult(warmed=0, total=0)
        if not self._cache.cache.enabled:
            logger.warning("Cache disabled; nothing warmed")
            return WarmResult(warmed=0, total=total, skipped=total)

        warmed = skipped = 0
        logger.info("Warming %d %s patterns for %s/%s", total, doc_type.value, provider, model)

        # One warming batch at a time per cache.
        async with self._lock:
            for index, pattern in enumerate(to_warm):
                if await self._warm_one(doc_type, provider, model, pattern):
                    warmed += 1
                else:
                    skipped += 1
                if on_progress is not None:
                    maybe = on_progress(index + 1, total)
                    if asyncio.iscoroutine(maybe):
                        await maybe
                if index + 1 < total and self._delay_s > 0:
                    await self._sleep(self._delay_s)

        logger.info("Warmed %d/%d %s patterns", warmed, total, doc_type.value)
        return WarmResult(warmed=warmed, total=total, skipped=skipped)

    async def _warm_one(
        self,
        doc_type: DocumentType,
        provider: str,
        model: str,
        pattern: dict[str, Any],
    ) -> bool:
        try:
            payload = canonical_payload(doc_type, pattern)
            if doc_type == DocumentType.MEDICAL_REPORT and not payload.get("templateOnly"):
                logger.warning("Skipping non-template medical pattern")
                return False
            if not should_cache(doc_type, payload):
                logger.warning("Skipping %s pattern with personal data", doc_type.value)
                return False

            async def generate() -> GeneratedValue:
                outline = synthetic_outline(doc_type, payload)
                return GeneratedValue(value=outline.model_dump(mode="json"))

            await self._cache.get_or_generate_outline(
                doc_type.value, provider, model, payload, generate,
            )
            return True
        except (DocuforgeError, ValueError, TypeError) as exc:
            logger.error("Failed to warm %s pattern: %s", doc_type.value, exc)
            return False
