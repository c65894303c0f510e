# src/cache/manager.py - v2
"""Stage-aware get-or-generate helpers on top of CacheService.

Knows how each stage derives its key (sections fold in the section id and
an outline hash so outline changes invalidate dependent sections), which
content may be cached at all, and what a reuse is worth.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from docuforge.cache.fingerprint import hash_object, hash_text
from docuforge.cache.models import CacheKey, CacheStage, CachedResult, GeneratedValue
from docuforge.cache.service import CacheService
from docuforge.config.document_types import DocumentType

logger = logging.getLogger(__name__)

Generator = Callable[[], Awaitable[Any]]

# Key names that mark a payload as carrying personal or identifying data.
PERSONAL_INFO_KEYS: frozenset[str] = frozenset({
    "ssn",
    "socialsecuritynumber",
    "dateofbirth",
    "dob",
    "patientid",
    "medicalrecordnumber",
    "mrn",
    "phonenumber",
    "address",
    "email",
})

# Typical outline cost per provider/model in USD; used when the generator
# does not report an actual cost.
OUTLINE_COST_ESTIMATES: dict[str, dict[str, float]] = {
    "openai": {"gpt-4": 0.12, "gpt-4-turbo": 0.10, "gpt-4o": 0.05, "gpt-3.5-turbo": 0.02},
    "anthropic": {"claude-3-opus": 0.15, "claude-3-sonnet": 0.08, "claude-3-haiku": 0.03},
    "gemini": {"gemini-1.5-pro": 0.07, "gemini-1.5-flash": 0.02},
    "perplexity": {"sonar-large": 0.05, "sonar-small": 0.01},
    "llama": {"llama-3-70b": 0.04, "llama-3-8b": 0.01},
}
DEFAULT_OUTLINE_COST = 0.05
SECTION_COST_MULTIPLIER = 2.5
DOCUMENT_COST_MULTIPLIER = 12.0
EMBEDDING_COST = 0.0001


def has_personal_info(payload: Any) -> bool:
    """True if any (nested) key names a personal identifier with a value."""
    if isinstance(payload, dict):
        for key, value in payload.items():
            normalized = str(key).replace("_", "").lower()
            if normalized in PERSONAL_INFO_KEYS and value not in (None, "", [], {}):
                return True
            if has_personal_info(value):
                return True
    elif isinstance(payload, list):
        return any(has_personal_info(item) for item in payload)
    return False


def should_cache(document_type: DocumentType | str, payload: dict[str, Any]) -> bool:
    """Cache-eligibility guard evaluated before any read or write.

    Medical content with personal data is never eligible, template flag or
    not. Everything else, templates included, is.
    """
    if DocumentType(document_type) == DocumentType.MEDICAL_REPORT and has_personal_info(payload):
        return False
    return True


def estimate_stage_cost(stage: CacheStage, provider: str, model: str) -> float:
    outline_cost = OUTLINE_COST_ESTIMATES.get(provider, {}).get(model, DEFAULT_OUTLINE_COST)
    if stage == CacheStage.SECTION:
        return outline_cost * SECTION_COST_MULTIPLIER
    if stage == CacheStage.DOCUMENT:
        return outline_cost * DOCUMENT_COST_MULTIPLIER
    if stage == CacheStage.EMBEDDING:
        return EMBEDDING_COST
    return outline_cost


class CacheManager:
    """Get-or-generate per cacheable stage."""

    def __init__(self, cache: CacheService) -> None:
        self._cache = cache

    @property
    def cache(self) -> CacheService:
        return self._cache

    def outline_key(
        self, document_type: str, provider: str, model: str, payload: dict[str, Any]
    ) -> CacheKey:
        return self._cache.build_key(CacheStage.OUTLINE, document_type, provider, model, payload)

    def section_key(
        self,
        document_type: str,
        provider: str,
        model: str,
        payload: dict[str, Any],
        section_id: str,
        outline: dict[str, Any],
    ) -> CacheKey:
        keyed = {**payload, "sectionId": section_id, "outlineHash": hash_object(outline)}
        return self._cache.build_key(
            CacheStage.SECTION, document_type, provider, model, keyed, section_id=section_id,
        )

    def document_key(
        self, document_type: str, provider: str, model: str, payload: dict[str, Any]
    ) -> CacheKey:
        return self._cache.build_key(CacheStage.DOCUMENT, document_type, provider, model, payload)

    def embedding_key(self, text: str, provider: str, model: str) -> CacheKey:
        return CacheKey(
            stage=CacheStage.EMBEDDING,
            document_type=None,
            provider=provider,
            model=model,
            input_fingerprint=hash_text(text),
        )

    async def get_or_generate_outline(
        self,
        document_type: str,
        provider: str,
        model: str,
        payload: dict[str, Any],
        generator: Generator,
        force_refresh: bool = False,
        use_cache: bool = True,
    ) -> CachedResult:
        key = self.outline_key(document_type, provider, model, payload)
        cacheable = use_cache and should_cache(document_type, payload)
        return await self.get_or_generate(key, generator, force_refresh, cacheable)

    async def get_or_generate_section(
        self,
        document_type: str,
        provider: str,
        model: str,
        payload: dict[str, Any],
        section_id: str,
        outline: dict[str, Any],
        generator: Generator,
        force_refresh: bool = False,
        use_cache: bool = True,
    ) -> CachedResult:
        key = self.section_key(document_type, provider, model, payload, section_id, outline)
        cacheable = use_cache and should_cache(document_type, payload)
        return await self.get_or_generate(key, generator, force_refresh, cacheable)

    async def get_or_generate_embedding(
        self,
        text: str,
        provider: str,
        model: str,
        generator: Generator,
    ) -> CachedResult:
        key = self.embedding_key(text, provider, model)
        return await self.get_or_generate(key, generator, force_refresh=False, cacheable=True)

    async def get_or_generate(
        self,
        key: CacheKey,
        generator: Generator,
        force_refresh: bool = False,
        cacheable: bool = True,
    ) -> CachedResult:
        """Return the cached value for ``key`` or run ``generator`` and store it.

        Generators may return a bare value or a GeneratedValue carrying the
        actual cost of producing it. Generator exceptions propagate untouched.
        """
        if cacheable:
            entry = await self._cache.get(key, force_refresh=force_refresh)
            if entry is not None:
                return CachedResult(
                    value=entry.value, from_cache=True,
                    cost_saved=entry.stage_cost, key=entry.key,
                )
        else:
            logger.debug("Caching disabled for %s", key)

        produced = await generator()
        if isinstance(produced, GeneratedValue):
            value, cost = produced.value, produced.cost
        else:
            value, cost = produced, None
        if cost is None or cost <= 0:
            cost = estimate_stage_cost(key.stage, key.provider, key.model)

        if cacheable:
            await self._cache.set(key, value, cost_estimate=cost)
        return CachedResult(value=value, from_cache=False, key=key.to_string())
