# src/cache/service.py - v1
"""Cache service: TTL policy, hit accounting and graceful degradation.

Wraps a BaseCacheStore. Expiry is lazy (checked on read, never renewed on
hit). Any backend failure is logged and treated as a miss or a skipped
write; caching is an optimization and never fails a generation.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from docuforge.cache.base_cache_store import BaseCacheStore
from docuforge.cache.fingerprint import fingerprint, normalize_input
from docuforge.cache.models import CacheEntry, CacheKey, CacheStage, CacheStats
from docuforge.config.settings import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheService:
    """Cache front end shared by every pipeline instance in the process.

    Args:
        store: Storage backend.
        settings: TTLs and the global enable switch.
        clock: Injected time source (tests use a fake clock).
    """

    def __init__(
        self,
        store: BaseCacheStore,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._clock = clock or _utcnow
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._settings.cache_enabled

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    # --- Keys / TTL ---

    def build_key(
        self,
        stage: CacheStage,
        document_type: str | None,
        provider: str,
        model: str,
        raw_input: dict[str, Any],
        section_id: str | None = None,
    ) -> CacheKey:
        """Normalize ``raw_input`` and build the composite key."""
        return CacheKey(
            stage=stage,
            document_type=document_type,
            provider=provider,
            model=model,
            input_fingerprint=fingerprint(normalize_input(raw_input, document_type)),
            section_id=section_id,
        )

    def ttl_for(self, stage: CacheStage, document_type: str | None) -> int:
        if stage == CacheStage.EMBEDDING:
            return self._settings.cache_ttl_embedding_s
        return self._settings.ttl_for(document_type)

    # --- Read / write ---

    async def get(self, key: CacheKey | str, force_refresh: bool = False) -> CacheEntry | None:
        """Look up a live entry and record the hit.

        ``force_refresh`` always misses without touching the store.
        """
        if force_refresh or not self.enabled:
            return None

        key_str = str(key)
        try:
            entry = await self._store.get(key_str)
        except Exception as e:
            logger.warning("Cache read failed for %s, treating as miss: %s", key_str, e)
            self._misses += 1
            return None

        if entry is None:
            logger.debug("Cache miss: %s", key_str)
            self._misses += 1
            return None

        now = self._clock()
        if entry.is_expired(now):
            logger.debug("Cache entry expired: %s", key_str)
            self._misses += 1
            await self._safe_delete(key_str)
            return None

        entry.hit_count += 1
        entry.last_hit_at = now
        entry.cost_saved += entry.stage_cost
        try:
            await self._store.put(entry)
        except Exception as e:
            logger.warning("Failed to record cache hit for %s: %s", key_str, e)

        self._hits += 1
        logger.info("Cache hit: %s (hits=%d)", key_str, entry.hit_count)
        return entry

    async def set(
        self,
        key: CacheKey,
        value: Any,
        ttl_s: int | None = None,
        cost_estimate: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> CacheEntry | None:
        """Write an entry with ``expires_at = now + ttl``. Returns None when skipped."""
        if not self.enabled:
            return None

        now = self._clock()
        ttl = ttl_s if ttl_s is not None else self.ttl_for(key.stage, key.document_type)
        entry = CacheEntry(
            key=key.to_string(),
            value=value,
            stage=key.stage,
            document_type=key.document_type,
            provider=key.provider,
            model=key.model,
            input_fingerprint=key.input_fingerprint,
            section_id=key.section_id,
            stage_cost=cost_estimate,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl),
            metadata=metadata or {},
        )
        try:
            await self._store.put(entry)
        except Exception as e:
            logger.warning("Cache write skipped for %s: %s", entry.key, e)
            return None
        logger.debug("Cached %s (ttl=%ss)", entry.key, ttl)
        return entry

    async def delete(self, key: CacheKey | str) -> bool:
        """Idempotent delete."""
        return await self._safe_delete(str(key))

    # --- Bulk invalidation ---

    async def clear_by_pattern(self, pattern_prefix: str) -> int:
        """Delete every key starting with ``pattern_prefix``; returns the count."""
        try:
            count = await self._store.delete_matching(f"{pattern_prefix}*")
        except Exception as e:
            logger.error("Cache clear failed for %r: %s", pattern_prefix, e)
            return 0
        logger.info("Cleared %d cache entries matching %r", count, pattern_prefix)
        return count

    async def clear_by_document_type(self, document_type: str) -> int:
        doc_type = getattr(document_type, "value", document_type)
        total = 0
        for stage in CacheStage:
            total += await self.clear_by_pattern(f"{stage.value}:{doc_type}:")
        return total

    async def clear_by_provider(self, provider: str) -> int:
        try:
            entries = await self._store.list_entries()
        except Exception as e:
            logger.error("Cache clear failed for provider %s: %s", provider, e)
            return 0
        count = 0
        for entry in entries:
            if entry.provider == provider and await self._safe_delete(entry.key):
                count += 1
        logger.info("Cleared %d cache entries for provider %s", count, provider)
        return count

    async def clear_all(self) -> int:
        return await self.clear_by_pattern("")

    # --- Introspection ---

    async def health_check(self) -> bool:
        """Liveness probe; never raises."""
        try:
            return await self._store.ping()
        except Exception as e:
            logger.warning("Cache health check failed: %s", e)
            return False

    async def stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        hit_rate = self._hits / lookups if lookups else 0.0
        try:
            entries = await self._store.list_entries()
            memory = await self._store.memory_usage()
        except Exception as e:
            logger.warning("Cache stats unavailable: %s", e)
            return CacheStats(
                hits=self._hits, misses=self._misses, hit_rate=hit_rate, healthy=False,
            )

        now = self._clock()
        live = [e for e in entries if not e.is_expired(now)]
        return CacheStats(
            total_entries=len(live),
            memory_usage_bytes=memory,
            hit_rate=hit_rate,
            total_cost_saved=sum(e.cost_saved for e in live),
            hits=self._hits,
            misses=self._misses,
            total_entry_hits=sum(e.hit_count for e in live),
            by_stage=dict(Counter(e.stage.value for e in live)),
            by_document_type=dict(Counter(e.document_type or "generic" for e in live)),
        )

    def close(self) -> None:
        self._store.close()

    async def _safe_delete(self, key: str) -> bool:
        try:
            return await self._store.delete(key)
        except Exception as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
            return False
