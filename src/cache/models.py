# src/cache/models.py - v2
"""Cache domain models: CacheKey, CacheEntry, CacheStats, CachedResult."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class CacheStage(str, Enum):
    """Granularity at which generation output is cached."""

    OUTLINE = "outline"
    SECTION = "section"
    EMBEDDING = "embedding"
    DOCUMENT = "document"


class CacheKey(BaseModel):
    """Composite cache key; a deterministic function of normalized input."""

    model_config = ConfigDict(frozen=True)

    stage: CacheStage
    document_type: str | None
    provider: str
    model: str
    input_fingerprint: str
    section_id: str | None = None

    def to_string(self) -> str:
        """Render as ``stage:doctype:provider:model:fingerprint[:section]``.

        Document type is ``generic`` when absent so prefix patterns stay
        aligned across stages.
        """
        parts = [
            self.stage.value,
            self.document_type or "generic",
            self.provider,
            self.model,
            self.input_fingerprint,
        ]
        if self.section_id:
            parts.append(self.section_id)
        return ":".join(parts)

    def __str__(self) -> str:
        return self.to_string()


class CacheEntry(BaseModel):
    """Stored value plus accounting. Owned exclusively by the cache service."""

    key: str
    value: Any
    stage: CacheStage
    document_type: str | None = None
    provider: str
    model: str
    input_fingerprint: str
    section_id: str | None = None
    hit_count: int = 0
    last_hit_at: datetime | None = None
    stage_cost: float = 0.0
    cost_saved: float = 0.0
    created_at: datetime
    expires_at: datetime
    metadata: dict[str, Any] = {}

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class CacheStats(BaseModel):
    """Aggregate cache statistics (never per key)."""

    total_entries: int = 0
    memory_usage_bytes: int = 0
    hit_rate: float = 0.0
    total_cost_saved: float = 0.0
    hits: int = 0
    misses: int = 0
    total_entry_hits: int = 0
    by_stage: dict[str, int] = {}
    by_document_type: dict[str, int] = {}
    healthy: bool = True


class GeneratedValue(BaseModel):
    """What a generator hands back to the cache manager on a miss."""

    value: Any
    cost: float | None = None


class CachedResult(BaseModel):
    """Outcome of a get-or-generate call."""

    value: Any
    from_cache: bool
    cost_saved: float = 0.0
    key: str = ""
