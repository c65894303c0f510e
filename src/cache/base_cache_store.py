# src/cache/base_cache_store.py - v2
"""Abstract cache store interface.

Stores are dumb key/value backends: TTL checks, hit accounting and the
degrade-to-miss policy live in CacheService. Backend failures surface as
CacheUnavailable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docuforge.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        """Store cache entry under ``entry.key`` (last writer wins)."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove cache entry. Returns False when nothing was stored."""

    @abstractmethod
    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; return the exact count."""

    @abstractmethod
    async def list_entries(self, pattern: str = "*") -> list[CacheEntry]:
        """List entries whose key matches a glob pattern."""

    @abstractmethod
    async def ping(self) -> bool:
        """Cheap liveness probe."""

    @abstractmethod
    async def memory_usage(self) -> int:
        """Approximate bytes used by the backend."""

    def close(self) -> None:
        """Release backend resources."""
        return None
