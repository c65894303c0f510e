# src/cache/redis_store.py - v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments. Entries carry a
native Redis expiry matching ``expires_at`` so Redis evicts them even if
nobody reads them again.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from fnmatch import fnmatchcase

from docuforge.cache.base_cache_store import BaseCacheStore
from docuforge.cache.models import CacheEntry
from docuforge.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(self, redis_url: str, namespace: str = "docuforge") -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._redis_error = redis.RedisError
        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = f"{namespace}:cache:"
        self._index_key = f"{namespace}:cache:__index__"

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        try:
            data = self._client.get(f"{self._prefix}{key}")
        except self._redis_error as e:
            raise CacheUnavailable(f"Redis get failed: {e}") from e
        if data is None:
            return None
        try:
            return CacheEntry(**json.loads(data))
        except Exception as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> None:
        """Store a cache entry with a native expiry."""
        ttl_ms = int((entry.expires_at - datetime.now(timezone.utc)).total_seconds() * 1000)
        try:
            self._client.set(
                f"{self._prefix}{entry.key}",
                entry.model_dump_json(),
                px=max(ttl_ms, 1),
            )
            # Maintain a set of all cache keys for list_entries / pattern deletes
            self._client.sadd(self._index_key, entry.key)
        except self._redis_error as e:
            raise CacheUnavailable(f"Redis set failed: {e}") from e

    async def delete(self, key: str) -> bool:
        """Remove a cache entry."""
        try:
            removed = self._client.delete(f"{self._prefix}{key}")
            self._client.srem(self._index_key, key)
        except self._redis_error as e:
            raise CacheUnavailable(f"Redis delete failed: {e}") from e
        return bool(removed)

    async def delete_matching(self, pattern: str) -> int:
        """Delete matching entries; prunes index members Redis already expired."""
        count = 0
        for key in self._index_members():
            if fnmatchcase(key, pattern):
                if await self.delete(key):
                    count += 1
                continue
            try:
                if not self._client.exists(f"{self._prefix}{key}"):
                    self._client.srem(self._index_key, key)
            except self._redis_error as e:
                raise CacheUnavailable(f"Redis index prune failed: {e}") from e
        return count

    async def list_entries(self, pattern: str = "*") -> list[CacheEntry]:
        """List cached entries matching ``pattern``; prunes expired index members."""
        entries: list[CacheEntry] = []
        for key in self._index_members():
            if not fnmatchcase(key, pattern):
                continue
            entry = await self.get(key)
            if entry is None:
                self._client.srem(self._index_key, key)
                continue
            entries.append(entry)
        return entries

    async def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except self._redis_error as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    async def memory_usage(self) -> int:
        try:
            info = self._client.info("memory")
        except self._redis_error as e:
            raise CacheUnavailable(f"Redis info failed: {e}") from e
        return int(info.get("used_memory", 0))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    def _index_members(self) -> list[str]:
        try:
            return sorted(self._client.smembers(self._index_key))
        except self._redis_error as e:
            raise CacheUnavailable(f"Redis index read failed: {e}") from e
