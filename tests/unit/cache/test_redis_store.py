# tests/unit/cache/test_redis_store.py - v3
"""Tests for cache/redis_store.py - mocked Redis client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from docuforge.core.errors import CacheUnavailable


class FakeRedisError(Exception):
    pass


def _make_store(storage: dict[str, str] | None = None, index: set[str] | None = None):
    storage = {} if storage is None else storage
    index = set() if index is None else index
    ttls: dict[str, int] = {}

    def _set(k, v, px=None):
        storage[k] = v
        ttls[k] = px

    mock_redis = MagicMock()
    mock_redis.get = lambda k: storage.get(k)
    mock_redis.set = _set
    mock_redis.delete = lambda k: 1 if storage.pop(k, None) is not None else 0
    mock_redis.exists = lambda k: 1 if k in storage else 0
    mock_redis.sadd = lambda k, v: index.add(v)
    mock_redis.srem = lambda k, v: index.discard(v)
    mock_redis.smembers = lambda k: index.copy()
    mock_redis.ping = lambda: True
    mock_redis.info = lambda section: {"used_memory": 2048}

    with patch("docuforge.cache.redis_store.RedisCacheStore.__init__", return_value=None):
        from docuforge.cache.redis_store import RedisCacheStore
        store = RedisCacheStore.__new__(RedisCacheStore)
        store._client = mock_redis
        store._redis_error = FakeRedisError
        store._prefix = "docuforge:cache:"
        store._index_key = "docuforge:cache:__index__"
    return store, storage, index, ttls


class TestRedisCacheStore:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        import sys
        redis_mod = sys.modules.get("redis")
        sys.modules["redis"] = None  # type: ignore[assignment]
        try:
            from docuforge.cache.redis_store import RedisCacheStore
            with pytest.raises(ImportError, match="redis"):
                RedisCacheStore(redis_url="redis://localhost")
        finally:
            if redis_mod is not None:
                sys.modules["redis"] = redis_mod
            else:
                sys.modules.pop("redis", None)

    def test_init_uses_from_url(self):
        with patch("redis.Redis.from_url") as from_url:
            from docuforge.cache.redis_store import RedisCacheStore
            store = RedisCacheStore("redis://localhost:6379/0", namespace="test")
        from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)
        assert store._prefix == "test:cache:"

    @pytest.mark.asyncio
    async def test_put_and_get(self, make_entry):
        store, storage, index, ttls = _make_store()
        entry = make_entry()
        await store.put(entry)
        assert f"docuforge:cache:{entry.key}" in storage
        assert entry.key in index
        result = await store.get(entry.key)
        assert result is not None
        assert result.value == entry.value

    @pytest.mark.asyncio
    async def test_put_sets_native_expiry(self, make_entry):
        store, _, _, ttls = _make_store()
        entry = make_entry(expires_in_s=3600)
        await store.put(entry)
        px = ttls[f"docuforge:cache:{entry.key}"]
        assert 0 < px <= 3600 * 1000

    @pytest.mark.asyncio
    async def test_put_expired_entry_gets_minimal_ttl(self, make_entry):
        store, _, _, ttls = _make_store()
        entry = make_entry(expires_in_s=-10)
        await store.put(entry)
        assert ttls[f"docuforge:cache:{entry.key}"] == 1

    @pytest.mark.asyncio
    async def test_get_missing(self):
        store, *_ = _make_store()
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_corrupt_returns_none(self):
        store, storage, *_ = _make_store()
        storage["docuforge:cache:bad"] = "{oops"
        assert await store.get("bad") is None

    @pytest.mark.asyncio
    async def test_delete(self, make_entry):
        store, _, index, _ = _make_store()
        entry = make_entry()
        await store.put(entry)
        assert await store.delete(entry.key) is True
        assert entry.key not in index
        assert await store.delete(entry.key) is False

    @pytest.mark.asyncio
    async def test_delete_matching(self, make_entry):
        store, *_ = _make_store()
        await store.put(make_entry(key="outline:biography:openai:gpt-4o:a"))
        await store.put(make_entry(key="outline:biography:openai:gpt-4o:b"))
        await store.put(make_entry(key="outline:medical_report:openai:gpt-4o:c"))
        assert await store.delete_matching("outline:biography:*") == 2
        assert [e.key for e in await store.list_entries()] == [
            "outline:medical_report:openai:gpt-4o:c",
        ]

    @pytest.mark.asyncio
    async def test_delete_matching_prunes_evicted_keys(self, make_entry):
        store, _, index, _ = _make_store()
        kept = make_entry(key="outline:medical_report:openai:gpt-4o:c")
        await store.put(kept)
        index.add("section:grant_proposal:openai:gpt-4o:evicted")
        assert await store.delete_matching("outline:biography:*") == 0
        assert index == {kept.key}

    @pytest.mark.asyncio
    async def test_list_entries_prunes_evicted_keys(self, make_entry):
        store, storage, index, _ = _make_store()
        entry = make_entry()
        await store.put(entry)
        index.add("outline:biography:openai:gpt-4o:evicted")
        entries = await store.list_entries()
        assert [e.key for e in entries] == [entry.key]
        assert "outline:biography:openai:gpt-4o:evicted" not in index

    @pytest.mark.asyncio
    async def test_backend_error_becomes_cache_unavailable(self):
        store, *_ = _make_store()

        def boom(*args, **kwargs):
            raise FakeRedisError("connection refused")

        store._client.get = boom
        with pytest.raises(CacheUnavailable, match="connection refused"):
            await store.get("any")

    @pytest.mark.asyncio
    async def test_ping(self):
        store, *_ = _make_store()
        assert await store.ping() is True

        def boom():
            raise FakeRedisError("down")

        store._client.ping = boom
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_memory_usage(self):
        store, *_ = _make_store()
        assert await store.memory_usage() == 2048

    def test_close(self):
        store, *_ = _make_store()
        store.close()
        store._client.close.assert_called_once()
