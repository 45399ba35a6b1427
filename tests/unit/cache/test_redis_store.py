# tests/unit/cache/test_redis_store.py - v1
"""Tests for cache/redis_store.py - mocked Redis client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest


def _mock_redis(storage: dict[str, str], index: set[str]) -> MagicMock:
    mock_redis = MagicMock()
    mock_redis.get = lambda k: storage.get(k)
    mock_redis.set = lambda k, v: storage.__setitem__(k, v)
    mock_redis.delete = lambda k: storage.pop(k, None)
    mock_redis.sadd = lambda k, v: index.add(v)
    mock_redis.srem = lambda k, v: index.discard(v)
    mock_redis.smembers = lambda k: index.copy()
    return mock_redis


def _make_store(mock_redis: MagicMock):
    with patch("pageindexer.cache.redis_store.RedisSettingsStore.__init__", return_value=None):
        from pageindexer.cache.redis_store import RedisSettingsStore
        store = RedisSettingsStore.__new__(RedisSettingsStore)
        store._client = mock_redis
    return store


class TestRedisSettingsStore:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        import sys
        redis_mod = sys.modules.get("redis")
        sys.modules["redis"] = None  # type: ignore[assignment]
        try:
            from pageindexer.cache.redis_store import RedisSettingsStore
            with pytest.raises(ImportError, match="redis"):
                RedisSettingsStore(redis_url="redis://localhost")
        finally:
            if redis_mod is not None:
                sys.modules["redis"] = redis_mod
            else:
                sys.modules.pop("redis", None)

    @pytest.mark.asyncio
    async def test_set_and_get(self):
        storage: dict[str, str] = {}
        index: set[str] = set()
        store = _make_store(_mock_redis(storage, index))

        await store.set("pageContentInfo", {"a.example": {"as_of": 1}})
        assert await store.get("pageContentInfo") == {"a.example": {"as_of": 1}}
        assert "pageindexer:settings:pageContentInfo" in storage
        assert await store.keys() == ["pageContentInfo"]

    @pytest.mark.asyncio
    async def test_get_missing(self):
        store = _make_store(_mock_redis({}, set()))
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_delete(self):
        storage: dict[str, str] = {}
        index: set[str] = set()
        store = _make_store(_mock_redis(storage, index))

        await store.set("k", 1)
        await store.delete("k")
        assert await store.get("k") is None
        assert await store.keys() == []

    @pytest.mark.asyncio
    async def test_corrupt_value(self):
        store = _make_store(_mock_redis({"pageindexer:settings:k": "{oops"}, set()))
        assert await store.get("k") is None
