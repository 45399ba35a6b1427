# src/cache/redis_store.py - v1
"""Redis-based settings store (SETTINGS_STORE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Lets several worker processes share one content-info map.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pageindexer.cache.base_settings_store import BaseSettingsStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "pageindexer:settings:"
_INDEX_KEY = "pageindexer:settings:__index__"


class RedisSettingsStore(BaseSettingsStore):
    """Redis-backed settings store."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> Any | None:
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Failed to deserialize settings key %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any) -> None:
        self._client.set(f"{_KEY_PREFIX}{key}", json.dumps(value))
        self._client.sadd(_INDEX_KEY, key)

    async def delete(self, key: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)

    async def keys(self) -> list[str]:
        return sorted(self._client.smembers(_INDEX_KEY))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
