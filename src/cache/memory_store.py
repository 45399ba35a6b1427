# src/cache/memory_store.py - v1
"""In-memory settings store (SETTINGS_STORE_BACKEND=memory).

Values are round-tripped through JSON on every read and write so callers
observe the same copy semantics as the durable backends.
"""

from __future__ import annotations

import json
from typing import Any

from pageindexer.cache.base_settings_store import BaseSettingsStore


class MemorySettingsStore(BaseSettingsStore):
    """Process-local settings store, lost on restart."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {
            k: json.dumps(v) for k, v in (initial or {}).items()
        }
        self.write_count = 0

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)
        self.write_count += 1

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self._data)
