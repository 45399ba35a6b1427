# src/cache/base_settings_store.py - v1
"""Abstract durable key/value settings store.

Values are JSON-compatible documents. Each key is read and written whole:
there is no partial update and no locking across callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseSettingsStore(ABC):
    """Unified interface for settings storage backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the JSON value stored under ``key``, or None."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Replace the value stored under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """List stored keys."""
