# src/cache/store_factory.py - v1
"""Factory for settings store instantiation."""

from __future__ import annotations

from pageindexer.cache.base_settings_store import BaseSettingsStore
from pageindexer.config.settings import Settings


def create_settings_store(settings: Settings | None = None) -> BaseSettingsStore:
    """Instantiate the configured settings backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseSettingsStore implementation.
    """
    backend = "memory" if settings is None else settings.settings_store_backend

    if backend == "memory":
        from pageindexer.cache.memory_store import MemorySettingsStore
        return MemorySettingsStore()

    if backend == "json":
        from pageindexer.cache.json_store import JsonSettingsStore
        return JsonSettingsStore(root=settings.settings_store_root)  # type: ignore[union-attr]

    if backend == "sqlite":
        from pageindexer.cache.sqlite_store import SqliteSettingsStore
        root = settings.settings_store_root  # type: ignore[union-attr]
        return SqliteSettingsStore(db_path=root / "pageindexer_settings.db")

    if backend == "redis":
        from pageindexer.cache.redis_store import RedisSettingsStore
        if not settings.settings_store_redis_url:  # type: ignore[union-attr]
            raise ValueError(
                "SETTINGS_STORE_REDIS_URL must be set when SETTINGS_STORE_BACKEND=redis"
            )
        return RedisSettingsStore(redis_url=settings.settings_store_redis_url)  # type: ignore[union-attr]

    raise ValueError(f"Unsupported settings store backend: {backend!r}")
