# src/cache/content_info_cache.py - v1
"""Process-wide normalized URL -> ContentInfo cache.

The whole map lives under one settings key (``pageContentInfo``) and is
read and written as a single document. In memory, every ContentInfo sits in
exactly one arena slot and each alias URL indexes that slot, so a mutation
made through one alias is visible through all of them.

Mutations are serialized inside the process by ``mutation()``, which always
ends in a store-back. Writers in other processes still race on the durable
key: the last full write wins.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from pageindexer.cache.base_settings_store import BaseSettingsStore
from pageindexer.core.models import ContentInfo

logger = logging.getLogger(__name__)

CONTENT_INFO_KEY = "pageContentInfo"


class ContentInfoCache:
    """Alias-aware content info map backed by a settings store."""

    def __init__(
        self, store: BaseSettingsStore, key: str = CONTENT_INFO_KEY
    ) -> None:
        self._store = store
        self._key = key
        self._slots: dict[int, ContentInfo] = {}
        self._index: dict[str, int] = {}
        self._next_slot = 0
        self._loaded = False
        self._load_lock = asyncio.Lock()
        self._mutation_lock = asyncio.Lock()

    # --- Reads ---

    async def get(self, normalized_url: str) -> ContentInfo | None:
        await self._ensure_loaded()
        slot = self._index.get(normalized_url)
        return None if slot is None else self._slots[slot]

    async def load_all(self) -> dict[str, ContentInfo]:
        """Return the full map; aliases share the same ContentInfo object."""
        await self._ensure_loaded()
        return {url: self._slots[slot] for url, slot in self._index.items()}

    async def distinct(self) -> list[ContentInfo]:
        """Each ContentInfo once, regardless of how many keys alias it."""
        await self._ensure_loaded()
        return list(self._slots.values())

    # --- Writes ---

    async def put(self, normalized_url: str, info: ContentInfo) -> None:
        """Index ``info`` under ``normalized_url`` without persisting."""
        await self._ensure_loaded()
        slot = self._slot_of(info)
        if slot is None:
            slot = self._next_slot
            self._next_slot += 1
            self._slots[slot] = info

        previous = self._index.get(normalized_url)
        self._index[normalized_url] = slot
        if previous is not None and previous != slot:
            self._drop_if_orphaned(previous)

    async def persist(self) -> None:
        """Write the whole map back to the settings store."""
        await self._ensure_loaded()
        await self._store.set(self._key, self._serialize())
        logger.debug(
            "Persisted content info: %d keys, %d entries",
            len(self._index), len(self._slots),
        )

    @asynccontextmanager
    async def mutation(self) -> AsyncIterator[ContentInfoCache]:
        """Serialize a read-modify-write cycle and store back on success."""
        async with self._mutation_lock:
            await self._ensure_loaded()
            yield self
            await self.persist()

    async def reload(self) -> None:
        """Drop the in-memory copy; the next access reloads from the store."""
        async with self._load_lock:
            self._slots.clear()
            self._index.clear()
            self._loaded = False

    # --- Internals ---

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if self._loaded:
                return
            raw = await self._store.get(self._key) or {}
            self._load(raw)
            self._loaded = True
            logger.debug(
                "Loaded content info: %d keys, %d entries",
                len(self._index), len(self._slots),
            )

    def _load(self, raw: dict[str, Any]) -> None:
        """Rebuild the arena, collapsing copies that share a primary URL."""
        by_primary: dict[str, int] = {}
        parsed: dict[str, ContentInfo] = {}
        for url, data in raw.items():
            try:
                parsed[url] = ContentInfo.model_validate(data)
            except ValueError as e:
                logger.warning("Dropping unreadable content info for %s: %s", url, e)

        # Entries stored under their own primary URL are authoritative
        ordered = sorted(
            parsed.items(),
            key=lambda item: item[0] != item[1].primary_identifier.normalized_url,
        )
        for url, info in ordered:
            primary = info.primary_identifier.normalized_url
            slot = by_primary.get(primary)
            if slot is None:
                slot = self._next_slot
                self._next_slot += 1
                self._slots[slot] = info
                by_primary[primary] = slot
            self._index[url] = slot

    def _serialize(self) -> dict[str, Any]:
        dumped = {
            slot: info.model_dump(mode="json") for slot, info in self._slots.items()
        }
        return {url: dumped[slot] for url, slot in self._index.items()}

    def _slot_of(self, info: ContentInfo) -> int | None:
        for slot, existing in self._slots.items():
            if existing is info:
                return slot
        return None

    def _drop_if_orphaned(self, slot: int) -> None:
        if slot not in self._index.values():
            del self._slots[slot]

    def __len__(self) -> int:
        return len(self._index)
