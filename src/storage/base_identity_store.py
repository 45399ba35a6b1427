# src/storage/base_identity_store.py - v1
"""Abstract persistent identity and page store.

Holds the durable side of content identity (stored identifiers and their
locators) together with the page, visit, favicon and document-content
records the indexing service writes.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Sequence

from pageindexer.core.models import (
    ContentIdentifier,
    ContentLocator,
    Fingerprint,
    PageData,
    StoredContentIdentifier,
    StoredDocContent,
)


class BaseIdentityStore(ABC):
    """Unified interface for identity/page storage backends."""

    # --- Schema ---

    @property
    @abstractmethod
    def page_fields(self) -> frozenset[str]:
        """Field names the page collection accepts."""

    # --- Identity ---

    @abstractmethod
    async def get_content_identifier(
        self, fingerprints: Sequence[Fingerprint]
    ) -> StoredContentIdentifier | None:
        """Stored identifier whose locators match any of ``fingerprints``."""

    @abstractmethod
    async def store_locators(
        self, identifier: ContentIdentifier, locators: Sequence[ContentLocator]
    ) -> None:
        """Record ``locators`` for ``identifier`` (idempotent per location)."""

    @abstractmethod
    async def find_locators_by_normalized_url(
        self, normalized_url: str
    ) -> list[ContentLocator]:
        """All stored locators of the identifier named ``normalized_url``."""

    # --- Pages ---

    @abstractmethod
    async def get_page(self, url: str) -> PageData | None:
        """Page stored under the normalized form of ``url``."""

    async def page_exists(self, url: str) -> bool:
        return await self.get_page(url) is not None

    @abstractmethod
    async def create_page(
        self, page: PageData, aliases: Sequence[ContentIdentifier] = ()
    ) -> None:
        """Insert a new page record, remembering its alias identifiers."""

    @abstractmethod
    async def update_page(self, page: PageData, existing: PageData) -> None:
        """Merge ``page`` into the stored ``existing`` record."""

    async def create_page_if_not_exists(self, page: PageData) -> bool:
        """Create ``page`` unless present; return True if it was created."""
        if await self.page_exists(page.url):
            return False
        await self.create_page(page)
        return True

    @abstractmethod
    async def delete_pages(self, normalized_urls: Sequence[str]) -> int:
        """Delete pages by normalized URL; return the number removed."""

    @abstractmethod
    async def delete_pages_by_domain(self, domain: str) -> int:
        """Delete every page of ``domain``."""

    async def delete_pages_by_pattern(self, pattern: str | re.Pattern[str]) -> int:
        """Delete pages whose normalized URL matches ``pattern``.

        Scans every page; backends with an index should override.
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        urls = [url for url in await self.list_page_urls() if regex.search(url)]
        return await self.delete_pages(urls)

    @abstractmethod
    async def list_page_urls(self) -> list[str]:
        """Normalized URLs of all stored pages."""

    # --- Visits ---

    @abstractmethod
    async def add_page_visit(self, url: str, time: int) -> None:
        """Record a visit of the page at ``time`` (ms)."""

    async def create_visits_if_needed(self, url: str, times: Sequence[int]) -> None:
        existing = set(await self.get_visit_times(url))
        for time in times:
            if time not in existing:
                await self.add_page_visit(url, time)

    @abstractmethod
    async def get_visit_times(self, url: str) -> list[int]:
        """Visit timestamps recorded for the page."""

    @abstractmethod
    async def update_visit_metadata(
        self, url: str, time: int, data: dict[str, Any]
    ) -> None:
        """Attach interaction data (scroll, duration, ...) to one visit."""

    # --- Favicons ---

    @abstractmethod
    async def get_fav_icon(self, hostname: str) -> str | None:
        """Favicon stored for ``hostname``."""

    @abstractmethod
    async def create_or_update_fav_icon(self, hostname: str, fav_icon: str) -> None:
        """Store the favicon of ``hostname``, replacing any previous one."""

    async def create_fav_icon_if_needed(self, hostname: str, fav_icon: str) -> bool:
        if await self.get_fav_icon(hostname) is not None:
            return False
        await self.create_or_update_fav_icon(hostname, fav_icon)
        return True

    # --- Stored document content ---

    @abstractmethod
    async def create_or_update_doc_content(self, doc: StoredDocContent) -> None:
        """Store the full document body of a page."""

    @abstractmethod
    async def get_doc_content(self, normalized_url: str) -> StoredDocContent | None:
        """Stored document body of a page."""
