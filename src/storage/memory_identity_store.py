# src/storage/memory_identity_store.py - v1
"""In-memory identity/page store.

Reference backend for tests, the CLI and single-process embedding. Records
are copied on the way in and out so callers never share mutable state with
the store.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pageindexer.core.models import (
    ContentIdentifier,
    ContentLocator,
    Fingerprint,
    PageData,
    StoredContentIdentifier,
    StoredDocContent,
)
from pageindexer.core.url import normalize_url
from pageindexer.storage.base_identity_store import BaseIdentityStore

logger = logging.getLogger(__name__)

_PAGE_FIELDS = frozenset(
    {"url", "full_url", "domain", "hostname", "full_title", "text", "terms"}
)


class MemoryIdentityStore(BaseIdentityStore):
    """Dict-backed identity store."""

    def __init__(self) -> None:
        self.identifiers: dict[str, ContentIdentifier] = {}
        self.locators: dict[str, list[ContentLocator]] = {}
        self.pages: dict[str, PageData] = {}
        self.page_aliases: dict[str, list[ContentIdentifier]] = {}
        self.visits: dict[str, dict[int, dict[str, Any]]] = {}
        self.fav_icons: dict[str, str] = {}
        self.doc_contents: dict[str, StoredDocContent] = {}

    @property
    def page_fields(self) -> frozenset[str]:
        return _PAGE_FIELDS

    # --- Identity ---

    async def get_content_identifier(
        self, fingerprints: Sequence[Fingerprint]
    ) -> StoredContentIdentifier | None:
        wanted = {(fp.scheme, fp.value) for fp in fingerprints}
        for normalized_url, locators in self.locators.items():
            if any((loc.fingerprint_scheme, loc.fingerprint) in wanted for loc in locators):
                return StoredContentIdentifier(
                    identifier=self.identifiers[normalized_url],
                    locators=[loc.model_copy() for loc in locators],
                )
        return None

    async def store_locators(
        self, identifier: ContentIdentifier, locators: Sequence[ContentLocator]
    ) -> None:
        self.identifiers[identifier.normalized_url] = identifier
        stored = self.locators.setdefault(identifier.normalized_url, [])
        added = 0
        for loc in locators:
            if any(
                s.fingerprint == loc.fingerprint
                and s.fingerprint_scheme == loc.fingerprint_scheme
                and s.original_location == loc.original_location
                for s in stored
            ):
                continue
            stored.append(loc.model_copy())
            added += 1
        logger.debug(
            "Stored %d new locators for %s", added, identifier.normalized_url
        )

    async def find_locators_by_normalized_url(
        self, normalized_url: str
    ) -> list[ContentLocator]:
        return [loc.model_copy() for loc in self.locators.get(normalized_url, [])]

    # --- Pages ---

    async def get_page(self, url: str) -> PageData | None:
        page = self.pages.get(normalize_url(url))
        return None if page is None else page.model_copy(deep=True)

    async def create_page(
        self, page: PageData, aliases: Sequence[ContentIdentifier] = ()
    ) -> None:
        self.pages[page.url] = page.model_copy(deep=True)
        self.page_aliases[page.url] = list(aliases)

    async def update_page(self, page: PageData, existing: PageData) -> None:
        updates = page.model_dump(exclude_none=True, exclude={"terms"})
        merged = existing.model_copy(update=updates, deep=True)
        merged.terms = sorted(set(existing.terms) | set(page.terms))
        self.pages[existing.url] = merged

    async def delete_pages(self, normalized_urls: Sequence[str]) -> int:
        removed = 0
        for url in normalized_urls:
            if self.pages.pop(url, None) is not None:
                removed += 1
            self.page_aliases.pop(url, None)
            self.visits.pop(url, None)
            self.doc_contents.pop(url, None)
        return removed

    async def delete_pages_by_domain(self, domain: str) -> int:
        urls = [url for url, page in self.pages.items() if page.domain == domain]
        return await self.delete_pages(urls)

    async def list_page_urls(self) -> list[str]:
        return list(self.pages)

    # --- Visits ---

    async def add_page_visit(self, url: str, time: int) -> None:
        self.visits.setdefault(normalize_url(url), {}).setdefault(time, {})

    async def get_visit_times(self, url: str) -> list[int]:
        return sorted(self.visits.get(normalize_url(url), {}))

    async def update_visit_metadata(
        self, url: str, time: int, data: dict[str, Any]
    ) -> None:
        visits = self.visits.get(normalize_url(url), {})
        if time in visits:
            visits[time].update(data)

    # --- Favicons ---

    async def get_fav_icon(self, hostname: str) -> str | None:
        return self.fav_icons.get(hostname)

    async def create_or_update_fav_icon(self, hostname: str, fav_icon: str) -> None:
        self.fav_icons[hostname] = fav_icon

    # --- Stored document content ---

    async def create_or_update_doc_content(self, doc: StoredDocContent) -> None:
        self.doc_contents[doc.normalized_url] = doc.model_copy(deep=True)

    async def get_doc_content(self, normalized_url: str) -> StoredDocContent | None:
        return self.doc_contents.get(normalized_url)
