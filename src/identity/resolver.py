# src/identity/resolver.py - v1
"""IdentifierResolver: find-or-create the canonical identity of observed content.

Ordinary web pages are named by their normalized URL. Content that carries
fingerprints (PDFs) is named by a base locator URL derived from its first
fingerprint, so every URL the same document is reached under converges on
one record:

    blob:...             --+
    https://cdn/doc.pdf  --+--> memex.cloud/ct/<fingerprint>.pdf
    file:///tmp/doc.pdf  --+

Each observed URL becomes an alias of that record and each new
(fingerprint, location) pair becomes a locator.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence

from pageindexer.config.settings import ONE_WEEK_MS
from pageindexer.core.models import (
    ContentIdentifier,
    ContentInfo,
    ContentLocator,
    Fingerprint,
    LocationScheme,
    LocatorInput,
    LocatorType,
    StoredContentIdentifier,
)
from pageindexer.core.url import (
    BASE_LOCATOR_URL,
    build_base_locator_url,
    fingerprints_equal,
    is_file_url,
    is_url_supported,
    normalize_url,
)

if TYPE_CHECKING:
    from pageindexer.cache.content_info_cache import ContentInfoCache
    from pageindexer.storage.base_identity_store import BaseIdentityStore

logger = logging.getLogger(__name__)


def identifier_for(full_url: str) -> ContentIdentifier:
    """Regular identifier of a URL: its normalized form plus the URL itself."""
    return ContentIdentifier(normalized_url=normalize_url(full_url), full_url=full_url)


class IdentifierResolver:
    """Resolve observed URLs (and fingerprints) to canonical identifiers."""

    def __init__(
        self,
        cache: ContentInfoCache,
        identity_store: BaseIdentityStore,
        get_now: Callable[[], int],
        max_age_ms: int = ONE_WEEK_MS,
        base_locator_url: str = BASE_LOCATOR_URL,
    ) -> None:
        self.cache = cache
        self.identity_store = identity_store
        self._get_now = get_now
        self._max_age_ms = max_age_ms
        self._base_locator_url = base_locator_url

    async def resolve(
        self,
        locator: LocatorInput,
        fingerprints: Sequence[Fingerprint] = (),
    ) -> ContentIdentifier:
        """Return the canonical identifier for ``locator.original_location``.

        Without fingerprints this is the regular identifier and the cache is
        not touched. With fingerprints the content info is found or created,
        the observed URL is recorded as an alias, new fingerprints are
        recorded as locators, and the cache is stored back.
        """
        regular = identifier_for(locator.original_location)

        if not fingerprints:
            return regular

        async with self.cache.mutation() as cache:
            now = self._get_now()
            stored: StoredContentIdentifier | None = None

            info = await cache.get(regular.normalized_url)
            if info is None or info.is_stale(now, self._max_age_ms):
                stored = await self.identity_store.get_content_identifier(
                    list(fingerprints)
                )
                if stored is None:
                    info = await self._content_info_for_fingerprint(
                        locator, fingerprints, regular, now
                    )
                else:
                    info = await self._content_info_from_stored(stored, now)

            await cache.put(regular.normalized_url, info)
            await cache.put(info.primary_identifier.normalized_url, info)

            if not info.has_alias(regular.normalized_url):
                info.alias_identifiers.append(regular)

            has_new_locators = self._merge_locators(info, locator, fingerprints, now)

        if stored is not None and has_new_locators:
            await self.identity_store.store_locators(
                info.primary_identifier, list(info.locators)
            )

        return info.primary_identifier

    async def _content_info_for_fingerprint(
        self,
        locator: LocatorInput,
        fingerprints: Sequence[Fingerprint],
        regular: ContentIdentifier,
        now: int,
    ) -> ContentInfo:
        """Content info named by the first fingerprint's base locator URL.

        Another URL of the same document may already have created it in
        this cache before any locator reached the identity store.
        """
        primary = identifier_for(
            build_base_locator_url(
                fingerprints[0].value, locator.format, self._base_locator_url
            )
        )
        cached = await self.cache.get(primary.normalized_url)
        if cached is not None and not cached.is_stale(now, self._max_age_ms):
            return cached

        logger.info(
            "New content identity %s for %s",
            primary.normalized_url, regular.normalized_url,
        )
        return ContentInfo(
            as_of=now,
            primary_identifier=primary,
            locators=[],
            alias_identifiers=[regular],
        )

    async def _content_info_from_stored(
        self, stored: StoredContentIdentifier, now: int
    ) -> ContentInfo:
        """Reuse the cached record for a stored identity, or seed one from it."""
        cached = await self.cache.get(stored.identifier.normalized_url)
        if cached is None:
            return ContentInfo(
                as_of=now,
                primary_identifier=stored.identifier,
                locators=list(stored.locators),
                alias_identifiers=_unique_aliases(stored.locators),
            )

        if cached.is_stale(now, self._max_age_ms):
            # Refresh from durable storage without discarding local locators
            for loc in stored.locators:
                if not any(
                    existing.fingerprint == loc.fingerprint
                    and existing.original_location == loc.original_location
                    for existing in cached.locators
                ):
                    cached.locators.append(loc)
            for alias in _unique_aliases(stored.locators):
                if not cached.has_alias(alias.normalized_url):
                    cached.alias_identifiers.append(alias)
            cached.as_of = now
        return cached

    def _merge_locators(
        self,
        info: ContentInfo,
        locator: LocatorInput,
        fingerprints: Sequence[Fingerprint],
        now: int,
    ) -> bool:
        """Append a locator per unseen fingerprint; return True if any were added."""
        location = locator.original_location
        # Object URLs are regenerated per open: skip them once an alias exists
        unsupported_with_existing = bool(info.alias_identifiers) and not is_url_supported(
            location
        )

        has_new = False
        for fingerprint in fingerprints:
            if any(
                fingerprints_equal(existing, fingerprint)
                and (existing.original_location == location or unsupported_with_existing)
                for existing in info.locators
            ):
                continue
            has_new = True

            is_file = is_file_url(location)
            info.locators.append(
                ContentLocator(
                    format=locator.format,
                    original_location=location,
                    location=normalize_url(location),
                    location_type=LocatorType.LOCAL if is_file else LocatorType.REMOTE,
                    location_scheme=(
                        LocationScheme.FILESYSTEM_PATH_V1
                        if is_file
                        else LocationScheme.NORMALIZED_URL_V1
                    ),
                    fingerprint=fingerprint.value,
                    fingerprint_scheme=fingerprint.scheme,
                    normalized_url=info.primary_identifier.normalized_url,
                    primary=True,
                    valid=True,
                    version=0,
                    last_visited=now,
                )
            )
        return has_new


def _unique_aliases(locators: Sequence[ContentLocator]) -> list[ContentIdentifier]:
    aliases: list[ContentIdentifier] = []
    seen: set[str] = set()
    for loc in locators:
        alias = identifier_for(loc.original_location)
        if alias.normalized_url not in seen:
            seen.add(alias.normalized_url)
            aliases.append(alias)
    return aliases
