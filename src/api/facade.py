# src/api/facade.py - v1
"""Public API facade: wire a PageIndexingService from settings.

Usage:
    from pageindexer.api.facade import create_page_indexing
    service = create_page_indexing(extractor=my_extractor)
    identifier = await service.init_content_identifier(locator, fingerprints)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from pageindexer.cache.store_factory import create_settings_store
from pageindexer.config.settings import Settings
from pageindexer.core.models import ContentIdentifier, Fingerprint, LocatorFormat, LocatorInput
from pageindexer.indexing.service import PageIndexingService
from pageindexer.storage.memory_identity_store import MemoryIdentityStore

if TYPE_CHECKING:
    from pageindexer.cache.base_settings_store import BaseSettingsStore
    from pageindexer.extraction.base_page_extractor import BasePageExtractor
    from pageindexer.extraction.tab_manager import BaseTabManager
    from pageindexer.storage.base_identity_store import BaseIdentityStore

logger = logging.getLogger(__name__)


def create_page_indexing(
    settings: Settings | None = None,
    settings_store: BaseSettingsStore | None = None,
    identity_store: BaseIdentityStore | None = None,
    tab_manager: BaseTabManager | None = None,
    extractor: BasePageExtractor | None = None,
    create_inbox_entry: Callable[[str], Awaitable[None]] | None = None,
    update_page_counter: Callable[[], Awaitable[None]] | None = None,
    get_now: Callable[[], int] | None = None,
) -> PageIndexingService:
    """Build a PageIndexingService.

    Args:
        settings: Global settings. Loaded from .env if None.
        settings_store: Key/value store for the content info cache. Built
            from ``settings.settings_store_backend`` if None.
        identity_store: Durable identity/page store. In-memory if None.
        tab_manager: Browser tab lookup. No tabs are ever found if None.
        extractor: Page content extraction. Required by ``index_page``.
        create_inbox_entry: Called with the full URL of newly created pages.
        update_page_counter: Called once per indexed page.
        get_now: Clock in epoch milliseconds.

    Raises:
        ConfigurationError: If settings are inconsistent.
    """
    settings = settings or Settings()
    if settings_store is None:
        settings_store = create_settings_store(settings)
    if identity_store is None:
        identity_store = MemoryIdentityStore()

    logger.debug(
        "Creating page indexing service: settings_store=%s identity_store=%s",
        type(settings_store).__name__, type(identity_store).__name__,
    )
    return PageIndexingService(
        settings_store=settings_store,
        identity_store=identity_store,
        tab_manager=tab_manager,
        extractor=extractor,
        settings=settings,
        create_inbox_entry=create_inbox_entry,
        update_page_counter=update_page_counter,
        get_now=get_now,
    )


async def resolve_content_identifier(
    full_url: str,
    fingerprints: Sequence[Fingerprint] = (),
    locator_format: LocatorFormat = LocatorFormat.HTML,
    service: PageIndexingService | None = None,
) -> ContentIdentifier:
    """One-shot resolution of the canonical identifier of ``full_url``."""
    service = service or create_page_indexing()
    return await service.init_content_identifier(
        LocatorInput(format=locator_format, original_location=full_url),
        fingerprints,
    )
