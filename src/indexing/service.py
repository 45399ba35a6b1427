# src/indexing/service.py - v1
"""PageIndexingService: identity resolution, page upserts and visit bookkeeping.

Exposed contract for the UI and content-script layers:
  - init_content_identifier: resolve (and publish to tab waiters) the
    canonical identifier of an observed page
  - wait_for_content_identifier: wait, bounded, for that identifier
  - index_page: find the tab, extract content, upsert the page record
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Awaitable, Callable, Sequence

from pageindexer.cache.base_settings_store import BaseSettingsStore
from pageindexer.cache.content_info_cache import ContentInfoCache
from pageindexer.config.settings import Settings
from pageindexer.core.exceptions import (
    MissingContentInfoError,
    MissingTabError,
    PageIndexingError,
    PageNotFoundError,
)
from pageindexer.core.models import (
    ContentIdentifier,
    ContentLocator,
    Fingerprint,
    FingerprintScheme,
    IndexPageResult,
    LocatorFormat,
    LocatorInput,
    PageContent,
    PageCreationOpts,
    PageCreationProps,
    PageData,
    PageDoc,
    StoredContentType,
    StoredDocContent,
)
from pageindexer.core.url import (
    does_url_point_to_pdf,
    extract_url_parts,
    is_base_locator_pdf,
    normalize_url,
)
from pageindexer.extraction.base_page_extractor import BasePageExtractor
from pageindexer.extraction.tab_manager import BaseTabManager, NullTabManager
from pageindexer.identity.coordinator import TabResolutionCoordinator
from pageindexer.identity.resolver import IdentifierResolver
from pageindexer.indexing.pipeline import page_pipeline
from pageindexer.logging.context import set_operation_context, set_page_context
from pageindexer.storage.base_identity_store import BaseIdentityStore

logger = logging.getLogger(__name__)

INDEXED_TAB_PAGES_KEY = "indexedTabPages"


def _now_ms() -> int:
    return int(time.time() * 1000)


class PageIndexingService:
    """Background service owning content identity and page indexing."""

    def __init__(
        self,
        settings_store: BaseSettingsStore,
        identity_store: BaseIdentityStore,
        tab_manager: BaseTabManager | None = None,
        extractor: BasePageExtractor | None = None,
        settings: Settings | None = None,
        create_inbox_entry: Callable[[str], Awaitable[None]] | None = None,
        update_page_counter: Callable[[], Awaitable[None]] | None = None,
        get_now: Callable[[], int] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.settings_store = settings_store
        self.identity_store = identity_store
        self.tab_manager = tab_manager or NullTabManager()
        self._extractor = extractor
        self._create_inbox_entry = create_inbox_entry
        self._update_page_counter = update_page_counter
        self.get_now = get_now or _now_ms

        self.cache = ContentInfoCache(settings_store)
        self.resolver = IdentifierResolver(
            cache=self.cache,
            identity_store=identity_store,
            get_now=self.get_now,
            max_age_ms=self.settings.content_info_max_age_ms,
            base_locator_url=self.settings.base_locator_url,
        )
        self.coordinator = TabResolutionCoordinator(
            default_timeout_ms=self.settings.identifier_wait_timeout_ms,
        )

    @property
    def extractor(self) -> BasePageExtractor:
        if self._extractor is None:
            raise PageIndexingError("No page extractor configured")
        return self._extractor

    # === Content identity ===

    async def init_content_identifier(
        self,
        locator: LocatorInput,
        fingerprints: Sequence[Fingerprint] = (),
        tab_id: int | None = None,
    ) -> ContentIdentifier:
        """Resolve the canonical identifier of an observed page.

        When ``tab_id`` is given, waiters on (tab_id, original location) are
        released with the result.
        """
        set_page_context(locator.original_location, tab_id)
        set_operation_context("init_content_identifier")

        resolvable = (
            self.coordinator.register_resolution(tab_id, locator.original_location)
            if tab_id is not None
            else None
        )
        identifier = await self.resolver.resolve(locator, fingerprints)
        if resolvable is not None:
            resolvable.resolve(identifier)
        return identifier

    async def wait_for_content_identifier(
        self,
        tab_id: int,
        full_url: str,
        timeout: int | None = None,
    ) -> ContentIdentifier:
        """Identifier of the page at ``full_url`` in ``tab_id``.

        Raises:
            IdentifierTimeoutError: If it is not resolved within ``timeout`` ms.
        """
        return await self.coordinator.await_identifier(tab_id, full_url, timeout)

    async def get_content_fingerprints(
        self, normalized_url: str
    ) -> list[Fingerprint] | None:
        info = await self.cache.get(normalized_url)
        return None if info is None else info.fingerprints

    async def store_locators(self, identifier: ContentIdentifier) -> None:
        """Push the cached locators of ``identifier`` to the identity store."""
        info = await self.cache.get(identifier.normalized_url)
        if info is None:
            return
        await self.identity_store.store_locators(
            info.primary_identifier, list(info.locators)
        )

    async def find_locators_by_normalized_url(
        self, normalized_url: str
    ) -> list[ContentLocator]:
        return await self.identity_store.find_locators_by_normalized_url(normalized_url)

    # === Page upsert ===

    async def create_or_update_page(
        self,
        page_data: PageData,
        opts: PageCreationOpts | None = None,
    ) -> PageData:
        """Idempotently create or update the page under its canonical URL.

        Returns the page record as written, with canonical ``url``/``full_url``.
        """
        opts = opts or PageCreationOpts()
        fav_icon_uri = page_data.fav_icon_uri
        page_data = self._strip_unregistered_fields(page_data)

        info = await self.cache.get(page_data.url)
        content_identifier = info.primary_identifier if info is not None else None
        if content_identifier is not None:
            page_data.full_url = content_identifier.full_url
            page_data.url = content_identifier.normalized_url

        existing = await self.identity_store.get_page(page_data.url)
        if existing is not None:
            await self.identity_store.update_page(page_data, existing)
        else:
            aliases = info.alias_identifiers if info is not None else []
            await self.identity_store.create_page(page_data, aliases)
            logger.info("Created page %s", page_data.url)

        # Locators are stored only once the page row exists
        if content_identifier is not None:
            await self.store_locators(content_identifier)

        if (
            opts.add_inbox_entry_on_create
            and existing is None
            and self._create_inbox_entry is not None
        ):
            await self._create_inbox_entry(page_data.full_url)

        if fav_icon_uri is not None:
            await self.add_fav_icon_if_needed(page_data.url, fav_icon_uri)

        return page_data

    def _strip_unregistered_fields(self, page_data: PageData) -> PageData:
        fields = self.identity_store.page_fields
        data = page_data.model_dump()
        dropped = sorted(k for k in data if k not in fields)
        if dropped:
            logger.debug("Dropping unregistered page fields: %s", dropped)
        return PageData.model_validate({k: v for k, v in data.items() if k in fields})

    async def add_page(self, page_doc: PageDoc, visits: Sequence[int] = ()) -> None:
        """Add/update a page plus its visits (a single 'now' visit by default)."""
        page_data = await self.create_or_update_page(page_pipeline(page_doc))
        visit_times = list(visits) or [self.get_now()]
        await self.identity_store.create_visits_if_needed(page_data.url, visit_times)

    async def add_page_terms(self, page_doc: PageDoc) -> None:
        await self.create_or_update_page(page_pipeline(page_doc))

    async def lookup_page_title_for_url(self, full_page_url: str) -> str | None:
        page = await self.identity_store.get_page(full_page_url)
        return page.full_title if page is not None else None

    async def store_doc_content(
        self,
        normalized_url: str,
        html_body: str | None = None,
        pdf_metadata: dict[str, Any] | None = None,
        pdf_page_texts: list[str] | None = None,
    ) -> None:
        """Persist the full document body: HTML, or PDF metadata plus page texts."""
        if html_body:
            doc = StoredDocContent(
                normalized_url=normalized_url,
                stored_content_type=StoredContentType.HTML_BODY,
                content=html_body,
            )
        elif pdf_metadata is not None and pdf_page_texts is not None:
            doc = StoredDocContent(
                normalized_url=normalized_url,
                stored_content_type=StoredContentType.PDF_CONTENT,
                content={
                    "metadata": {k: v for k, v in pdf_metadata.items() if v is not None},
                    "page_texts": list(pdf_page_texts),
                },
            )
        else:
            return
        await self.identity_store.create_or_update_doc_content(doc)

    # === Indexing ===

    async def index_page(
        self,
        props: PageCreationProps,
        opts: PageCreationOpts | None = None,
    ) -> IndexPageResult:
        """Index the page at ``props.full_url``.

        The returned full URL may differ from the input: PDFs are stored
        under their base locator URL.
        """
        props = props.model_copy(deep=True)
        set_page_context(props.full_url, props.tab_id)
        set_operation_context("index_page")

        # PDF base locator pages always arrive with their tab ID set
        if not is_base_locator_pdf(props.full_url, self.settings.base_locator_url):
            props.tab_id = await self._find_tab_id(props.full_url)

        if props.tab_id is not None:
            page_data, is_existing = await self._process_page_data_from_tab(props)
        else:
            page_data, is_existing = await self._process_page_data_from_url(props)

        if is_existing:
            return IndexPageResult(full_url=page_data.full_url)

        if props.meta_data.page_title and any(
            host in props.full_url for host in self.settings.title_override_hosts_list
        ):
            page_data.full_title = props.meta_data.page_title

        page_data = await self.create_or_update_page(page_data, opts)

        visit_time = self._get_time(props.visit_time)
        if visit_time is not None:
            await self.identity_store.add_page_visit(page_data.url, visit_time)

        await self._update_page_counter_safely(props)
        return IndexPageResult(full_url=page_data.full_url)

    async def index_test_page(self, props: PageCreationProps) -> None:
        """Store a bare page record without extraction."""
        page_data = page_pipeline(PageDoc(url=props.full_url))
        await self.identity_store.create_page_if_not_exists(page_data)

        visit_time = self._get_time(props.visit_time)
        if visit_time is not None:
            await self.identity_store.add_page_visit(page_data.url, visit_time)

    async def _process_page_data_from_tab(
        self, props: PageCreationProps
    ) -> tuple[PageData, bool]:
        if props.tab_id is None:
            raise MissingTabError(props.full_url)

        existing = await self.identity_store.get_page(props.full_url)
        if existing is not None:
            return existing, True

        original_url = props.full_url
        # PDF pages carry their base locator URL; URL data comes from the
        # most recently visited locator instead
        if does_url_point_to_pdf(props.full_url, self.settings.base_locator_url):
            info = await self.cache.get(normalize_url(props.full_url))
            if info is None or not info.locators:
                raise MissingContentInfoError(props.full_url)
            latest = max(info.locators, key=lambda loc: loc.last_visited or 0)
            # Local PDFs only have an in-memory location
            if not latest.original_location.startswith("blob:"):
                original_url = latest.original_location

        include_fav_icon = not await self.domain_has_fav_icon(props.full_url)
        analysis = await self.extractor.analyse_tab(
            props.tab_id, props.full_url, include_fav_icon=include_fav_icon
        )

        page_data = page_pipeline(
            PageDoc(
                url=props.full_url,
                original_url=original_url,
                content=PageContent(title=analysis.title, full_text=analysis.full_text),
            )
        )
        await self.store_doc_content(
            page_data.url,
            html_body=analysis.html_body,
            pdf_metadata=analysis.pdf_metadata,
            pdf_page_texts=analysis.pdf_page_texts,
        )

        if analysis.fav_icon_uri:
            await self.identity_store.create_fav_icon_if_needed(
                page_data.hostname, analysis.fav_icon_uri
            )

        return page_data, False

    async def _process_page_data_from_url(
        self, props: PageCreationProps
    ) -> tuple[PageData, bool]:
        full_url = props.full_url

        if not does_url_point_to_pdf(full_url, self.settings.base_locator_url):
            existing = await self.identity_store.get_page(full_url)
            if existing is not None:
                return existing, True

            fetched = await self.extractor.fetch_page_data(full_url)
            await self.store_doc_content(normalize_url(full_url), html_body=fetched.html_body)
            page_doc = PageDoc(
                url=full_url,
                original_url=full_url,
                content=fetched.content,
                fav_icon_uri=fetched.fav_icon_uri,
            )
            return page_pipeline(page_doc), False

        pdf_data = await self.extractor.fetch_pdf_data(full_url)
        base_locator = await self.init_content_identifier(
            LocatorInput(format=LocatorFormat.PDF, original_location=full_url),
            [
                Fingerprint(scheme=FingerprintScheme.PDF_V1, value=fp)
                for fp in pdf_data.fingerprints
            ],
        )

        existing = await self.identity_store.get_page(base_locator.full_url)
        if existing is not None:
            return existing, True

        await self.store_doc_content(
            base_locator.normalized_url,
            pdf_metadata=pdf_data.pdf_metadata,
            pdf_page_texts=pdf_data.pdf_page_texts,
        )
        page_doc = PageDoc(
            url=base_locator.full_url,
            original_url=full_url,
            content=PageContent(title=pdf_data.title, full_text=pdf_data.full_text),
        )
        return page_pipeline(page_doc), False

    async def _find_tab_id(self, full_url: str) -> int | None:
        """Tab showing ``full_url`` or, failing that, any of its locators."""
        tab_id = await self.tab_manager.find_tab_id_by_full_url(full_url)
        if tab_id is not None:
            return tab_id

        info = await self.cache.get(normalize_url(full_url))
        for locator in info.locators if info is not None else []:
            tab_id = await self.tab_manager.find_tab_id_by_full_url(
                locator.original_location
            )
            if tab_id is not None:
                return tab_id
        return None

    async def _update_page_counter_safely(self, props: PageCreationProps) -> None:
        if props.skip_update_page_count or self._update_page_counter is None:
            return
        try:
            await self._update_page_counter()
        except Exception:
            logger.warning(
                "Failed to update page counter for %s", props.full_url, exc_info=True
            )

    def _get_time(self, visit_time: int | str | None) -> int | None:
        if not visit_time:
            return None
        return self.get_now() if visit_time == "$now" else int(visit_time)

    # === Visits ===

    async def add_visit(self, url: str, time: int | None = None) -> None:
        """Record a visit of an existing page.

        Raises:
            PageNotFoundError: If the page was never stored.
        """
        if not await self.identity_store.page_exists(url):
            raise PageNotFoundError(url, f"Cannot add visit for non-existent page: {url}")
        await self.identity_store.add_page_visit(
            url, self.get_now() if time is None else time
        )

    async def update_timestamp_meta(
        self, url: str, time: int, data: dict[str, Any]
    ) -> None:
        """Attach interaction data to an existing visit."""
        await self.identity_store.update_visit_metadata(url, time, data)

    # === Favicons ===

    async def add_fav_icon(self, url: str, fav_icon_uri: str) -> None:
        hostname, _ = extract_url_parts(url)
        await self.identity_store.create_or_update_fav_icon(hostname, fav_icon_uri)

    async def add_fav_icon_if_needed(self, url: str, fav_icon_uri: str) -> bool:
        hostname, _ = extract_url_parts(url)
        return await self.identity_store.create_fav_icon_if_needed(hostname, fav_icon_uri)

    async def domain_has_fav_icon(self, url: str) -> bool:
        hostname, _ = extract_url_parts(url)
        return await self.identity_store.get_fav_icon(hostname) is not None

    # === Deletion ===

    async def del_pages(self, urls: Sequence[str]) -> int:
        return await self.identity_store.delete_pages([normalize_url(u) for u in urls])

    async def del_pages_by_domain(self, domain: str) -> int:
        return await self.identity_store.delete_pages_by_domain(domain)

    async def del_pages_by_pattern(self, pattern: str | re.Pattern[str]) -> int:
        return await self.identity_store.delete_pages_by_pattern(pattern)

    # === Tab bookkeeping ===

    async def _get_indexed_tab_pages(self) -> dict[str, dict[str, bool]]:
        return await self.settings_store.get(INDEXED_TAB_PAGES_KEY) or {}

    async def is_tab_page_indexed(self, tab_id: int, full_page_url: str) -> bool:
        indexed = await self._get_indexed_tab_pages()
        return indexed.get(str(tab_id), {}).get(full_page_url, False)

    async def mark_tab_page_as_indexed(
        self, tab_id: int | None, full_page_url: str
    ) -> None:
        if tab_id is None:
            return
        indexed = await self._get_indexed_tab_pages()
        indexed.setdefault(str(tab_id), {})[full_page_url] = True
        await self.settings_store.set(INDEXED_TAB_PAGES_KEY, indexed)

    async def handle_tab_close(self, tab_id: int) -> None:
        """Forget indexed pages and pending identifier resolutions of a tab."""
        indexed = await self._get_indexed_tab_pages()
        if indexed.pop(str(tab_id), None) is not None:
            await self.settings_store.set(INDEXED_TAB_PAGES_KEY, indexed)
        self.coordinator.handle_tab_close(tab_id)
