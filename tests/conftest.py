# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, fake tab manager and page extractor, and a
fully wired PageIndexingService over in-memory stores. No external
dependencies: all I/O stays in memory.
"""

from __future__ import annotations

import pytest

from pageindexer.cache.memory_store import MemorySettingsStore
from pageindexer.config.settings import Settings
from pageindexer.core.models import (
    ExtractedPdfData,
    FetchedPageData,
    PageAnalysis,
    PageContent,
)
from pageindexer.extraction.base_page_extractor import BasePageExtractor
from pageindexer.extraction.tab_manager import BaseTabManager
from pageindexer.indexing.service import PageIndexingService
from pageindexer.storage.memory_identity_store import MemoryIdentityStore

NOW_MS = 1_700_000_000_000


# === MOCK CLASSES ===


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTabManager(BaseTabManager):
    """Tab lookup over a fixed full URL -> tab ID map."""

    def __init__(self, tabs: dict[str, int] | None = None) -> None:
        self.tabs = dict(tabs or {})
        self.queries: list[str] = []

    async def find_tab_id_by_full_url(self, full_url: str) -> int | None:
        self.queries.append(full_url)
        return self.tabs.get(full_url)


class FakePageExtractor(BasePageExtractor):
    """Returns canned extraction results and records every call."""

    def __init__(self) -> None:
        self.analyses: dict[str, PageAnalysis] = {}
        self.fetched: dict[str, FetchedPageData] = {}
        self.pdfs: dict[str, ExtractedPdfData] = {}
        self.calls: list[tuple[str, str]] = []
        self.fav_icon_requests: list[bool] = []

    async def analyse_tab(
        self, tab_id: int, url: str, include_fav_icon: bool = True
    ) -> PageAnalysis:
        self.calls.append(("analyse_tab", url))
        self.fav_icon_requests.append(include_fav_icon)
        analysis = self.analyses.get(url, PageAnalysis(title="Tab page"))
        if not include_fav_icon:
            analysis = analysis.model_copy(update={"fav_icon_uri": None})
        return analysis

    async def fetch_page_data(self, full_url: str) -> FetchedPageData:
        self.calls.append(("fetch_page_data", full_url))
        return self.fetched.get(
            full_url,
            FetchedPageData(content=PageContent(title="Fetched page", full_text="")),
        )

    async def fetch_pdf_data(self, full_url: str) -> ExtractedPdfData:
        self.calls.append(("fetch_pdf_data", full_url))
        return self.pdfs[full_url]


# === FIXTURES ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, settings_store_backend="memory")


@pytest.fixture
def settings_store() -> MemorySettingsStore:
    return MemorySettingsStore()


@pytest.fixture
def identity_store() -> MemoryIdentityStore:
    return MemoryIdentityStore()


@pytest.fixture
def tab_manager() -> FakeTabManager:
    return FakeTabManager()


@pytest.fixture
def extractor() -> FakePageExtractor:
    return FakePageExtractor()


@pytest.fixture
def service(
    settings, settings_store, identity_store, tab_manager, extractor, clock
) -> PageIndexingService:
    """PageIndexingService wired over in-memory collaborators."""
    return PageIndexingService(
        settings_store=settings_store,
        identity_store=identity_store,
        tab_manager=tab_manager,
        extractor=extractor,
        settings=settings,
        get_now=clock,
    )
