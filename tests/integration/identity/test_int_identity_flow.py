# tests/integration/identity/test_int_identity_flow.py - v1
"""End-to-end identity flows over real settings stores.

Exercises the public facade with the JSON and SQLite settings backends so
the content info map goes through an actual durable round-trip.
"""

from __future__ import annotations

import asyncio

import pytest

from pageindexer.api.facade import create_page_indexing, resolve_content_identifier
from pageindexer.cache.content_info_cache import CONTENT_INFO_KEY
from pageindexer.cache.json_store import JsonSettingsStore
from pageindexer.cache.sqlite_store import SqliteSettingsStore
from pageindexer.config.settings import Settings
from pageindexer.core.exceptions import IdentifierTimeoutError
from pageindexer.core.models import (
    Fingerprint,
    FingerprintScheme,
    LocatorFormat,
    LocatorInput,
    LocatorType,
    PageCreationProps,
)
from pageindexer.core.url import normalize_url
from pageindexer.storage.memory_identity_store import MemoryIdentityStore

SHA = Fingerprint(scheme=FingerprintScheme.SHA256, value="abc")


def _pdf(url: str) -> LocatorInput:
    return LocatorInput(format=LocatorFormat.PDF, original_location=url)


@pytest.fixture
def json_settings(tmp_path) -> Settings:
    return Settings(_env_file=None, settings_store_backend="json", settings_store_root=tmp_path)


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_plain_page_then_pdf_aliases(self, json_settings, extractor, clock):
        service = create_page_indexing(settings=json_settings, extractor=extractor, get_now=clock)

        result = await service.index_page(PageCreationProps(full_url="https://a.example/x"))
        page = await service.identity_store.get_page(result.full_url)
        assert page.url == normalize_url("https://a.example/x")

        local = await service.init_content_identifier(_pdf("blob:local1"), [SHA])
        remote = await service.init_content_identifier(_pdf("https://cdn.example/doc.pdf"), [SHA])
        assert local == remote

        info = await service.cache.get(local.normalized_url)
        assert len(info.locators) == 2
        assert {loc.location_type for loc in info.locators} == {LocatorType.LOCAL, LocatorType.REMOTE}
        assert all(loc.fingerprint == "abc" for loc in info.locators)
        alias_urls = [a.normalized_url for a in info.alias_identifiers]
        assert sorted(alias_urls) == ["blob:local1", "cdn.example/doc.pdf"]

    @pytest.mark.asyncio
    async def test_cache_survives_restart(self, json_settings, clock):
        first = create_page_indexing(settings=json_settings, get_now=clock)
        ident = await first.init_content_identifier(_pdf("https://cdn.example/doc.pdf"), [SHA])

        second = create_page_indexing(settings=json_settings, get_now=clock)
        info = await second.cache.get("cdn.example/doc.pdf")
        assert info.primary_identifier == ident
        assert info is await second.cache.get(ident.normalized_url)

        raw = await JsonSettingsStore(root=json_settings.settings_store_root).get(CONTENT_INFO_KEY)
        assert set(raw) == {"cdn.example/doc.pdf", ident.normalized_url}

    @pytest.mark.asyncio
    async def test_sqlite_backend(self, tmp_path, clock):
        settings = Settings(
            _env_file=None, settings_store_backend="sqlite", settings_store_root=tmp_path
        )
        service = create_page_indexing(settings=settings, get_now=clock)
        try:
            await service.init_content_identifier(_pdf("blob:local1"), [SHA])
            raw = await service.settings_store.get(CONTENT_INFO_KEY)
            assert "blob:local1" in raw
        finally:
            assert isinstance(service.settings_store, SqliteSettingsStore)
            service.settings_store.close()

    @pytest.mark.asyncio
    async def test_identity_store_bridges_fresh_cache(self, json_settings, tmp_path, clock):
        identity_store = MemoryIdentityStore()
        first = create_page_indexing(
            settings=json_settings, identity_store=identity_store, get_now=clock
        )
        ident = await first.init_content_identifier(_pdf("https://cdn.example/doc.pdf"), [SHA])
        await first.store_locators(ident)

        other_root = Settings(
            _env_file=None, settings_store_backend="json", settings_store_root=tmp_path / "other"
        )
        second = create_page_indexing(
            settings=other_root, identity_store=identity_store, get_now=clock
        )
        again = await second.init_content_identifier(_pdf("blob:local7"), [SHA])
        assert again == ident


class TestRendezvous:
    @pytest.mark.asyncio
    async def test_ordering_independent(self, clock):
        service = create_page_indexing(
            settings=Settings(_env_file=None, settings_store_backend="memory"), get_now=clock
        )
        early = asyncio.ensure_future(
            service.wait_for_content_identifier(9, "blob:local1", timeout=1000)
        )
        await asyncio.sleep(0)
        ident = await service.init_content_identifier(_pdf("blob:local1"), [SHA], tab_id=9)
        late = await service.wait_for_content_identifier(9, "blob:local1", timeout=50)
        assert await early == ident == late

    @pytest.mark.asyncio
    async def test_timeout_window(self):
        service = create_page_indexing(
            settings=Settings(_env_file=None, settings_store_backend="memory")
        )
        loop = asyncio.get_running_loop()
        start = loop.time()
        with pytest.raises(IdentifierTimeoutError):
            await service.wait_for_content_identifier(9, "blob:local1", timeout=50)
        assert loop.time() - start < 0.08

    @pytest.mark.asyncio
    async def test_tab_close_starts_fresh_rendezvous(self, clock):
        service = create_page_indexing(
            settings=Settings(_env_file=None, settings_store_backend="memory"), get_now=clock
        )
        first = await service.init_content_identifier(_pdf("blob:local1"), [SHA], tab_id=9)
        await service.handle_tab_close(9)

        waiter = asyncio.ensure_future(
            service.wait_for_content_identifier(9, "blob:local1", timeout=1000)
        )
        await asyncio.sleep(0)
        assert not waiter.done()
        second = await service.init_content_identifier(_pdf("blob:local1"), [SHA], tab_id=9)
        assert await waiter == second == first


class TestFacade:
    @pytest.mark.asyncio
    async def test_one_shot_resolution(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SETTINGS_STORE_BACKEND", "memory")
        ident = await resolve_content_identifier("https://www.a.example/x/")
        assert ident.normalized_url == "a.example/x"

    @pytest.mark.asyncio
    async def test_one_shot_with_service(self, clock):
        service = create_page_indexing(
            settings=Settings(_env_file=None, settings_store_backend="memory"), get_now=clock
        )
        ident = await resolve_content_identifier(
            "blob:local1", [SHA], LocatorFormat.PDF, service=service
        )
        assert ident.normalized_url == "memex.cloud/ct/abc.pdf"
