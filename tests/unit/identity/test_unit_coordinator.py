# tests/unit/identity/test_unit_coordinator.py - v1
"""Tests for identity/coordinator.py - tab-scoped identifier rendezvous."""

from __future__ import annotations

import asyncio

import pytest

from pageindexer.core.exceptions import IdentifierTimeoutError
from pageindexer.core.models import ContentIdentifier
from pageindexer.identity.coordinator import Resolvable, TabResolutionCoordinator

IDENT = ContentIdentifier(
    normalized_url="memex.cloud/ct/abc.pdf", full_url="https://memex.cloud/ct/abc.pdf"
)
OTHER = ContentIdentifier(normalized_url="a.example", full_url="https://a.example")


class TestResolvable:
    @pytest.mark.asyncio
    async def test_single_assignment(self):
        r = Resolvable()
        assert not r.done
        assert r.value is None
        assert r.resolve(IDENT) is True
        assert r.resolve(OTHER) is False
        assert r.value == IDENT
        assert await r.wait() == IDENT

    @pytest.mark.asyncio
    async def test_follow(self):
        leader, follower = Resolvable(), Resolvable()
        follower.follow(leader)
        leader.resolve(IDENT)
        assert await asyncio.wait_for(follower.wait(), timeout=1) == IDENT

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_value(self):
        r = Resolvable()
        waiter = asyncio.ensure_future(r.wait())
        await asyncio.sleep(0)
        waiter.cancel()
        await asyncio.sleep(0)
        assert r.resolve(IDENT) is True
        assert await r.wait() == IDENT


class TestAwaitIdentifier:
    @pytest.mark.asyncio
    async def test_resolve_then_wait(self):
        coord = TabResolutionCoordinator()
        coord.register_resolution(1, "blob:x").resolve(IDENT)
        assert await coord.await_identifier(1, "blob:x", timeout_ms=50) == IDENT

    @pytest.mark.asyncio
    async def test_wait_then_resolve(self):
        coord = TabResolutionCoordinator()
        waiter = asyncio.ensure_future(coord.await_identifier(1, "blob:x", timeout_ms=1000))
        await asyncio.sleep(0)
        coord.register_resolution(1, "blob:x").resolve(IDENT)
        assert await waiter == IDENT

    @pytest.mark.asyncio
    async def test_multiple_waiters_same_value(self):
        coord = TabResolutionCoordinator()
        waiters = [
            asyncio.ensure_future(coord.await_identifier(1, "blob:x", timeout_ms=1000))
            for _ in range(3)
        ]
        await asyncio.sleep(0)
        coord.get_resolvable(1, "blob:x").resolve(IDENT)
        assert await asyncio.gather(*waiters) == [IDENT, IDENT, IDENT]

    @pytest.mark.asyncio
    async def test_timeout(self):
        coord = TabResolutionCoordinator()
        loop = asyncio.get_running_loop()
        start = loop.time()
        with pytest.raises(IdentifierTimeoutError) as exc_info:
            await coord.await_identifier(1, "blob:x", timeout_ms=50)
        elapsed = loop.time() - start
        assert 0.04 <= elapsed < 0.08
        assert exc_info.value.tab_id == 1
        assert exc_info.value.full_url == "blob:x"
        assert exc_info.value.timeout_ms == 50

    @pytest.mark.asyncio
    async def test_timeout_is_a_timeout_error(self):
        coord = TabResolutionCoordinator(default_timeout_ms=10)
        with pytest.raises(TimeoutError):
            await coord.await_identifier(1, "blob:x")

    @pytest.mark.asyncio
    async def test_late_resolution_reaches_new_waiters(self):
        coord = TabResolutionCoordinator()
        with pytest.raises(IdentifierTimeoutError):
            await coord.await_identifier(1, "blob:x", timeout_ms=10)
        coord.get_resolvable(1, "blob:x").resolve(IDENT)
        assert await coord.await_identifier(1, "blob:x", timeout_ms=10) == IDENT

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        coord = TabResolutionCoordinator()
        coord.register_resolution(1, "blob:x").resolve(IDENT)
        coord.register_resolution(2, "blob:x").resolve(OTHER)
        assert await coord.await_identifier(1, "blob:x", timeout_ms=10) == IDENT
        assert await coord.await_identifier(2, "blob:x", timeout_ms=10) == OTHER
        with pytest.raises(IdentifierTimeoutError):
            await coord.await_identifier(1, "blob:y", timeout_ms=10)


class TestRegisterResolution:
    @pytest.mark.asyncio
    async def test_replaces_resolved_entry(self):
        coord = TabResolutionCoordinator()
        coord.register_resolution(1, "https://a.example").resolve(OTHER)
        fresh = coord.register_resolution(1, "https://a.example")
        assert coord.get_resolvable(1, "https://a.example") is fresh
        fresh.resolve(IDENT)
        assert await coord.await_identifier(1, "https://a.example", timeout_ms=10) == IDENT

    @pytest.mark.asyncio
    async def test_early_waiter_fulfilled_by_replacement(self):
        coord = TabResolutionCoordinator()
        waiter = asyncio.ensure_future(coord.await_identifier(1, "blob:x", timeout_ms=1000))
        await asyncio.sleep(0)
        first = coord.register_resolution(1, "blob:x")
        second = coord.register_resolution(1, "blob:x")
        assert first is not second
        second.resolve(IDENT)
        assert await waiter == IDENT


class TestHandleTabClose:
    @pytest.mark.asyncio
    async def test_drops_entries(self):
        coord = TabResolutionCoordinator()
        coord.register_resolution(1, "blob:x").resolve(IDENT)
        coord.register_resolution(2, "blob:x")
        coord.handle_tab_close(1)
        assert coord.tracked_tabs() == [2]
        with pytest.raises(IdentifierTimeoutError):
            await coord.await_identifier(1, "blob:x", timeout_ms=10)

    def test_unknown_tab(self):
        coord = TabResolutionCoordinator()
        coord.handle_tab_close(99)
        assert coord.tracked_tabs() == []
