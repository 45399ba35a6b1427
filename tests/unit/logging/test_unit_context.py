# tests/unit/logging/test_unit_context.py - v1
"""Tests for logging/context.py - contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from pageindexer.logging.context import (
    clear_context,
    get_context,
    set_operation_context,
    set_page_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.tab_id is None
        assert ctx.page_url is None
        assert ctx.operation is None

    def test_set_page_context(self):
        set_page_context("https://a.example", tab_id=4)
        ctx = get_context()
        assert ctx.page_url == "https://a.example"
        assert ctx.tab_id == 4

    def test_as_dict_filters_none(self):
        set_page_context("https://a.example")
        assert get_context().as_dict() == {"page_url": "https://a.example"}

    def test_clear(self):
        set_page_context("https://a.example", tab_id=1)
        set_operation_context("index_page")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_tasks_do_not_leak_context(self):
        async def worker(tab_id: int) -> int | None:
            set_page_context(f"https://a.example/{tab_id}", tab_id=tab_id)
            await asyncio.sleep(0)
            return get_context().tab_id

        results = await asyncio.gather(worker(1), worker(2))
        assert results == [1, 2]
        assert get_context().tab_id is None
