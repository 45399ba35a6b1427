# src/extraction/tab_manager.py - v1
"""Tab-management interface used to find the tab showing a URL."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseTabManager(ABC):
    @abstractmethod
    async def find_tab_id_by_full_url(self, full_url: str) -> int | None:
        """ID of an open tab showing ``full_url``, or None."""


class NullTabManager(BaseTabManager):
    """Tab manager for headless use: no tab is ever open."""

    async def find_tab_id_by_full_url(self, full_url: str) -> int | None:
        return None
