# src/identity/coordinator.py - v1
"""Tab-scoped rendezvous for content identifiers.

UI code asks "what is the identifier of the page in tab T at URL U?" while
the page itself is still resolving it. Both sides meet on a per
(tab_id, full_url) Resolvable:

    waiter   -> await_identifier(T, U) ---+
                                          +--> Resolvable(T, U)
    resolver -> register_resolution(T, U) +       (single assignment)

Waiters give up with IdentifierTimeoutError once their deadline passes.
"""

from __future__ import annotations

import asyncio
import logging

from pageindexer.core.exceptions import IdentifierTimeoutError
from pageindexer.core.models import ContentIdentifier

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 2500


class Resolvable:
    """Single-assignment awaitable holding a ContentIdentifier.

    The first ``resolve`` wins; later calls are no-ops. Must be created
    inside a running event loop.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[ContentIdentifier] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def value(self) -> ContentIdentifier | None:
        return self._future.result() if self._future.done() else None

    def resolve(self, identifier: ContentIdentifier) -> bool:
        """Fulfil with ``identifier``; return False if already fulfilled."""
        if self._future.done():
            return False
        self._future.set_result(identifier)
        return True

    def follow(self, other: Resolvable) -> None:
        """Fulfil this resolvable with whatever ``other`` resolves to."""
        other._future.add_done_callback(
            lambda fut: self.resolve(fut.result()) if not fut.cancelled() else None
        )

    async def wait(self) -> ContentIdentifier:
        # A timed-out waiter must not cancel the shared future
        return await asyncio.shield(self._future)


class TabResolutionCoordinator:
    """Per-tab, per-URL registry of pending identifier resolutions."""

    def __init__(self, default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        self.default_timeout_ms = default_timeout_ms
        self._resolvables: dict[int, dict[str, Resolvable]] = {}

    def get_resolvable(self, tab_id: int, full_url: str) -> Resolvable:
        """Return the current resolvable for the key, creating it lazily."""
        tab = self._resolvables.setdefault(tab_id, {})
        resolvable = tab.get(full_url)
        if resolvable is None:
            resolvable = Resolvable()
            tab[full_url] = resolvable
        return resolvable

    def register_resolution(self, tab_id: int, full_url: str) -> Resolvable:
        """Install a fresh resolvable for the key, replacing any earlier one.

        A replaced resolvable that is still pending follows the fresh one,
        so waiters that attached before this call are fulfilled by it.
        """
        tab = self._resolvables.setdefault(tab_id, {})
        fresh = Resolvable()
        previous = tab.get(full_url)
        if previous is not None and not previous.done:
            previous.follow(fresh)
        tab[full_url] = fresh
        return fresh

    async def await_identifier(
        self,
        tab_id: int,
        full_url: str,
        timeout_ms: int | None = None,
    ) -> ContentIdentifier:
        """Wait for the identifier of ``full_url`` in ``tab_id``.

        Raises:
            IdentifierTimeoutError: If nothing resolves it within ``timeout_ms``.
        """
        timeout_ms = self.default_timeout_ms if timeout_ms is None else timeout_ms
        resolvable = self.get_resolvable(tab_id, full_url)
        try:
            return await asyncio.wait_for(resolvable.wait(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning(
                "Identifier wait timed out after %dms: tab=%s url=%s",
                timeout_ms, tab_id, full_url,
            )
            raise IdentifierTimeoutError(tab_id, full_url, timeout_ms) from None

    def handle_tab_close(self, tab_id: int) -> None:
        """Discard every pending and resolved entry of a closed tab."""
        dropped = self._resolvables.pop(tab_id, None)
        if dropped:
            logger.debug("Dropped %d resolvables for closed tab %s", len(dropped), tab_id)

    def tracked_tabs(self) -> list[int]:
        return list(self._resolvables)
