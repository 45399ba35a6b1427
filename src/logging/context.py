# src/logging/context.py - v1
"""Contextual logging support: attach tab_id, page_url, operation to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per resolution / indexing call.
_tab_id: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "tab_id", default=None
)
_page_url: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "page_url", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    tab_id: int | None = None
    page_url: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        tab_id=_tab_id.get(),
        page_url=_page_url.get(),
        operation=_operation.get(),
    )


def set_page_context(page_url: str, tab_id: int | None = None) -> None:
    """Set page-level context (called once per resolution or indexing call)."""
    _page_url.set(page_url)
    _tab_id.set(tab_id)


def set_operation_context(operation: str) -> None:
    _operation.set(operation)


def clear_context() -> None:
    """Reset all context variables."""
    _tab_id.set(None)
    _page_url.set(None)
    _operation.set(None)
