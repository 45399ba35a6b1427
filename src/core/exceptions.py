# src/core/exceptions.py - v1
"""Custom exceptions for page indexing and identity resolution."""

from __future__ import annotations


class PageIndexingError(Exception):
    """Base exception for page indexing operations."""


class PageNotFoundError(PageIndexingError):
    """Raised when an operation targets a page absent from storage."""

    def __init__(self, url: str, message: str = ""):
        self.url = url
        super().__init__(message or f"Page not found: {url}")


class IdentifierTimeoutError(PageIndexingError, TimeoutError):
    """Raised when a content identifier was not resolved before the deadline."""

    def __init__(self, tab_id: int, full_url: str, timeout_ms: int):
        self.tab_id = tab_id
        self.full_url = full_url
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Could not resolve identifier in time for tab: {tab_id}, "
            f"page: {full_url} (waited {timeout_ms}ms)"
        )


class MissingContentInfoError(PageIndexingError):
    """Raised when cached content info lacks data it is required to hold."""

    def __init__(self, url: str, reason: str = "no locators"):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not find content info for page {url}: {reason}")


class MissingTabError(PageIndexingError):
    """Raised when tab extraction is requested without a tab ID."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No tab ID provided to extract content: {url}")
