# src/core/models.py - v1
"""Identity domain models: fingerprints, locators, identifiers, content info.

Also holds the page-level records exchanged with the extraction and
storage collaborators (PageDoc, PageData, PageAnalysis, ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# === ENUMS ===


class FingerprintScheme(str, Enum):
    """Hashing scheme that produced a fingerprint."""

    PDF_V1 = "pdf-v1"
    SHA256 = "sha256"


class LocatorFormat(str, Enum):
    """Format of the content a locator points at."""

    PDF = "pdf"
    HTML = "html"


class LocatorType(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class LocationScheme(str, Enum):
    NORMALIZED_URL_V1 = "normalized-url-v1"
    FILESYSTEM_PATH_V1 = "filesystem-path-v1"


class StoredContentType(str, Enum):
    HTML_BODY = "html-body"
    PDF_CONTENT = "pdf-content"


# === IDENTITY ===


class Fingerprint(BaseModel):
    """Content-derived hash identifying a document independent of location."""

    scheme: FingerprintScheme
    value: str


class LocatorInput(BaseModel):
    """Caller-supplied locator metadata for an observed location."""

    format: LocatorFormat
    original_location: str


class ContentLocator(BaseModel):
    """Evidence binding one fingerprint to one observed location."""

    format: LocatorFormat
    original_location: str
    location: str
    location_type: LocatorType
    location_scheme: LocationScheme
    fingerprint: str
    fingerprint_scheme: FingerprintScheme
    normalized_url: str
    primary: bool = True
    valid: bool = True
    version: int = 0
    last_visited: int | None = None


class ContentIdentifier(BaseModel):
    """Canonical name of a page: normalized URL plus the full URL."""

    model_config = ConfigDict(frozen=True)

    normalized_url: str
    full_url: str


class ContentInfo(BaseModel):
    """Aggregate of locators, primary and alias identifiers for one document.

    ``as_of`` is a millisecond timestamp of when the record was derived.
    """

    as_of: int
    locators: list[ContentLocator] = Field(default_factory=list)
    primary_identifier: ContentIdentifier
    alias_identifiers: list[ContentIdentifier] = Field(default_factory=list)

    def has_alias(self, normalized_url: str) -> bool:
        return any(a.normalized_url == normalized_url for a in self.alias_identifiers)

    def is_stale(self, now_ms: int, max_age_ms: int) -> bool:
        """True once the record is older than ``max_age_ms``."""
        return now_ms - self.as_of > max_age_ms

    @property
    def fingerprints(self) -> list[Fingerprint]:
        return [
            Fingerprint(scheme=loc.fingerprint_scheme, value=loc.fingerprint)
            for loc in self.locators
        ]


class StoredContentIdentifier(BaseModel):
    """Identity-store lookup result for a set of fingerprints."""

    identifier: ContentIdentifier
    locators: list[ContentLocator] = Field(default_factory=list)


# === PAGES ===


class PageContent(BaseModel):
    title: str | None = None
    full_text: str | None = None


class PageDoc(BaseModel):
    """Raw page document handed to the page pipeline."""

    url: str
    original_url: str | None = None
    content: PageContent = Field(default_factory=PageContent)
    fav_icon_uri: str | None = None


class PageData(BaseModel):
    """Storable page record produced by the page pipeline.

    Extra fields are tolerated on input and stripped against the
    destination schema before storage.
    """

    model_config = ConfigDict(extra="allow")

    url: str
    full_url: str
    domain: str = ""
    hostname: str = ""
    full_title: str | None = None
    text: str | None = None
    terms: list[str] = Field(default_factory=list)
    fav_icon_uri: str | None = None


class PageAnalysis(BaseModel):
    """Content extracted from a live tab."""

    title: str | None = None
    full_text: str | None = None
    fav_icon_uri: str | None = None
    html_body: str | None = None
    pdf_metadata: dict[str, Any] | None = None
    pdf_page_texts: list[str] | None = None


class FetchedPageData(BaseModel):
    """Content fetched for a URL without an open tab."""

    content: PageContent = Field(default_factory=PageContent)
    html_body: str | None = None
    fav_icon_uri: str | None = None


class ExtractedPdfData(BaseModel):
    title: str | None = None
    full_text: str | None = None
    pdf_metadata: dict[str, Any] = Field(default_factory=dict)
    pdf_page_texts: list[str] = Field(default_factory=list)

    @property
    def fingerprints(self) -> list[str]:
        return list(self.pdf_metadata.get("fingerprints") or [])


class StoredDocContent(BaseModel):
    normalized_url: str
    stored_content_type: StoredContentType
    content: Any


class PageMetaData(BaseModel):
    page_title: str | None = None


class PageCreationProps(BaseModel):
    """Input of ``index_page``."""

    full_url: str
    tab_id: int | None = None
    visit_time: int | Literal["$now"] | None = None
    skip_update_page_count: bool = False
    meta_data: PageMetaData = Field(default_factory=PageMetaData)


class PageCreationOpts(BaseModel):
    add_inbox_entry_on_create: bool = False


class IndexPageResult(BaseModel):
    full_url: str
