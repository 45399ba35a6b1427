# src/extraction/base_page_extractor.py - v1
"""Abstract page-content extraction interface.

Implementations talk to the browser (content scripts for open tabs) or
fetch pages and PDFs over the network.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pageindexer.core.models import ExtractedPdfData, FetchedPageData, PageAnalysis


class BasePageExtractor(ABC):
    """Unified interface for page content extractors."""

    @abstractmethod
    async def analyse_tab(
        self, tab_id: int, url: str, include_fav_icon: bool = True
    ) -> PageAnalysis:
        """Extract metadata and full text from the page open in ``tab_id``."""

    @abstractmethod
    async def fetch_page_data(self, full_url: str) -> FetchedPageData:
        """Fetch and extract a web page that is not open in any tab."""

    @abstractmethod
    async def fetch_pdf_data(self, full_url: str) -> ExtractedPdfData:
        """Fetch a PDF and extract its text, metadata and fingerprints."""
