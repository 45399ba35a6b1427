# src/indexing/pipeline.py - v1
"""Page pipeline: turn a raw PageDoc into a storable PageData record."""

from __future__ import annotations

import re

from pageindexer.core.models import PageData, PageDoc
from pageindexer.core.url import extract_url_parts, normalize_url

_WORD_RE = re.compile(r"[^\W\d_]{3,}")
_STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
        "had", "her", "was", "one", "our", "out", "has", "his", "how", "its",
        "who", "did", "yes", "too", "use", "that", "with", "have", "this",
        "will", "your", "from", "they", "been", "were", "said", "each",
        "which", "their", "there", "what", "about", "would", "these", "other",
    }
)
_MAX_TERMS = 5000


def page_pipeline(page_doc: PageDoc) -> PageData:
    """Build the page record for ``page_doc``.

    Host parts come from ``original_url`` when given, so a PDF stored under
    its base locator URL still carries the domain it was fetched from.
    """
    source_url = page_doc.original_url or page_doc.url
    hostname, domain = extract_url_parts(source_url)
    text = _clean_text(page_doc.content.full_text)

    return PageData(
        url=normalize_url(page_doc.url),
        full_url=page_doc.url,
        domain=domain,
        hostname=hostname,
        full_title=_clean_text(page_doc.content.title),
        text=text,
        terms=extract_terms(text or ""),
        fav_icon_uri=page_doc.fav_icon_uri,
    )


def extract_terms(text: str) -> list[str]:
    """Unique lowercase search terms of ``text``, stop words removed."""
    terms = {
        word for word in _WORD_RE.findall(text.lower()) if word not in _STOP_WORDS
    }
    return sorted(terms)[:_MAX_TERMS]


def _clean_text(text: str | None) -> str | None:
    if text is None:
        return None
    cleaned = re.sub(r"\s+", " ", text).strip()
    return cleaned or None
