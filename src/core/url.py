# src/core/url.py - v1
"""URL normalization and URL-shape predicates.

Normalized URLs drop the scheme, a leading ``www.``, default ports,
fragments, trailing slashes and tracking query parameters, so that the
many spellings of one web address collapse onto one storage key
(``https://www.Example.com/a/?utm_source=x#top`` -> ``example.com/a``).
Non-web schemes (``file:``, ``blob:``) keep their scheme and are only
stripped of fragments.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from url_normalize import url_normalize

from pageindexer.core.models import ContentLocator, Fingerprint, LocatorFormat

BASE_LOCATOR_URL = "https://memex.cloud/ct/"

_WEB_SCHEMES = ("http", "https")
_TRACKING_PARAM_PREFIXES = ("utm_",)
_TRACKING_PARAMS = frozenset({"fbclid", "gclid", "mc_cid", "mc_eid"})
_OPAQUE_SCHEMES = ("blob:", "data:", "about:", "javascript:", "mailto:")
_UNSUPPORTED_PREFIXES = (
    "blob:",
    "data:",
    "about:",
    "javascript:",
    "chrome:",
    "chrome-extension:",
    "moz-extension:",
    "edge:",
    "view-source:",
)
_LOCAL_PREFIXES = ("file://", "blob:")
_SECOND_LEVEL_SUFFIXES = frozenset({"co", "com", "org", "net", "ac", "gov", "edu"})


def _has_scheme(url: str) -> bool:
    lowered = url.lower()
    return "://" in url or lowered.startswith(_OPAQUE_SCHEMES)


def _is_tracking_param(name: str) -> bool:
    lowered = name.lower()
    return lowered in _TRACKING_PARAMS or lowered.startswith(_TRACKING_PARAM_PREFIXES)


def normalize_url(url: str) -> str:
    """Normalize a URL into its storage key form.

    Web URLs are canonicalized by ``url_normalize`` first. Reserved
    characters stay percent-encoded, so ``a%2Fb`` and ``a/b`` remain
    distinct keys.

    Raises:
        ValueError: If ``url`` is empty or its host cannot be encoded.
    """
    url = url.strip()
    if not url:
        raise ValueError("Cannot normalize an empty URL")

    if not _has_scheme(url):
        url = f"http://{url}"

    scheme, _, rest = url.partition(":")
    scheme = scheme.lower()
    if scheme not in _WEB_SCHEMES:
        return f"{scheme}:{rest.split('#', 1)[0]}"

    parsed = urlsplit(url_normalize(url) or "")
    netloc = parsed.netloc.rpartition("@")[2]
    if netloc.startswith("www."):
        netloc = netloc[4:]
    path = parsed.path.rstrip("/")

    params = sorted(
        param
        for param in parsed.query.split("&")
        if param and not _is_tracking_param(param.partition("=")[0])
    )

    normalized = f"{netloc}{path}"
    if params:
        normalized += "?" + "&".join(params)
    return normalized


def is_file_url(url: str) -> bool:
    """True for URLs addressing local content (filesystem or in-memory blob)."""
    return url.strip().lower().startswith(_LOCAL_PREFIXES)


def is_url_supported(full_url: str) -> bool:
    """False for ephemeral or browser-internal URLs that cannot be revisited."""
    return not full_url.strip().lower().startswith(_UNSUPPORTED_PREFIXES)


def build_base_locator_url(
    fingerprint: str,
    locator_format: LocatorFormat,
    base_url: str = BASE_LOCATOR_URL,
) -> str:
    """Canonical URL shared by all content carrying ``fingerprint``."""
    return f"{base_url}{fingerprint}.{locator_format.value}"


def is_base_locator_pdf(url: str, base_url: str = BASE_LOCATOR_URL) -> bool:
    """True for base locator URLs of PDF content."""
    return normalize_url(url).startswith(normalize_url(base_url) + "/") and (
        url.lower().endswith(".pdf")
    )


def does_url_point_to_pdf(url: str, base_url: str = BASE_LOCATOR_URL) -> bool:
    """True when the URL path ends in ``.pdf`` or is a PDF base locator."""
    if is_base_locator_pdf(url, base_url):
        return True
    path = re.split(r"[?#]", url.strip(), maxsplit=1)[0]
    return path.lower().endswith(".pdf")


def fingerprints_equal(locator: ContentLocator, fingerprint: Fingerprint) -> bool:
    return (
        locator.fingerprint == fingerprint.value
        and locator.fingerprint_scheme == fingerprint.scheme
    )


def extract_url_parts(url: str) -> tuple[str, str]:
    """Return ``(hostname, domain)`` for a URL.

    The domain is the registrable part of the hostname, e.g.
    ``news.bbc.co.uk`` -> ``bbc.co.uk``. Non-web URLs yield empty parts.

    Only ICANN-style two-letter country suffixes (``co.uk``, ``com.au``) are
    recognised. Private suffixes are not: ``user.github.io`` has domain
    ``github.io``, so domain-wide deletes on such hosts span every tenant.
    """
    if not _has_scheme(url):
        url = f"http://{url}"
    parsed = urlsplit(url)
    if parsed.scheme.lower() not in _WEB_SCHEMES:
        return "", ""
    hostname = (parsed.hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]

    labels = hostname.split(".")
    if len(labels) <= 2 or re.fullmatch(r"[\d.]+", hostname):
        return hostname, hostname
    keep = 3 if labels[-2] in _SECOND_LEVEL_SUFFIXES and len(labels[-1]) == 2 else 2
    return hostname, ".".join(labels[-keep:])
