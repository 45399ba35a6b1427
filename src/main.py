# src/main.py - v1
"""CLI entry point: resolve, lookup, stats commands.

Usage:
    pageindexer resolve <url> [--fingerprint pdf-v1:<hex>] [--format pdf]
    pageindexer lookup <url>
    pageindexer stats

The content info cache lives in the configured settings store, so repeated
invocations share it.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pageindexer.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from pageindexer.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pageindexer",
        description=f"pageindexer v{__version__} - content identity resolution",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- resolve ---
    p_resolve = subparsers.add_parser(
        "resolve", help="Resolve the canonical identifier of a URL",
    )
    p_resolve.add_argument("url", help="Full URL as observed")
    p_resolve.add_argument(
        "--fingerprint", action="append", default=[], type=_parse_fingerprint,
        metavar="SCHEME:VALUE",
        help="Content fingerprint, e.g. pdf-v1:abc123 (repeatable)",
    )
    p_resolve.add_argument(
        "--format", dest="locator_format", choices=["html", "pdf"], default=None,
        help="Content format (default: pdf if a fingerprint is given, else html)",
    )
    p_resolve.set_defaults(func=_cmd_resolve)

    # --- lookup ---
    p_lookup = subparsers.add_parser(
        "lookup", help="Show cached content info for a URL",
    )
    p_lookup.add_argument("url", help="Full or normalized URL")
    p_lookup.set_defaults(func=_cmd_lookup)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Show content info cache statistics",
    )
    p_stats.set_defaults(func=_cmd_stats)

    return parser


def _parse_fingerprint(value: str):
    from pageindexer.core.models import Fingerprint, FingerprintScheme

    scheme, sep, fp = value.partition(":")
    if not sep or not fp:
        raise argparse.ArgumentTypeError(f"expected SCHEME:VALUE, got {value!r}")
    try:
        return Fingerprint(scheme=FingerprintScheme(scheme), value=fp)
    except ValueError:
        schemes = ", ".join(s.value for s in FingerprintScheme)
        raise argparse.ArgumentTypeError(
            f"unknown fingerprint scheme {scheme!r} (expected one of: {schemes})"
        ) from None


async def _cmd_resolve(args: argparse.Namespace, settings) -> int:
    """Resolve and print the canonical identifier."""
    from pageindexer.api.facade import create_page_indexing
    from pageindexer.core.models import LocatorFormat, LocatorInput

    fmt = args.locator_format or ("pdf" if args.fingerprint else "html")
    service = create_page_indexing(settings=settings)
    identifier = await service.init_content_identifier(
        LocatorInput(format=LocatorFormat(fmt), original_location=args.url),
        args.fingerprint,
    )
    print(json.dumps(identifier.model_dump(mode="json"), indent=2))
    return 0


async def _cmd_lookup(args: argparse.Namespace, settings) -> int:
    """Print the cached ContentInfo of a URL."""
    from pageindexer.cache.content_info_cache import ContentInfoCache
    from pageindexer.cache.store_factory import create_settings_store
    from pageindexer.core.url import normalize_url

    cache = ContentInfoCache(create_settings_store(settings))
    normalized_url = normalize_url(args.url)
    info = await cache.get(normalized_url)
    if info is None:
        logger.error("No content info cached for %s", normalized_url)
        return 1

    print(json.dumps(info.model_dump(mode="json"), indent=2))
    return 0


async def _cmd_stats(args: argparse.Namespace, settings) -> int:
    """Display content info cache statistics."""
    from pageindexer.cache.content_info_cache import ContentInfoCache
    from pageindexer.cache.store_factory import create_settings_store

    cache = ContentInfoCache(create_settings_store(settings))
    entries = await cache.load_all()
    infos = await cache.distinct()

    print(f"\nContent info cache ({settings.settings_store_backend}):")
    print(f"  URL keys:     {len(entries)}")
    print(f"  Contents:     {len(infos)}")
    print(f"  Locators:     {sum(len(i.locators) for i in infos)}")
    print(f"  Aliases:      {sum(len(i.alias_identifiers) for i in infos)}")
    return 0


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from pageindexer.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
