# backend/navsync/services/nav/__init__.py
"""
NAV resolution package.

This package provides:
- NavSource: Abstract interface for NAV sources
- QuoteApiSource: Quote API (Alpha Vantage compatible) source
- FundPageScraper: Fund overview page scraper
- NavResolver: Shape-based routing across sources
- BatchFetcher / PacedIterator: Sequential paced fetching

Usage:
    from navsync.services.nav import NavResolver, BatchFetcher, SyncItem

    resolver = NavResolver(quote_source=..., scrape_source=...)
    quotes = await BatchFetcher(resolver).fetch_all([SyncItem("123456")])
"""

from navsync.services.nav.base import NavSource
from navsync.services.nav.batch import BatchFetcher, PacedIterator
from navsync.services.nav.quote_api import QuoteApiSource
from navsync.services.nav.resolver import NavResolver
from navsync.services.nav.scraper import FundPageScraper
from navsync.services.nav.types import (
    FundRef,
    NavQuote,
    SourceStrategy,
    SourceTag,
    SyncItem,
    classify_identifier,
)

__all__ = [
    "NavSource",
    "QuoteApiSource",
    "FundPageScraper",
    "NavResolver",
    "BatchFetcher",
    "PacedIterator",
    "FundRef",
    "NavQuote",
    "SourceStrategy",
    "SourceTag",
    "SyncItem",
    "classify_identifier",
]
