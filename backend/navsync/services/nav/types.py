# backend/navsync/services/nav/types.py
"""
Data types for NAV resolution.

This module contains:
- SourceTag: where a NAV quote came from
- SourceStrategy: which source an identifier is routed to
- NavQuote: an immutable NAV observation
- SyncItem / FundRef: inputs to the batch fetcher and the sync task
- classify_identifier: the pure routing function

Routing rules (checked in order):
    [A-Z]{1,5}     -> QUOTE_API      (ticker, e.g. "VOO")
    \\d{6}          -> LOCAL_SCRAPE   (local fund code, e.g. "123456")
    anything else  -> NAME_FALLBACK  only when a display name is known
                   -> None           otherwise (NotFound, no network call)
"""

import enum
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from navsync.services.exceptions import InvalidNavValueError

TICKER_PATTERN = re.compile(r"^[A-Z]{1,5}$")
FUND_CODE_PATTERN = re.compile(r"^\d{6}$")


class SourceTag(str, enum.Enum):
    """Origin of a NAV quote."""
    PRIMARY_SCRAPE = "primary-scrape"
    QUOTE_API = "quote-api"
    MANUAL = "manual"


class SourceStrategy(str, enum.Enum):
    """Data source chosen for an identifier by classify_identifier()."""
    QUOTE_API = "quote_api"
    LOCAL_SCRAPE = "local_scrape"
    NAME_FALLBACK = "name_fallback"


def classify_identifier(identifier: str, display_name: str | None = None) -> SourceStrategy | None:
    """
    Pick the source strategy for an identifier based on its shape.

    Args:
        identifier: Ticker or fund code (already stripped)
        display_name: Human name of the asset, if known

    Returns:
        The strategy, or None when nothing can be tried
    """
    if TICKER_PATTERN.match(identifier):
        return SourceStrategy.QUOTE_API
    if FUND_CODE_PATTERN.match(identifier):
        return SourceStrategy.LOCAL_SCRAPE
    if display_name:
        return SourceStrategy.NAME_FALLBACK
    return None


def normalize_nav_value(raw: str) -> str:
    """
    Validate a NAV string and return it unchanged when valid.

    Raises:
        InvalidNavValueError: If the value is not a finite non-negative number
    """
    value = raw.strip()
    try:
        number = Decimal(value)
    except (InvalidOperation, ValueError):
        raise InvalidNavValueError(raw)

    if not number.is_finite() or number < 0 or not math.isfinite(float(number)):
        raise InvalidNavValueError(raw)

    return value


@dataclass(frozen=True)
class NavQuote:
    """
    A single NAV observation for an asset.

    Immutable: a newer quote supersedes an older one for the same asset
    instead of modifying it.

    Attributes:
        asset_identifier: The code the quote was resolved for
        resolved_name: Name reported by the source (or the supplied name)
        value: Decimal string, finite and non-negative (e.g. "123.456")
        currency_code: ISO 4217 code (e.g. "TWD")
        observed_at: When the quote was fetched (UTC)
        source_tag: Where the quote came from
    """

    asset_identifier: str
    resolved_name: str
    value: str
    currency_code: str
    source_tag: SourceTag
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.asset_identifier:
            raise ValueError("asset_identifier is required")
        if not self.currency_code:
            raise ValueError("currency_code is required")
        normalize_nav_value(self.value)

    @property
    def amount(self) -> Decimal:
        """The NAV as a Decimal."""
        return Decimal(self.value)


@dataclass(frozen=True)
class SyncItem:
    """One entry of a batch fetch: a source code and an optional display name."""

    code: str
    name: str | None = None


@dataclass(frozen=True)
class FundRef:
    """
    Minimal projection of a persisted fund needed to drive one resolution.

    Owned by the persistence layer, read-only to the sync core.
    """

    id: int
    source_code: str
    display_name: str | None = None
