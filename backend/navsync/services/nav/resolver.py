# backend/navsync/services/nav/resolver.py
"""
NAV resolution across sources.

The resolver classifies an identifier (see classify_identifier), calls the
matching source once, and reduces every expected failure to None:

    QUOTE_API      -> quote API with the ticker
    LOCAL_SCRAPE   -> fund page scrape with the fund code
    NAME_FALLBACK  -> quote API with the identifier, reporting the display name
    None           -> None, no network call

It holds no state of its own and never retries; a failed item is retried
only when the whole sync run is retried.
"""

import logging

from navsync.services.exceptions import (
    NavNotFoundError,
    NavSourceError,
    SourceParseError,
    SourceRateLimitedError,
    SourceTransportError,
)
from navsync.services.nav.base import NavSource
from navsync.services.nav.types import NavQuote, SourceStrategy, classify_identifier

logger = logging.getLogger(__name__)


class NavResolver:
    """
    Resolves an identifier to a NavQuote using the source its shape selects.

    Example:
        resolver = NavResolver(quote_source=QuoteApiSource(...), scrape_source=FundPageScraper(...))
        quote = await resolver.resolve("123456")
        if quote is None:
            ...  # not found, already logged
    """

    def __init__(self, quote_source: NavSource, scrape_source: NavSource) -> None:
        self._sources: dict[SourceStrategy, NavSource] = {
            SourceStrategy.QUOTE_API: quote_source,
            SourceStrategy.LOCAL_SCRAPE: scrape_source,
            SourceStrategy.NAME_FALLBACK: quote_source,
        }

    @property
    def sources(self) -> list[NavSource]:
        """Distinct sources, in routing order."""
        unique: list[NavSource] = []
        for source in self._sources.values():
            if source not in unique:
                unique.append(source)
        return unique

    def strategy_for(self, identifier: str, display_name: str | None = None) -> SourceStrategy | None:
        return classify_identifier(identifier.strip(), display_name)

    async def resolve(self, identifier: str, display_name: str | None = None) -> NavQuote | None:
        """
        Resolve the current NAV for an identifier.

        Args:
            identifier: Ticker or fund code
            display_name: Known asset name, enables the name fallback

        Returns:
            NavQuote, or None when no source had usable data

        Raises:
            TypeError: If identifier is not a string
        """
        if not isinstance(identifier, str):
            raise TypeError(f"identifier must be a str, got {type(identifier).__name__}")

        code = identifier.strip()
        strategy = classify_identifier(code, display_name)

        if strategy is None:
            logger.warning(f"Unable to determine source for code '{identifier}'")
            return None

        source = self._sources[strategy]
        logger.debug(f"Resolving '{code}' via {strategy.value} ({source.name})")

        try:
            return await source.fetch_nav(code, display_name)
        except NavNotFoundError as e:
            logger.info(f"NAV not found: {e}")
        except SourceRateLimitedError as e:
            logger.warning(f"NAV source throttled: {e}")
        except SourceTransportError as e:
            logger.error(f"NAV source transport failure: {e}")
        except SourceParseError as e:
            logger.error(f"NAV source returned unexpected content: {e}")
        except NavSourceError as e:
            logger.error(f"NAV source error: {e}")

        return None
