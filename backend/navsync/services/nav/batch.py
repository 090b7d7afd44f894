# backend/navsync/services/nav/batch.py
"""
Sequential, paced NAV fetching for many assets.

Free-tier quote APIs and the fund pages both throttle bursts, so a batch is
processed strictly one item at a time, in input order, with a minimum
spacing between consecutive items:

    item 1 -> resolve
    wait   (spacing for item 2's source, minus time already elapsed)
    item 2 -> resolve
    ...

No wait happens before the first item or after the last one, so an empty
batch costs nothing. Failed items are dropped from the output; the caller
detects partial failure by comparing counts.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping, Sequence
from typing import Generic, TypeVar

from navsync.services.nav.types import NavQuote, SourceStrategy, SyncItem
from navsync.services.protocols import NavResolverProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


class PacedIterator(Generic[T]):
    """
    Async iterator that enforces a minimum spacing between yields.

    The spacing may be a constant or a function of the next item. Time and
    sleeping are injected so the pacing can be tested without real timers.

    Example:
        async for item in PacedIterator(items, spacing=1.0):
            await process(item)
    """

    def __init__(
            self,
            items: Iterable[T],
            spacing: float | Callable[[T], float],
            sleep: Sleep = asyncio.sleep,
            clock: Clock = time.monotonic,
    ) -> None:
        self._items: Iterator[T] = iter(items)
        self._spacing = spacing
        self._sleep = sleep
        self._clock = clock
        self._last_yield: float | None = None

    def __aiter__(self) -> "PacedIterator[T]":
        return self

    async def __anext__(self) -> T:
        try:
            item = next(self._items)
        except StopIteration:
            raise StopAsyncIteration

        if self._last_yield is not None:
            remaining = self._spacing_for(item) - (self._clock() - self._last_yield)
            if remaining > 0:
                await self._sleep(remaining)

        self._last_yield = self._clock()
        return item

    def _spacing_for(self, item: T) -> float:
        if callable(self._spacing):
            return self._spacing(item)
        return self._spacing


class BatchFetcher:
    """
    Resolves a list of SyncItems one after another with source-specific pacing.

    Configuration:
        resolver: NAV resolver used for every item
        spacing: Minimum seconds before an item, keyed by its source strategy
        default_spacing: Used when an item has no strategy (resolves to None quickly)
    """

    def __init__(
            self,
            resolver: NavResolverProtocol,
            spacing: Mapping[SourceStrategy, float] | None = None,
            default_spacing: float = 0.5,
            sleep: Sleep = asyncio.sleep,
            clock: Clock = time.monotonic,
    ) -> None:
        self._resolver = resolver
        self._spacing = dict(spacing or {})
        self._default_spacing = default_spacing
        self._sleep = sleep
        self._clock = clock

    def spacing_for(self, item: SyncItem) -> float:
        strategy = self._resolver.strategy_for(item.code, item.name)
        return self._spacing.get(strategy, self._default_spacing)

    async def fetch_all(self, items: Sequence[SyncItem]) -> list[NavQuote]:
        """
        Resolve every item, in order, keeping only the successes.

        Args:
            items: Codes (with optional display names) to resolve

        Returns:
            Quotes for the items that resolved, in input order
        """
        quotes: list[NavQuote] = []
        if not items:
            return quotes

        paced = PacedIterator(items, spacing=self.spacing_for, sleep=self._sleep, clock=self._clock)
        async for item in paced:
            try:
                quote = await self._resolver.resolve(item.code, item.name)
            except Exception as e:
                logger.error(f"Unexpected error resolving '{item.code}', skipping: {e}")
                continue

            if quote is not None:
                quotes.append(quote)

        logger.info(f"Batch fetch resolved {len(quotes)}/{len(items)} items")
        return quotes
