# backend/navsync/services/fund_nav_service.py
"""
On-demand NAV operations for individual funds.

This service handles:
- Fetching and storing the NAV of one fund (optionally with an override code)
- Fetching and storing the NAVs of a selection of funds (paced)
- Manual NAV entry
- Connectivity checks of the NAV sources

Design Principles:
- Same resolver and pacing as the scheduled sync
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Persists only successful quotes; failures are reported, never stored
- Repository calls from coroutines run in a worker thread (asyncio.to_thread)

Usage:
    service = FundNavService(repository, resolver, fetcher)

    quote = await service.fetch_nav_for_fund(fund_id=1)
    results = await service.fetch_navs_for_funds([1, 2, 3])
    quote = service.set_manual_nav(fund_id=1, value="12.34")
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from navsync.services.exceptions import (
    FundNotFoundError,
    MissingSourceCodeError,
    NavUnavailableError,
)
from navsync.services.fund_repository import FundRepository
from navsync.services.nav.batch import BatchFetcher
from navsync.services.nav.resolver import NavResolver
from navsync.services.nav.types import (
    NavQuote,
    SourceTag,
    SyncItem,
    normalize_nav_value,
)
from navsync.services.scheduler.types import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class FundNavResult:
    """Outcome of fetching the NAV for one fund of a selection."""

    fund_id: int
    code: str | None
    quote: NavQuote | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.quote is not None


# =============================================================================
# SERVICE
# =============================================================================

class FundNavService:
    """
    Fetches, stores and validates fund NAVs on request.

    Example:
        service = FundNavService(repository, resolver, fetcher, home_currency="TWD")
        try:
            quote = await service.fetch_nav_for_fund(7)
        except NavUnavailableError:
            ...  # no source had data
    """

    def __init__(
            self,
            repository: FundRepository,
            resolver: NavResolver,
            fetcher: BatchFetcher,
            home_currency: str = "TWD",
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._fetcher = fetcher
        self._home_currency = home_currency

    async def resolve(self, code: str, name: str | None = None) -> NavQuote:
        """
        Resolve a NAV without storing it.

        Raises:
            NavUnavailableError: If no source could resolve the code
        """
        quote = await self._resolver.resolve(code, name)
        if quote is None:
            raise NavUnavailableError(code.strip())
        return quote

    async def fetch_nav_for_fund(self, fund_id: int, code: str | None = None) -> NavQuote:
        """
        Fetch the current NAV of one fund and store it.

        Args:
            fund_id: Fund to update
            code: Source code to use instead of the stored one

        Raises:
            FundNotFoundError: If the fund does not exist
            MissingSourceCodeError: If neither the fund nor the call provides a code
            NavUnavailableError: If no source could resolve the code
        """
        fund = await asyncio.to_thread(self._repository.get_fund, fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)

        source_code = (code or "").strip() or fund.source_code
        if not source_code:
            raise MissingSourceCodeError(fund_id)

        quote = await self.resolve(source_code, fund.display_name)
        await asyncio.to_thread(self._store, fund_id, quote)
        return quote

    async def fetch_navs_for_funds(self, fund_ids: Sequence[int]) -> list[FundNavResult]:
        """
        Fetch and store NAVs for several funds with the batch pacing.

        Funds that are unknown, have no code, or could not be resolved are
        reported with an error instead of raising.

        Returns:
            One result per requested fund ID, in request order
        """
        funds = {fund.id: fund for fund in await asyncio.to_thread(self._repository.get_funds, fund_ids)}

        results: dict[int, FundNavResult] = {}
        items: dict[str, SyncItem] = {}
        for fund_id in dict.fromkeys(fund_ids):
            fund = funds.get(fund_id)
            if fund is None:
                results[fund_id] = FundNavResult(fund_id, None, error=str(FundNotFoundError(fund_id)))
            elif not fund.source_code:
                results[fund_id] = FundNavResult(fund_id, None, error=str(MissingSourceCodeError(fund_id)))
            else:
                results[fund_id] = FundNavResult(fund_id, fund.source_code)
                items.setdefault(fund.source_code, SyncItem(fund.source_code, fund.display_name))

        quotes = {quote.asset_identifier: quote for quote in await self._fetcher.fetch_all(list(items.values()))}

        for result in results.values():
            if result.error is not None:
                continue
            quote = quotes.get(result.code)
            if quote is None:
                result.error = str(NavUnavailableError(result.code))
                continue
            try:
                await asyncio.to_thread(self._store, result.fund_id, quote)
            except Exception as e:
                logger.error(f"Failed to store NAV for fund {result.fund_id}: {e}")
                result.error = str(e)
                continue
            result.quote = quote

        succeeded = sum(1 for result in results.values() if result.success)
        logger.info(f"Fetched NAVs for {succeeded}/{len(results)} funds")
        return list(results.values())

    def set_manual_nav(self, fund_id: int, value: str) -> NavQuote:
        """
        Store a NAV entered by hand.

        Raises:
            FundNotFoundError: If the fund does not exist
            InvalidNavValueError: If value is not a finite non-negative number
        """
        normalized = normalize_nav_value(value)
        fund = self._repository.get_fund(fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)

        quote = NavQuote(
            asset_identifier=fund.source_code or str(fund_id),
            resolved_name=fund.display_name or str(fund_id),
            value=normalized,
            currency_code=self._home_currency,
            source_tag=SourceTag.MANUAL,
        )
        # Manual values are in the fund's own currency
        self._store(fund_id, quote, update_currency=False)
        logger.info(f"Manual NAV {normalized} stored for fund {fund_id}")
        return quote

    async def check_sources(self) -> dict[str, bool]:
        """Check connectivity of every NAV source concurrently."""
        sources = self._resolver.sources
        outcomes = await asyncio.gather(
            *(source.check_connection() for source in sources),
            return_exceptions=True,
        )

        status: dict[str, bool] = {}
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Connection check for {source.name} raised: {outcome}")
                status[source.name] = False
            else:
                status[source.name] = bool(outcome)
        return status

    def _store(self, fund_id: int, quote: NavQuote, update_currency: bool = True) -> None:
        self._repository.update_nav_value(
            fund_id,
            quote.value,
            currency_code=quote.currency_code if update_currency else None,
        )
        self._repository.update_last_sync_timestamp(fund_id, utc_now())
