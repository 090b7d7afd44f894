# backend/navsync/services/scheduler/task.py
"""
The NAV sync task body: one attempt of one run.

Steps:
    1. List funds that have a source code
    2. Nothing to do -> SUCCESS with 0 items, no external call
    3. Fetch quotes for the distinct codes (paced batch)
    4. Persist NAV + last-sync timestamp for every fund carrying each code

Errors while listing funds or fetching quotes produce a FAILED record (the
RetryController decides whether to try again). A failure to persist one
fund is logged and only lowers the processed count.

Repository calls are synchronous SQLAlchemy and run in a worker thread
(asyncio.to_thread) so a slow database never stalls the event loop.

Every attempt starts from the full fund list; updates are idempotent, so
re-applying a quote that an earlier attempt already stored is harmless.
"""

import asyncio
import logging

from navsync.services.nav.batch import BatchFetcher
from navsync.services.nav.types import FundRef, NavQuote, SyncItem
from navsync.services.protocols import FundRepositoryProtocol
from navsync.services.scheduler.types import (
    NAV_SYNC_TASK_NAME,
    TaskRunRecord,
    TaskStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


class NavSyncTask:
    """
    Refreshes the NAV of every fund with a source code.

    Configuration:
        repository: Persistence collaborator
        fetcher: Paced batch fetcher
        task_name: Name stamped on run records
    """

    def __init__(
            self,
            repository: FundRepositoryProtocol,
            fetcher: BatchFetcher,
            task_name: str = NAV_SYNC_TASK_NAME,
    ) -> None:
        self._repository = repository
        self._fetcher = fetcher
        self.task_name = task_name

    async def execute(self) -> TaskRunRecord:
        """
        Perform one attempt.

        Returns:
            SUCCESS record with the number of funds updated, or FAILED
            record carrying the error message
        """
        record = TaskRunRecord(task_name=self.task_name, status=TaskStatus.RUNNING)

        try:
            logger.info("Starting fund NAV update task")
            funds = await asyncio.to_thread(self._repository.list_assets_with_source_code)

            if not funds:
                logger.info("No funds with a source code, nothing to update")
                return record.finish(TaskStatus.SUCCESS, items_processed=0)

            logger.info(f"Found {len(funds)} funds to update")
            record = TaskRunRecord(
                task_name=self.task_name,
                status=TaskStatus.RUNNING,
                started_at=record.started_at,
                items_expected=len(funds),
            )

            funds_by_code = _group_by_code(funds)
            items = [
                SyncItem(code=code, name=members[0].display_name)
                for code, members in funds_by_code.items()
            ]

            quotes = await self._fetcher.fetch_all(items)
            logger.info(f"Fetched {len(quotes)}/{len(items)} NAVs")

            updated = await asyncio.to_thread(self._persist, quotes, funds_by_code)

        except Exception as e:
            logger.error(f"Fund NAV update task failed: {e}")
            return record.finish(TaskStatus.FAILED, error_message=str(e) or type(e).__name__)

        if updated < len(funds):
            logger.warning(f"Task completed with partial updates: {updated}/{len(funds)} funds")
        else:
            logger.info(f"Task completed successfully. Updated {updated} funds")

        return record.finish(TaskStatus.SUCCESS, items_processed=updated)

    def _persist(self, quotes: list[NavQuote], funds_by_code: dict[str, list[FundRef]]) -> int:
        updated = 0
        for quote in quotes:
            for fund in funds_by_code.get(quote.asset_identifier, []):
                try:
                    self._repository.update_nav_value(fund.id, quote.value, currency_code=quote.currency_code)
                    self._repository.update_last_sync_timestamp(fund.id, utc_now())
                except Exception as e:
                    logger.error(f"Failed to update fund {fund.id} ({quote.asset_identifier}): {e}")
                    continue
                updated += 1
        return updated


def _group_by_code(funds: list[FundRef]) -> dict[str, list[FundRef]]:
    """Group funds by stripped source code, keeping first-seen order."""
    grouped: dict[str, list[FundRef]] = {}
    for fund in funds:
        code = fund.source_code.strip()
        if not code:
            continue
        grouped.setdefault(code, []).append(fund)
    return grouped
