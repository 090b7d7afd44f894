# backend/tests/services/scheduler/test_sync_task.py
"""
Tests for NavSyncTask (one attempt of the scheduled sync).
"""

import threading

import pytest

from navsync.services.nav.batch import BatchFetcher
from navsync.services.nav.types import FundRef
from navsync.services.scheduler.task import NavSyncTask
from navsync.services.scheduler.types import NAV_SYNC_TASK_NAME, TaskStatus
from tests.conftest import FakeFundRepository


@pytest.fixture
def fetcher(fake_resolver, recording_sleep, fake_clock) -> BatchFetcher:
    return BatchFetcher(fake_resolver, default_spacing=1.0, sleep=recording_sleep, clock=fake_clock)


def make_task(repository: FakeFundRepository, fetcher: BatchFetcher) -> NavSyncTask:
    return NavSyncTask(repository=repository, fetcher=fetcher)


class TestNavSyncTask:
    """Tests for NavSyncTask.execute()."""

    @pytest.mark.asyncio
    async def test_no_funds_is_success_without_calls(self, fake_resolver, fetcher, recording_sleep):
        record = await make_task(FakeFundRepository(), fetcher).execute()

        assert record.status == TaskStatus.SUCCESS
        assert record.items_processed == 0
        assert record.task_name == NAV_SYNC_TASK_NAME
        assert fake_resolver.calls == []
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_updates_every_resolved_fund(self, fake_resolver, fetcher):
        repository = FakeFundRepository([
            FundRef(1, "123456", "Fund A"),
            FundRef(2, "VOO", "Vanguard"),
        ])
        fake_resolver.add_quote("123456", "12.5")
        fake_resolver.add_quote("VOO", "512.34", currency="USD")

        record = await make_task(repository, fetcher).execute()

        assert record.status == TaskStatus.SUCCESS
        assert record.items_processed == 2
        assert record.items_expected == 2
        assert record.is_partial is False
        assert repository.navs == {1: "12.5", 2: "512.34"}
        assert set(repository.synced_at) == {1, 2}

    @pytest.mark.asyncio
    async def test_partial_failure_is_still_success(self, fake_resolver, fetcher):
        repository = FakeFundRepository([
            FundRef(1, "111111", "Fund A"),
            FundRef(2, "222222", "Fund B"),
            FundRef(3, "333333", "Fund C"),
        ])
        fake_resolver.add_quote("111111", "1")
        fake_resolver.add_quote("333333", "3")

        record = await make_task(repository, fetcher).execute()

        assert record.status == TaskStatus.SUCCESS
        assert record.items_processed == 2
        assert record.items_expected == 3
        assert record.is_partial is True
        assert 2 not in repository.navs

    @pytest.mark.asyncio
    async def test_shared_code_is_fetched_once(self, fake_resolver, fetcher):
        """Funds sharing a code are resolved once and all updated."""
        repository = FakeFundRepository([
            FundRef(1, "123456", "Fund A"),
            FundRef(2, "123456", "Fund A (copy)"),
        ])
        fake_resolver.add_quote("123456", "7.77")

        record = await make_task(repository, fetcher).execute()

        assert fake_resolver.calls == [("123456", "Fund A")]
        assert record.items_processed == 2
        assert repository.navs == {1: "7.77", 2: "7.77"}

    @pytest.mark.asyncio
    async def test_listing_failure_is_failed_record(self, fetcher):
        repository = FakeFundRepository()
        repository.list_error = RuntimeError("database is locked")

        record = await make_task(repository, fetcher).execute()

        assert record.status == TaskStatus.FAILED
        assert record.error_message == "database is locked"
        assert record.ended_at is not None

    @pytest.mark.asyncio
    async def test_persist_failure_lowers_count(self, fake_resolver, fetcher):
        repository = FakeFundRepository([
            FundRef(1, "111111", "Fund A"),
            FundRef(2, "222222", "Fund B"),
        ])
        repository.fail_ids.add(1)
        fake_resolver.add_quote("111111", "1")
        fake_resolver.add_quote("222222", "2")

        record = await make_task(repository, fetcher).execute()

        assert record.status == TaskStatus.SUCCESS
        assert record.items_processed == 1
        assert repository.navs == {2: "2"}

    @pytest.mark.asyncio
    async def test_each_attempt_reads_the_fund_list(self, fake_resolver, fetcher):
        repository = FakeFundRepository([FundRef(1, "111111", "Fund A")])
        fake_resolver.add_quote("111111", "1")
        task = make_task(repository, fetcher)

        await task.execute()
        await task.execute()

        assert repository.list_calls == 2
        assert repository.navs == {1: "1"}

    @pytest.mark.asyncio
    async def test_stores_quote_currency(self, fake_resolver, fetcher):
        repository = FakeFundRepository([
            FundRef(1, "123456", "Fund A"),
            FundRef(2, "VOO", "Vanguard"),
        ])
        fake_resolver.add_quote("123456", "12.5", currency="CNY")
        fake_resolver.add_quote("VOO", "512.34", currency="USD")

        await make_task(repository, fetcher).execute()

        assert repository.currencies == {1: "CNY", 2: "USD"}


class ThreadRecordingRepository(FakeFundRepository):
    """Records the thread each repository call runs on."""

    def __init__(self, funds):
        super().__init__(funds)
        self.threads: list[int] = []

    def list_assets_with_source_code(self):
        self.threads.append(threading.get_ident())
        return super().list_assets_with_source_code()

    def update_nav_value(self, fund_id, value, currency_code=None):
        self.threads.append(threading.get_ident())
        super().update_nav_value(fund_id, value, currency_code)


class TestNavSyncTaskThreading:
    """Database work stays off the event loop thread."""

    @pytest.mark.asyncio
    async def test_repository_calls_run_in_worker_thread(self, fake_resolver, fetcher):
        repository = ThreadRecordingRepository([FundRef(1, "123456", "Fund A")])
        fake_resolver.add_quote("123456", "1")

        record = await make_task(repository, fetcher).execute()

        assert record.items_processed == 1
        assert len(repository.threads) == 2
        assert threading.get_ident() not in repository.threads
