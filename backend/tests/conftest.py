# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database fixtures (in-memory SQLite) and a fund factory
- Fake clock/sleep pair for timing assertions without real timers
- Fake NAV resolver and in-memory fund repository
- In-memory scheduler double for the recurring trigger
"""

import os

# Must be set before navsync.config is imported anywhere
os.environ["ENVIRONMENT"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("APP_NAME", "Test App")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("QUOTE_API_KEY", None)

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from apscheduler.jobstores.base import JobLookupError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from navsync.models import Base, Fund
from navsync.services.exceptions import FundNotFoundError
from navsync.services.nav.types import (
    FundRef,
    NavQuote,
    SourceStrategy,
    SourceTag,
    classify_identifier,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def seed_fund(
        db: Session,
        name: str = "Test Fund",
        code: str | None = "123456",
        nav: str | None = None,
        currency: str = "TWD",
) -> Fund:
    """Create a fund row."""
    fund = Fund(
        name=name,
        code=code,
        nav=Decimal(nav) if nav is not None else None,
        currency=currency,
    )
    db.add(fund)
    db.commit()
    db.refresh(fund)
    return fund


# =============================================================================
# FAKE TIME
# =============================================================================

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """
    Async sleep replacement.

    Records every requested delay and advances the paired clock instead of
    waiting.
    """

    def __init__(self, clock: FakeClock | None = None):
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


# =============================================================================
# FAKE RESOLVER
# =============================================================================

def make_quote(
        code: str,
        value: str = "10.00",
        currency: str = "TWD",
        name: str | None = None,
        source_tag: SourceTag = SourceTag.PRIMARY_SCRAPE,
) -> NavQuote:
    return NavQuote(
        asset_identifier=code,
        resolved_name=name or code,
        value=value,
        currency_code=currency,
        source_tag=source_tag,
    )


class FakeResolver:
    """
    In-memory NavResolverProtocol implementation.

    Codes configured with add_quote() resolve; codes configured with
    add_error() raise; everything else resolves to None.
    """

    def __init__(self, clock: FakeClock | None = None):
        self._quotes: dict[str, NavQuote] = {}
        self._errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.call_times: list[float] = []
        self._clock = clock

    def add_quote(self, code: str, value: str = "10.00", **kwargs) -> NavQuote:
        quote = make_quote(code, value, **kwargs)
        self._quotes[code] = quote
        return quote

    def add_error(self, code: str, error: Exception) -> None:
        self._errors[code] = error

    def strategy_for(self, identifier: str, display_name: str | None = None) -> SourceStrategy | None:
        return classify_identifier(identifier.strip(), display_name)

    async def resolve(self, identifier: str, display_name: str | None = None) -> NavQuote | None:
        self.calls.append((identifier, display_name))
        if self._clock is not None:
            self.call_times.append(self._clock())
        if identifier in self._errors:
            raise self._errors[identifier]
        return self._quotes.get(identifier)

    @property
    def sources(self) -> list:
        return []


@pytest.fixture
def fake_resolver(fake_clock) -> FakeResolver:
    return FakeResolver(fake_clock)


# =============================================================================
# FAKE REPOSITORY
# =============================================================================

class FakeFundRepository:
    """In-memory FundRepositoryProtocol implementation."""

    def __init__(self, funds: list[FundRef] | None = None):
        self.funds: dict[int, FundRef] = {fund.id: fund for fund in funds or []}
        self.navs: dict[int, str] = {}
        self.currencies: dict[int, str] = {}
        self.synced_at: dict[int, datetime] = {}
        self.fail_ids: set[int] = set()
        self.list_error: Exception | None = None
        self.list_calls = 0

    def list_assets_with_source_code(self) -> list[FundRef]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return [fund for fund in self.funds.values() if fund.source_code]

    def get_fund(self, fund_id: int) -> FundRef | None:
        return self.funds.get(fund_id)

    def get_funds(self, fund_ids) -> list[FundRef]:
        return [self.funds[fund_id] for fund_id in dict.fromkeys(fund_ids) if fund_id in self.funds]

    def update_nav_value(self, fund_id: int, value: str, currency_code: str | None = None) -> None:
        if fund_id in self.fail_ids:
            raise RuntimeError(f"database unavailable for fund {fund_id}")
        if fund_id not in self.funds:
            raise FundNotFoundError(fund_id)
        self.navs[fund_id] = value
        if currency_code:
            self.currencies[fund_id] = currency_code

    def update_last_sync_timestamp(self, fund_id: int, timestamp: datetime) -> None:
        if fund_id not in self.funds:
            raise FundNotFoundError(fund_id)
        self.synced_at[fund_id] = timestamp


@pytest.fixture
def fake_repository() -> FakeFundRepository:
    return FakeFundRepository()


# =============================================================================
# FAKE SCHEDULER
# =============================================================================

class FakeJob:
    def __init__(self, job_id: str, func, trigger):
        self.id = job_id
        self.func = func
        self.trigger = trigger
        self.next_run_time = (
            datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
        )


class FakeScheduler:
    """
    Stands in for AsyncIOScheduler.

    Records add/remove/start/shutdown calls; every instance created is kept
    in `instances` so tests can inspect the one the trigger built.
    """

    instances: list["FakeScheduler"] = []

    def __init__(self, timezone=None):
        self.timezone = timezone
        self.jobs: dict[str, FakeJob] = {}
        self.running = False
        self.add_calls = 0
        self.shutdown_calls = 0
        FakeScheduler.instances.append(self)

    def add_job(self, func, trigger=None, id=None, **kwargs):
        self.add_calls += 1
        job = FakeJob(id, func, trigger)
        self.jobs[id] = job
        return job

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.shutdown_calls += 1
        self.running = False
