# backend/tests/routers/test_sync_nav_api.py
"""
API tests for the NAV sync endpoints and the health checks.

The recurring trigger is overridden with one wired to in-memory fakes:
FakeFundRepository, FakeResolver, RecordingSleep and FakeScheduler. No
network calls, no real timers.
"""

import pytest
from fastapi.testclient import TestClient

from navsync.dependencies import get_recurring_trigger
from navsync.main import app
from navsync.middleware import limiter
from navsync.services.nav.batch import BatchFetcher
from navsync.services.nav.types import FundRef
from navsync.services.scheduler import (
    NavSyncTask,
    RecurringTrigger,
    RetryController,
    SchedulerContext,
    TaskExecutionGuard,
)
from tests.conftest import FakeFundRepository, FakeScheduler, RecordingSleep


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def repository() -> FakeFundRepository:
    return FakeFundRepository([
        FundRef(1, "123456", "Fund A"),
        FundRef(2, "VOO", "Vanguard S&P 500"),
    ])


@pytest.fixture
def trigger(repository, fake_resolver, recording_sleep, fake_clock) -> RecurringTrigger:
    fetcher = BatchFetcher(fake_resolver, default_spacing=1.0, sleep=recording_sleep, clock=fake_clock)
    return RecurringTrigger(
        guard=TaskExecutionGuard(SchedulerContext()),
        retry_controller=RetryController(sleep=RecordingSleep()),
        task=NavSyncTask(repository, fetcher),
        scheduler_factory=FakeScheduler,
    )


@pytest.fixture
def client(trigger) -> TestClient:
    """Create TestClient with the trigger override and fresh rate limits."""
    app.dependency_overrides[get_recurring_trigger] = lambda: trigger
    limiter.reset()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    trigger.stop()


# =============================================================================
# TRIGGER
# =============================================================================

class TestTriggerSync:
    """Tests for POST /sync/nav/trigger."""

    def test_successful_run(self, client, repository, fake_resolver):
        fake_resolver.add_quote("123456", "15.2")
        fake_resolver.add_quote("VOO", "512.34", currency="USD")

        response = client.post("/sync/nav/trigger")

        assert response.status_code == 200
        data = response.json()
        assert data["task_name"] == "fund-nav-update"
        assert data["status"] == "success"
        assert data["items_processed"] == 2
        assert data["items_expected"] == 2
        assert data["is_partial"] is False
        assert data["retries_attempted"] == 0
        assert repository.navs == {1: "15.2", 2: "512.34"}

    def test_partial_run(self, client, fake_resolver):
        fake_resolver.add_quote("123456", "15.2")

        data = client.post("/sync/nav/trigger").json()

        assert data["status"] == "success"
        assert data["items_processed"] == 1
        assert data["is_partial"] is True

    def test_failed_run_is_200_with_failed_status(self, client, repository):
        repository.list_error = RuntimeError("database is locked")

        response = client.post("/sync/nav/trigger")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "failed"
        assert data["retries_attempted"] == 3
        assert data["error_message"] == "database is locked"
        assert repository.list_calls == 3

    def test_already_running_returns_409(self, client, trigger, repository):
        trigger.guard.context.running = True

        response = client.post("/sync/nav/trigger")

        trigger.guard.context.running = False
        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "TaskAlreadyRunning"
        assert "fund-nav-update" in data["message"]
        assert repository.list_calls == 0

    def test_rate_limited(self, client):
        statuses = [client.post("/sync/nav/trigger").status_code for _ in range(6)]

        assert statuses[:5] == [200] * 5
        assert statuses[5] == 429

    def test_rate_limit_body(self, client):
        for _ in range(5):
            client.post("/sync/nav/trigger")

        response = client.post("/sync/nav/trigger")

        assert response.json()["error"] == "RateLimitError"
        assert response.headers["Retry-After"] == "60"


# =============================================================================
# STATUS AND SCHEDULER CONTROL
# =============================================================================

class TestSyncStatus:
    """Tests for GET /sync/nav/status."""

    def test_idle_status(self, client):
        data = client.get("/sync/nav/status").json()

        assert data["task_name"] == "fund-nav-update"
        assert data["is_running"] is False
        assert data["scheduler_active"] is False
        assert data["next_run_time"] is None
        assert data["last_run"] is None

    def test_status_reports_last_run(self, client, fake_resolver):
        fake_resolver.add_quote("123456", "15.2")
        client.post("/sync/nav/trigger")

        last_run = client.get("/sync/nav/status").json()["last_run"]

        assert last_run["status"] == "success"
        assert last_run["items_processed"] == 1
        assert last_run["ended_at"] is not None


class TestSchedulerControl:
    """Tests for POST /sync/nav/scheduler/start and /stop."""

    def test_start_then_stop(self, client):
        started = client.post("/sync/nav/scheduler/start").json()

        assert started["scheduler_active"] is True
        assert started["next_run_time"] is not None

        status = client.get("/sync/nav/status").json()
        assert status["scheduler_active"] is True

        stopped = client.post("/sync/nav/scheduler/stop").json()

        assert stopped["scheduler_active"] is False
        assert client.get("/sync/nav/status").json()["scheduler_active"] is False

    def test_start_is_idempotent(self, client):
        client.post("/sync/nav/scheduler/start")
        client.post("/sync/nav/scheduler/start")

        assert FakeScheduler.instances[-1].add_calls == 1

    def test_stop_without_start(self, client):
        response = client.post("/sync/nav/scheduler/stop")

        assert response.status_code == 200
        assert response.json()["message"] == "Scheduler stopped"


# =============================================================================
# HEALTH
# =============================================================================

class TestHealth:
    """Tests for GET /health."""

    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["scheduler"]["status"] == "stopped"
        assert data["checks"]["scheduler"]["is_running"] is False

    def test_reports_active_scheduler(self, client):
        client.post("/sync/nav/scheduler/start")

        data = client.get("/health").json()

        assert data["checks"]["scheduler"]["status"] == "active"

    def test_unhealthy_database_is_503(self, client, monkeypatch):
        monkeypatch.setattr(
            "navsync.main.check_database_health",
            lambda: {"status": "unhealthy", "error": "connection refused"},
        )

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["error"] == "connection refused"
