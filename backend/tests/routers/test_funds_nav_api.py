# backend/tests/routers/test_funds_nav_api.py
"""
API tests for the on-demand fund NAV endpoints.

FundNavService runs against the real FundRepository on an in-memory
SQLite database; only the NAV resolver is faked.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from navsync.dependencies import get_fund_nav_service
from navsync.main import app
from navsync.middleware import limiter
from navsync.models import Fund
from navsync.services.fund_nav_service import FundNavService
from navsync.services.fund_repository import FundRepository
from navsync.services.nav.batch import BatchFetcher
from navsync.services.nav.types import SourceTag
from tests.conftest import FakeResolver, seed_fund


class StubSource:
    def __init__(self, name: str, reachable: bool):
        self.name = name
        self._reachable = reachable

    async def check_connection(self) -> bool:
        return self._reachable


class ResolverWithSources(FakeResolver):
    def __init__(self, clock, sources):
        super().__init__(clock)
        self._stub_sources = sources

    @property
    def sources(self) -> list:
        return self._stub_sources


# =============================================================================
# FIXTURES
# =============================================================================

def build_service(session_factory, resolver, recording_sleep, fake_clock) -> FundNavService:
    fetcher = BatchFetcher(resolver, default_spacing=1.0, sleep=recording_sleep, clock=fake_clock)
    return FundNavService(FundRepository(session_factory), resolver, fetcher, home_currency="TWD")


@pytest.fixture
def service(session_factory, fake_resolver, recording_sleep, fake_clock) -> FundNavService:
    return build_service(session_factory, fake_resolver, recording_sleep, fake_clock)


@pytest.fixture
def client(service) -> TestClient:
    """Create TestClient with the service override and fresh rate limits."""
    app.dependency_overrides[get_fund_nav_service] = lambda: service
    limiter.reset()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def stored_nav(session_factory, fund_id: int) -> Decimal | None:
    with session_factory() as session:
        return session.get(Fund, fund_id).nav


# =============================================================================
# RESOLVE
# =============================================================================

class TestResolveNav:
    """Tests for GET /funds/nav/resolve."""

    def test_resolves_without_storing(self, client, db, session_factory, fake_resolver):
        fund = seed_fund(db, code="VOO")
        fake_resolver.add_quote("VOO", "512.34", currency="USD", source_tag=SourceTag.QUOTE_API)

        response = client.get("/funds/nav/resolve", params={"code": "VOO"})

        assert response.status_code == 200
        data = response.json()
        assert data["value"] == "512.34"
        assert data["currency_code"] == "USD"
        assert data["source_tag"] == "quote-api"
        assert stored_nav(session_factory, fund.id) is None

    def test_passes_name_for_fallback(self, client, fake_resolver):
        fake_resolver.add_quote("ABC-123", "9.99")

        client.get("/funds/nav/resolve", params={"code": "ABC-123", "name": "Some Fund"})

        assert fake_resolver.calls == [("ABC-123", "Some Fund")]

    def test_unresolved_is_503(self, client):
        response = client.get("/funds/nav/resolve", params={"code": "999999"})

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "NavUnavailableError"
        assert data["details"] == {"identifier": "999999"}

    def test_missing_code_is_422(self, client):
        response = client.get("/funds/nav/resolve")

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"


# =============================================================================
# FETCH ONE
# =============================================================================

class TestFetchFundNav:
    """Tests for POST /funds/{fund_id}/nav/fetch."""

    def test_fetch_and_store(self, client, db, session_factory, fake_resolver):
        fund = seed_fund(db, name="Fund A", code="123456")
        fake_resolver.add_quote("123456", "15.2", name="Fund A")

        response = client.post(f"/funds/{fund.id}/nav/fetch")

        assert response.status_code == 200
        data = response.json()
        assert data["fund_id"] == fund.id
        assert data["quote"]["value"] == "15.2"
        assert stored_nav(session_factory, fund.id) == Decimal("15.2")

    def test_override_code(self, client, db, fake_resolver):
        fund = seed_fund(db, name="Fund A", code="123456")
        fake_resolver.add_quote("VT", "110.0")

        response = client.post(f"/funds/{fund.id}/nav/fetch", json={"code": "VT"})

        assert response.status_code == 200
        assert fake_resolver.calls == [("VT", "Fund A")]

    def test_unknown_fund_is_404(self, client):
        response = client.post("/funds/999/nav/fetch")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "FundNotFoundError"
        assert data["details"] == {"fund_id": 999}

    def test_fund_without_code_is_400(self, client, db):
        fund = seed_fund(db, code=None)

        response = client.post(f"/funds/{fund.id}/nav/fetch")

        assert response.status_code == 400
        assert response.json()["error"] == "MissingSourceCodeError"

    def test_unresolved_is_503_and_nav_kept(self, client, db, session_factory):
        fund = seed_fund(db, code="123456", nav="3.5")

        response = client.post(f"/funds/{fund.id}/nav/fetch")

        assert response.status_code == 503
        assert stored_nav(session_factory, fund.id) == Decimal("3.5")


# =============================================================================
# FETCH MANY
# =============================================================================

class TestFetchNavs:
    """Tests for POST /funds/nav/fetch."""

    def test_mixed_results(self, client, db, session_factory, fake_resolver):
        ok = seed_fund(db, name="Fund A", code="123456")
        missing = seed_fund(db, name="Fund B", code="654321")
        fake_resolver.add_quote("123456", "15.2")

        response = client.post("/funds/nav/fetch", json={"fund_ids": [ok.id, missing.id, 999]})

        assert response.status_code == 200
        data = response.json()
        assert data["requested"] == 3
        assert data["succeeded"] == 1
        results = {item["fund_id"]: item for item in data["results"]}
        assert results[ok.id]["success"] is True
        assert results[ok.id]["quote"]["value"] == "15.2"
        assert results[missing.id]["success"] is False
        assert results[999]["error"] == "Fund 999 not found"
        assert stored_nav(session_factory, ok.id) == Decimal("15.2")

    def test_paces_requests(self, client, db, fake_resolver, recording_sleep):
        first = seed_fund(db, name="Fund A", code="123456")
        second = seed_fund(db, name="Fund B", code="654321")
        fake_resolver.add_quote("123456", "1")
        fake_resolver.add_quote("654321", "2")

        client.post("/funds/nav/fetch", json={"fund_ids": [first.id, second.id]})

        assert recording_sleep.calls == [1.0]

    def test_empty_list_is_422(self, client):
        response = client.post("/funds/nav/fetch", json={"fund_ids": []})
        assert response.status_code == 422

    def test_too_many_ids_is_422(self, client):
        response = client.post("/funds/nav/fetch", json={"fund_ids": list(range(1, 52))})
        assert response.status_code == 422


# =============================================================================
# MANUAL ENTRY
# =============================================================================

class TestSetFundNav:
    """Tests for PUT /funds/{fund_id}/nav."""

    def test_set_manual_nav(self, client, db, session_factory):
        fund = seed_fund(db, code="123456")

        response = client.put(f"/funds/{fund.id}/nav", json={"nav": "12.34"})

        assert response.status_code == 200
        quote = response.json()["quote"]
        assert quote["source_tag"] == "manual"
        assert quote["currency_code"] == "TWD"
        assert stored_nav(session_factory, fund.id) == Decimal("12.34")

    def test_numeric_body_accepted(self, client, db, session_factory):
        fund = seed_fund(db, code="123456")

        response = client.put(f"/funds/{fund.id}/nav", json={"nav": 7.5})

        assert response.status_code == 200
        assert stored_nav(session_factory, fund.id) == Decimal("7.5")

    @pytest.mark.parametrize("value", ["abc", "-1", "NaN"])
    def test_invalid_value_is_400(self, client, db, session_factory, value):
        fund = seed_fund(db, code="123456", nav="2.0")

        response = client.put(f"/funds/{fund.id}/nav", json={"nav": value})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidNavValueError"
        assert stored_nav(session_factory, fund.id) == Decimal("2.0")

    def test_unknown_fund_is_404(self, client):
        response = client.put("/funds/999/nav", json={"nav": "1.0"})
        assert response.status_code == 404


# =============================================================================
# SOURCE HEALTH
# =============================================================================

class TestSourceHealth:
    """Tests for GET /health/sources."""

    def _client_with_sources(self, session_factory, recording_sleep, fake_clock, sources) -> TestClient:
        resolver = ResolverWithSources(fake_clock, sources)
        service = build_service(session_factory, resolver, recording_sleep, fake_clock)
        app.dependency_overrides[get_fund_nav_service] = lambda: service
        return TestClient(app)

    def test_all_reachable(self, session_factory, recording_sleep, fake_clock):
        limiter.reset()
        client = self._client_with_sources(
            session_factory, recording_sleep, fake_clock,
            [StubSource("quote-api", True), StubSource("fund-page", True)],
        )
        try:
            response = client.get("/health/sources")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "sources": {"quote-api": True, "fund-page": True},
        }

    def test_degraded(self, session_factory, recording_sleep, fake_clock):
        limiter.reset()
        client = self._client_with_sources(
            session_factory, recording_sleep, fake_clock,
            [StubSource("quote-api", False), StubSource("fund-page", True)],
        )
        try:
            response = client.get("/health/sources")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
