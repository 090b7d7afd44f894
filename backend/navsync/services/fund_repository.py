# backend/navsync/services/fund_repository.py
"""
SQLAlchemy-backed fund persistence for NAV sync.

The sync task runs outside any HTTP request, so the repository does not
receive a session: it opens a short-lived one per call from the injected
sessionmaker and commits before returning.

All writes are idempotent. Writing the same NAV twice leaves the row in
the same state as writing it once (apart from updated_at).

Usage:
    from navsync.database import SessionLocal
    from navsync.services.fund_repository import FundRepository

    repository = FundRepository(SessionLocal)
    funds = repository.list_assets_with_source_code()
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from navsync.models import Fund
from navsync.services.exceptions import FundNotFoundError
from navsync.services.nav.types import FundRef, normalize_nav_value

logger = logging.getLogger(__name__)


class FundRepository:
    """
    Fund persistence used by the sync task and the on-demand NAV service.

    Satisfies FundRepositoryProtocol.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # =========================================================================
    # READS
    # =========================================================================

    def list_assets_with_source_code(self) -> list[FundRef]:
        """Return every fund with a non-blank source code, ordered by id."""
        with self._session_factory() as db:
            rows = db.execute(
                select(Fund.id, Fund.code, Fund.name)
                .where(Fund.code.is_not(None))
                .order_by(Fund.id)
            ).all()

        return [
            FundRef(id=row.id, source_code=row.code.strip(), display_name=row.name or None)
            for row in rows
            if row.code and row.code.strip()
        ]

    def get_fund(self, fund_id: int) -> FundRef | None:
        """
        Load one fund.

        The source code may be empty for funds that are never synced.
        """
        with self._session_factory() as db:
            fund = db.get(Fund, fund_id)
            if fund is None:
                return None
            return FundRef(
                id=fund.id,
                source_code=(fund.code or "").strip(),
                display_name=fund.name or None,
            )

    def get_funds(self, fund_ids: Sequence[int]) -> list[FundRef]:
        """Load several funds, preserving the order of `fund_ids`; unknown IDs are skipped."""
        if not fund_ids:
            return []

        with self._session_factory() as db:
            funds = db.scalars(select(Fund).where(Fund.id.in_(fund_ids))).all()
            by_id = {
                fund.id: FundRef(
                    id=fund.id,
                    source_code=(fund.code or "").strip(),
                    display_name=fund.name or None,
                )
                for fund in funds
            }

        return [by_id[fund_id] for fund_id in dict.fromkeys(fund_ids) if fund_id in by_id]

    # =========================================================================
    # WRITES
    # =========================================================================

    def update_nav_value(self, fund_id: int, value: str, currency_code: str | None = None) -> None:
        """
        Store a NAV for a fund.

        The fund's currency is replaced only when `currency_code` is given.

        Raises:
            FundNotFoundError: If the fund does not exist
            InvalidNavValueError: If value is not a finite non-negative number
        """
        amount = Decimal(normalize_nav_value(value))

        with self._session_factory() as db:
            fund = db.get(Fund, fund_id)
            if fund is None:
                raise FundNotFoundError(fund_id)
            fund.nav = amount
            if currency_code:
                fund.currency = currency_code
            db.commit()

        logger.debug(f"Fund {fund_id} NAV set to {value}")

    def update_last_sync_timestamp(self, fund_id: int, timestamp: datetime) -> None:
        """
        Record when a fund's NAV was last refreshed.

        Raises:
            FundNotFoundError: If the fund does not exist
        """
        with self._session_factory() as db:
            fund = db.get(Fund, fund_id)
            if fund is None:
                raise FundNotFoundError(fund_id)
            fund.nav_updated_at = timestamp
            db.commit()
