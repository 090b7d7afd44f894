# backend/navsync/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- Existing classes satisfy protocols without modification
- Test fakes work without explicit inheritance
- Clear documentation of required interfaces
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from navsync.services.nav.types import FundRef, NavQuote, SourceStrategy


class FundRepositoryProtocol(Protocol):
    """
    Persistence collaborator required by the sync task.

    Implementations must be idempotent: writing the same NAV for the same
    fund twice has the same effect as writing it once.
    """

    def list_assets_with_source_code(self) -> list[FundRef]:
        ...

    def update_nav_value(self, fund_id: int, value: str, currency_code: str | None = None) -> None:
        ...

    def update_last_sync_timestamp(self, fund_id: int, timestamp: datetime) -> None:
        ...


class NavResolverProtocol(Protocol):
    """Interface required by BatchFetcher and FundNavService."""

    def strategy_for(self, identifier: str, display_name: str | None = None) -> SourceStrategy | None:
        ...

    async def resolve(self, identifier: str, display_name: str | None = None) -> NavQuote | None:
        ...
