# backend/navsync/schemas/nav.py
"""
Pydantic schemas for NAV endpoints.

NAV values travel as decimal strings so no precision is lost between the
source page and the database.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from navsync.services.constants import MAX_FUNDS_PER_FETCH


class NavQuoteResponse(BaseModel):
    """A resolved NAV."""

    asset_identifier: str
    resolved_name: str
    value: str = Field(description="NAV as a decimal string, e.g. '12.3456'")
    currency_code: str
    source_tag: str = Field(description="primary-scrape, quote-api or manual")
    observed_at: datetime

    model_config = {"from_attributes": True}


class FundNavResponse(BaseModel):
    """NAV stored for one fund."""

    fund_id: int
    quote: NavQuoteResponse


class FetchNavRequest(BaseModel):
    """Optional body for fetching one fund's NAV."""

    code: str | None = Field(
        default=None,
        max_length=50,
        description="Source code to use instead of the stored one"
    )


class FetchNavsRequest(BaseModel):
    """Body for fetching the NAVs of several funds."""

    fund_ids: list[int] = Field(..., min_length=1, max_length=MAX_FUNDS_PER_FETCH)


class FundNavResultItem(BaseModel):
    """Per-fund outcome of a batch fetch."""

    fund_id: int
    code: str | None = None
    success: bool
    quote: NavQuoteResponse | None = None
    error: str | None = None


class FetchNavsResponse(BaseModel):
    """Outcome of a batch fetch."""

    requested: int
    succeeded: int
    results: list[FundNavResultItem]


class ManualNavRequest(BaseModel):
    """Manually entered NAV."""

    nav: str = Field(..., min_length=1, max_length=32, description="NAV as a decimal string")

    @field_validator("nav", mode="before")
    @classmethod
    def coerce_number(cls, v):
        """Accept JSON numbers as well as strings."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class SourceStatusResponse(BaseModel):
    """Connectivity of each NAV source."""

    status: str = Field(description="healthy when every source is reachable, else degraded")
    sources: dict[str, bool]
