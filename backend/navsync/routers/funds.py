# backend/navsync/routers/funds.py
"""
On-demand fund NAV endpoints.

Provides endpoints for:
- Previewing the NAV of a code without storing it
- Fetching and storing the NAV of one fund or a selection of funds
- Entering a NAV manually

Service exceptions (FundNotFoundError, MissingSourceCodeError,
NavUnavailableError, InvalidNavValueError) are mapped to HTTP responses by
the global handlers in main.py.
"""

import logging

from fastapi import APIRouter, Body, Depends, Query, Request

from navsync.dependencies import get_fund_nav_service
from navsync.middleware.rate_limit import limiter, RATE_LIMIT_SYNC, RATE_LIMIT_WRITE
from navsync.schemas.errors import ErrorDetail
from navsync.schemas.nav import (
    FetchNavRequest,
    FetchNavsRequest,
    FetchNavsResponse,
    FundNavResponse,
    FundNavResultItem,
    ManualNavRequest,
    NavQuoteResponse,
)
from navsync.services.fund_nav_service import FundNavService
from navsync.services.nav.types import NavQuote

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/funds",
    tags=["Fund NAV"],
)


def _quote_response(quote: NavQuote) -> NavQuoteResponse:
    return NavQuoteResponse(
        asset_identifier=quote.asset_identifier,
        resolved_name=quote.resolved_name,
        value=quote.value,
        currency_code=quote.currency_code,
        source_tag=quote.source_tag.value,
        observed_at=quote.observed_at,
    )


@router.get(
    "/nav/resolve",
    response_model=NavQuoteResponse,
    summary="Preview the NAV for a code",
    responses={503: {"model": ErrorDetail}},
)
@limiter.limit(RATE_LIMIT_SYNC)
async def resolve_nav(
        request: Request,  # Required for rate limiting
        code: str = Query(..., min_length=1, max_length=50, description="Ticker or fund code"),
        name: str | None = Query(default=None, max_length=255, description="Fund name, enables the name fallback"),
        service: FundNavService = Depends(get_fund_nav_service),
) -> NavQuoteResponse:
    """
    Resolve the current NAV for a code without storing anything.

    Routing follows the shape of the code: tickers go to the quote API,
    six-digit fund codes to the fund page.

    Raises **503** if no source returned a NAV.
    """
    quote = await service.resolve(code, name)
    return _quote_response(quote)


@router.post(
    "/nav/fetch",
    response_model=FetchNavsResponse,
    summary="Fetch and store NAVs for several funds",
)
@limiter.limit(RATE_LIMIT_SYNC)
async def fetch_navs(
        request: Request,  # Required for rate limiting
        body: FetchNavsRequest,
        service: FundNavService = Depends(get_fund_nav_service),
) -> FetchNavsResponse:
    """
    Fetch NAVs for the given funds, one at a time with the usual pacing.

    Always **200**; each result reports its own success or error.
    """
    results = await service.fetch_navs_for_funds(body.fund_ids)

    items = [
        FundNavResultItem(
            fund_id=result.fund_id,
            code=result.code,
            success=result.success,
            quote=_quote_response(result.quote) if result.quote else None,
            error=result.error,
        )
        for result in results
    ]
    return FetchNavsResponse(
        requested=len(items),
        succeeded=sum(1 for item in items if item.success),
        results=items,
    )


@router.post(
    "/{fund_id}/nav/fetch",
    response_model=FundNavResponse,
    summary="Fetch and store the NAV of one fund",
    responses={
        400: {"model": ErrorDetail},
        404: {"model": ErrorDetail},
        503: {"model": ErrorDetail},
    },
)
@limiter.limit(RATE_LIMIT_SYNC)
async def fetch_fund_nav(
        request: Request,  # Required for rate limiting
        fund_id: int,
        body: FetchNavRequest | None = Body(default=None),
        service: FundNavService = Depends(get_fund_nav_service),
) -> FundNavResponse:
    """
    Fetch the current NAV of a fund and store it.

    An optional `code` in the body overrides the stored source code.

    Raises **404** if the fund does not exist, **400** if it has no source
    code, **503** if no source returned a NAV.
    """
    code = body.code if body else None
    quote = await service.fetch_nav_for_fund(fund_id, code=code)
    return FundNavResponse(fund_id=fund_id, quote=_quote_response(quote))


@router.put(
    "/{fund_id}/nav",
    response_model=FundNavResponse,
    summary="Set a fund NAV manually",
    responses={400: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
@limiter.limit(RATE_LIMIT_WRITE)
def set_fund_nav(
        request: Request,  # Required for rate limiting
        fund_id: int,
        body: ManualNavRequest,
        service: FundNavService = Depends(get_fund_nav_service),
) -> FundNavResponse:
    """
    Store a manually entered NAV.

    Raises **400** for values that are not finite non-negative numbers and
    **404** if the fund does not exist.
    """
    quote = service.set_manual_nav(fund_id, body.nav)
    return FundNavResponse(fund_id=fund_id, quote=_quote_response(quote))
