# backend/navsync/services/nav/quote_api.py
"""
Quote API NAV source (Alpha Vantage GLOBAL_QUOTE compatible).

Request:
    GET {base_url}?function=GLOBAL_QUOTE&symbol=VOO&apikey=...

Response shapes handled:
    {"Global Quote": {"01. symbol": "VOO", "05. price": "512.3400", ...}}
    {"Error Message": "Invalid API call..."}           -> not found
    {"Note": "Thank you for using Alpha Vantage!..."}  -> rate limited
    {"Information": "...rate limit..."}                -> rate limited
    {"Global Quote": {}}                               -> not found

Limitations:
- The API does not report a currency; quotes are stamped with USD.
- Free-tier keys allow a handful of calls per minute, which is why batch
  fetches are paced.
"""

import logging

import httpx

from navsync.config import is_usable_api_key
from navsync.services.exceptions import (
    InvalidNavValueError,
    NavNotFoundError,
    SourceParseError,
    SourceRateLimitedError,
)
from navsync.services.nav.base import NavSource
from navsync.services.nav.types import NavQuote, SourceTag, normalize_nav_value

logger = logging.getLogger(__name__)


class QuoteApiSource(NavSource):
    """
    Quote API implementation of NavSource.

    Configuration:
        api_key: API key; missing or placeholder keys disable the source
        base_url: Endpoint URL
        timeout: Request timeout in seconds (default: 10)

    Example:
        source = QuoteApiSource(api_key="...")
        quote = await source.fetch_nav("VOO")
        print(quote.value)  # "512.3400"
    """

    DEFAULT_TIMEOUT: float = 10.0
    QUOTE_CURRENCY: str = "USD"
    PROBE_SYMBOL: str = "AAPL"

    def __init__(
            self,
            api_key: str | None,
            base_url: str = "https://www.alphavantage.co/query",
            timeout: float | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self._api_key = api_key
        self._base_url = base_url
        logger.info(
            f"QuoteApiSource initialized (timeout={self._timeout}s, "
            f"configured={self.is_available()})"
        )

    @property
    def name(self) -> str:
        return "quote-api"

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.QUOTE_API

    def is_available(self) -> bool:
        return is_usable_api_key(self._api_key)

    async def fetch_nav(self, code: str, display_name: str | None = None) -> NavQuote:
        if not self.is_available():
            # No key: never hit the network
            raise NavNotFoundError(self.name, code, reason="API key not configured")

        payload = await self._fetch_global_quote(code)
        quote = payload.get("Global Quote")
        if not isinstance(quote, dict) or not quote.get("05. price"):
            raise NavNotFoundError(self.name, code, reason="no quote data")

        try:
            value = normalize_nav_value(str(quote["05. price"]))
        except InvalidNavValueError as e:
            raise SourceParseError(self.name, code, str(e)) from e

        return NavQuote(
            asset_identifier=code,
            resolved_name=display_name or quote.get("01. symbol") or code,
            value=value,
            currency_code=self.QUOTE_CURRENCY,
            source_tag=self.source_tag,
        )

    async def check_connection(self) -> bool:
        """
        Validate the key against a well-known symbol.

        A rate-limit notice still proves the API is reachable.
        """
        if not self.is_available():
            logger.warning("Quote API key not configured")
            return False

        try:
            payload = await self._fetch_global_quote(self.PROBE_SYMBOL)
        except SourceRateLimitedError:
            logger.warning("Quote API rate limit reached during connection check")
            return True
        except Exception as e:
            logger.error(f"Quote API connection check failed: {e}")
            return False

        return "Global Quote" in payload

    async def _fetch_global_quote(self, symbol: str) -> dict:
        """
        Call GLOBAL_QUOTE and classify API-level error bodies.

        Raises:
            NavNotFoundError: "Error Message" body
            SourceRateLimitedError: "Note"/"Information" body
            SourceParseError: Body is not a JSON object
        """
        response = await self._get(
            symbol,
            self._base_url,
            params={
                "function": "GLOBAL_QUOTE",
                "symbol": symbol,
                "apikey": self._api_key or "",
            },
        )

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceParseError(self.name, symbol, "response is not JSON") from e

        if not isinstance(payload, dict):
            raise SourceParseError(self.name, symbol, "response is not a JSON object")

        if payload.get("Error Message"):
            raise NavNotFoundError(self.name, symbol, reason=payload["Error Message"])

        notice = payload.get("Note") or payload.get("Information")
        if notice:
            raise SourceRateLimitedError(self.name, symbol, detail=notice)

        return payload
