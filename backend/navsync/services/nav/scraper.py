# backend/navsync/services/nav/scraper.py
"""
Fund page scraper NAV source.

Fetches the public fund overview page for a local fund code and reads the
NAV from one narrowly-scoped element:

    <h3 class="text-4xl basis-10 shrink-0 mt-2 mb-3">NT$123.456</h3>

The currency is inferred from the same label text (see parsing.py); the
home currency is used when the label carries no marker.

Limitations:
- Markup drift breaks the selector; that surfaces as SourceParseError and
  the resolver reports the fund as not found.
- A browser User-Agent is required, the site rejects default client agents.
"""

import logging

import httpx
from bs4 import BeautifulSoup

from navsync.services.exceptions import (
    InvalidNavValueError,
    NavNotFoundError,
    SourceParseError,
)
from navsync.services.nav.base import NavSource
from navsync.services.nav.parsing import extract_nav_digits, infer_currency
from navsync.services.nav.types import NavQuote, SourceTag, normalize_nav_value

logger = logging.getLogger(__name__)

NAV_SELECTOR = "h3.text-4xl.basis-10.shrink-0.mt-2.mb-3"
NAME_SELECTOR = "h1, h2, .fund-name, [class*='title']"


class FundPageScraper(NavSource):
    """
    Scrape implementation of NavSource.

    Configuration:
        base_url: Page URL prefix, the code is appended as a path segment
        user_agent: Browser User-Agent header
        home_currency: Currency used when the label has no marker
        timeout: Request timeout in seconds (default: 15)
        probe_code: Code fetched by check_connection()
    """

    DEFAULT_TIMEOUT: float = 15.0

    def __init__(
            self,
            base_url: str,
            user_agent: str,
            home_currency: str = "TWD",
            timeout: float | None = None,
            probe_code: str = "FTS049",
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self._base_url = base_url.rstrip("/")
        self._headers = {"User-Agent": user_agent}
        self._home_currency = home_currency
        self._probe_code = probe_code
        logger.info(f"FundPageScraper initialized (timeout={self._timeout}s)")

    @property
    def name(self) -> str:
        return "fund-page"

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.PRIMARY_SCRAPE

    def page_url(self, code: str) -> str:
        return f"{self._base_url}/{code}"

    async def fetch_nav(self, code: str, display_name: str | None = None) -> NavQuote:
        response = await self._get(code, self.page_url(code), headers=self._headers)
        soup = BeautifulSoup(response.text, "html.parser")

        nav_element = soup.select_one(NAV_SELECTOR)
        if nav_element is None:
            raise SourceParseError(self.name, code, "NAV element missing from page")

        label = nav_element.get_text(strip=True)
        if not label:
            raise NavNotFoundError(self.name, code, reason="NAV element is empty")

        digits = extract_nav_digits(label)
        if not digits:
            raise NavNotFoundError(self.name, code, reason=f"no numeric content in '{label}'")

        try:
            value = normalize_nav_value(digits)
        except InvalidNavValueError as e:
            raise SourceParseError(self.name, code, f"cannot parse '{label}'") from e

        currency = infer_currency(label, default=self._home_currency)

        logger.info(f"Fetched NAV for {code}: {value} {currency}")

        return NavQuote(
            asset_identifier=code,
            resolved_name=self._extract_name(soup) or display_name or code,
            value=value,
            currency_code=currency,
            source_tag=self.source_tag,
        )

    async def check_connection(self) -> bool:
        try:
            await self._get(self._probe_code, self.page_url(self._probe_code), headers=self._headers)
        except Exception as e:
            logger.error(f"Fund page connection check failed: {e}")
            return False
        return True

    @staticmethod
    def _extract_name(soup: BeautifulSoup) -> str | None:
        element = soup.select_one(NAME_SELECTOR)
        if element is None:
            return None
        return element.get_text(strip=True) or None
