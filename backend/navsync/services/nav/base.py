# backend/navsync/services/nav/base.py
"""
Abstract interface for NAV sources.

A NAV source turns one code into one NavQuote or raises an exception from
the NavSourceError family. Sources do NOT retry: retries happen once per
sync run, in the RetryController, never per item.

Error contract for fetch_nav():
    NavNotFoundError       - source has nothing for this code (expected)
    SourceTransportError   - network error, timeout, 5xx
    SourceParseError       - response shape unexpected (markup drift)
    SourceRateLimitedError - source signals throttling

HTTP plumbing (httpx.AsyncClient, status mapping) is shared here so every
source classifies failures the same way.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from navsync.services.exceptions import (
    NavNotFoundError,
    SourceRateLimitedError,
    SourceTransportError,
)
from navsync.services.nav.types import NavQuote, SourceTag

logger = logging.getLogger(__name__)


class NavSource(ABC):
    """
    Base class for NAV sources.

    Configuration:
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    DEFAULT_TIMEOUT: float = 10.0

    def __init__(
            self,
            timeout: float | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source, used in logs and errors."""
        pass

    @property
    @abstractmethod
    def source_tag(self) -> SourceTag:
        """Tag stamped on quotes produced by this source."""
        pass

    @abstractmethod
    async def fetch_nav(self, code: str, display_name: str | None = None) -> NavQuote:
        """
        Fetch the current NAV for a code.

        Args:
            code: Ticker or fund code
            display_name: Name to report when the source has none

        Returns:
            NavQuote

        Raises:
            NavSourceError subclass (see module docstring)
        """
        pass

    @abstractmethod
    async def check_connection(self) -> bool:
        """Return True if the source is reachable and configured."""
        pass

    def is_available(self) -> bool:
        """
        Check if the source can be used at all (e.g. credentials present).

        Default implementation returns True.
        """
        return True

    # =========================================================================
    # HTTP HELPERS
    # =========================================================================

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
            **kwargs,
        )

    async def _get(
            self,
            identifier: str,
            url: str,
            params: dict[str, str] | None = None,
            headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform a GET and classify transport-level failures.

        Raises:
            SourceTransportError: Timeout, connection error or 5xx/4xx status
            SourceRateLimitedError: HTTP 429
            NavNotFoundError: HTTP 404
        """
        async with self._client(headers=headers) as client:
            try:
                response = await client.get(url, params=params)
            except httpx.TimeoutException as e:
                raise SourceTransportError(self.name, identifier, f"timeout after {self._timeout}s") from e
            except httpx.RequestError as e:
                raise SourceTransportError(self.name, identifier, str(e) or type(e).__name__) from e

        if response.status_code == 429:
            raise SourceRateLimitedError(
                self.name,
                identifier,
                detail=response.headers.get("Retry-After"),
            )
        if response.status_code == 404:
            raise NavNotFoundError(self.name, identifier, reason="HTTP 404")
        if response.status_code >= 400:
            raise SourceTransportError(self.name, identifier, f"HTTP {response.status_code}")

        logger.debug(f"{self.name} GET {response.url} -> {response.status_code}")
        return response
