# backend/navsync/middleware/rate_limit.py
"""
Rate limiting middleware for API protection.

This module provides rate limiting using slowapi to:
- Prevent DoS attacks and API abuse
- Protect external NAV source quotas (quote API, fund pages)
- Ensure fair resource distribution among clients

Rate limits are configured in navsync/services/constants.py and can be
customized per endpoint type (read, write, sync, health).

Key by: Client IP address (X-Forwarded-For or direct IP)
Storage: In-memory (can be upgraded to Redis for distributed deployments)

Usage:
    from navsync.middleware.rate_limit import limiter, RATE_LIMIT_DEFAULT

    @router.get("/status")
    @limiter.limit(RATE_LIMIT_DEFAULT)
    async def get_status(request: Request):
        ...

    # Or use predefined limits:
    @router.post("/trigger")
    @limiter.limit(RATE_LIMIT_SYNC)
    async def trigger_sync(request: Request):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from navsync.schemas.errors import ErrorDetail
from navsync.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_SYNC,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)


CLIENT_KEY_HEADERS = ("X-Forwarded-For", "X-Real-IP")


def _get_client_ip(request: Request) -> str:
    """
    Rate limit key: the client IP.

    Forwarded headers are honoured only when the direct peer is a trusted
    proxy (or TRUST_PROXY_HEADERS is set), otherwise any client could pick
    its own bucket by sending X-Forwarded-For.
    """
    from navsync.config import settings

    peer = get_remote_address(request)
    if not (settings.trust_proxy_headers or peer in settings.trusted_proxy_ips):
        return peer

    for header in CLIENT_KEY_HEADERS:
        value = request.headers.get(header)
        if value:
            # X-Forwarded-For: client, proxy1, proxy2
            return value.split(",")[0].strip()

    return peer


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

# In-memory storage; one bucket set per process
limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return a 429 ErrorDetail body with a Retry-After header."""
    # slowapi reports the limit ("5 per 1 minute"), not the reset time
    retry_after = 60
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(
        f"Rate limit exceeded for {_get_client_ip(request)}: {limit_info}"
    )

    return JSONResponse(
        status_code=429,
        content=ErrorDetail(
            error="RateLimitError",
            message=f"Too many requests. {limit_info}",
            details={"retry_after": retry_after},
        ).model_dump(),
        headers={"Retry-After": str(retry_after)},
    )


# =============================================================================
# EXPORTS
# =============================================================================

# Re-export constants for convenient imports
__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    # Rate limit constants
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_SYNC",
    "RATE_LIMIT_HEALTH",
]
