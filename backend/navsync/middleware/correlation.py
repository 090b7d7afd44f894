# backend/navsync/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Each request gets a correlation ID, taken from X-Correlation-ID or
X-Request-ID when the client sends one and generated otherwise. The ID is
bound for the duration of the request (so log lines carry it, including
those of a manual sync run triggered by the request) and echoed in the
X-Correlation-ID response header.

Scheduled sync runs are not requests; the recurring trigger binds its own
"sync-" prefixed ID for each firing.

Client Usage:
    curl -H "X-Correlation-ID: my-trace-123" -X POST http://localhost:8000/sync/nav/trigger
"""

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from navsync.utils.context import correlation_scope, new_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to every request and returns it in the response headers."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
            or new_correlation_id()
        )

        with correlation_scope(correlation_id):
            response = await call_next(request)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
