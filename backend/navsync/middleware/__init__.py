# backend/navsync/middleware/__init__.py
"""
Middleware components for the Fund NAV Sync service.

This package contains ASGI middleware for:
- Correlation ID tracking for request tracing
- Rate limiting for API protection

Usage:
    from navsync.middleware import CorrelationIdMiddleware, limiter

    app.add_middleware(CorrelationIdMiddleware)
    app.state.limiter = limiter
"""

from navsync.middleware.correlation import CorrelationIdMiddleware
from navsync.middleware.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_SYNC,
    RATE_LIMIT_HEALTH,
)

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_SYNC",
    "RATE_LIMIT_HEALTH",
]
