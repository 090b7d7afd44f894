# backend/navsync/services/__init__.py
"""
Service layer for NAV synchronisation.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive collaborators through their constructors
- Are easily testable via dependency injection

Architecture:
    services/
    ├── __init__.py            # This file - exception exports
    ├── exceptions.py          # Domain exceptions
    ├── constants.py           # Defaults and limits
    ├── protocols.py           # Service interfaces (Protocol classes)
    ├── fund_repository.py     # SQLAlchemy fund persistence
    ├── fund_nav_service.py    # On-demand NAV fetch / manual entry
    ├── nav/                   # NAV sources and resolution
    │   ├── types.py           # Quotes, strategies, routing
    │   ├── parsing.py         # NAV text and currency parsing
    │   ├── base.py            # Abstract source interface
    │   ├── quote_api.py       # Quote API source
    │   ├── scraper.py         # Fund page scraper
    │   ├── resolver.py        # Shape-based routing
    │   └── batch.py           # Paced batch fetching
    └── scheduler/             # Scheduled sync
        ├── types.py           # Run records
        ├── retry.py           # Backoff and retries
        ├── guard.py           # Single-flight execution
        ├── task.py            # The sync task body
        └── trigger.py         # Hourly trigger

Services themselves are imported from their modules; this package only
re-exports the exceptions, so importing it never loads configuration.

Usage:
    from navsync.services import FundNotFoundError, NavUnavailableError
    from navsync.services.fund_nav_service import FundNavService
"""

from navsync.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidNavValueError,
    NotFoundError,
    FundNotFoundError,
    MissingSourceCodeError,
    NavSourceError,
    NavNotFoundError,
    SourceTransportError,
    SourceParseError,
    SourceRateLimitedError,
    NavUnavailableError,
    SchedulerUnavailableError,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidNavValueError",
    "NotFoundError",
    "FundNotFoundError",
    "MissingSourceCodeError",
    "NavSourceError",
    "NavNotFoundError",
    "SourceTransportError",
    "SourceParseError",
    "SourceRateLimitedError",
    "NavUnavailableError",
    "SchedulerUnavailableError",
]
