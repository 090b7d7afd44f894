# backend/navsync/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application with a lifespan that owns the scheduler
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from navsync.config import settings
from navsync.database import check_database_health, engine
from navsync.dependencies import get_fund_nav_service, get_recurring_trigger
from navsync.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)
from navsync.models import Base
from navsync.routers import funds_router, sync_router
from navsync.schemas.errors import ErrorDetail, ValidationErrorDetail
from navsync.schemas.nav import SourceStatusResponse
from navsync.services.exceptions import (
    ServiceError,
    ValidationError,
    NotFoundError,
    FundNotFoundError,
    MissingSourceCodeError,
    NavUnavailableError,
)
from navsync.services.fund_nav_service import FundNavService
from navsync.services.scheduler import RecurringTrigger
from navsync.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(_: FastAPI):
    """
    Start the hourly NAV sync on startup and stop it on shutdown.

    A scheduler that cannot start is logged by the trigger and never
    prevents the API from serving.
    """
    if settings.is_sqlite:
        # SQLite databases (including in-memory) are created on the fly
        Base.metadata.create_all(bind=engine)

    trigger = get_recurring_trigger()
    if settings.scheduler_enabled:
        if trigger.start() is None:
            logger.warning("NAV sync scheduler not running; manual triggers remain available")
    else:
        logger.info("NAV sync scheduler disabled (SCHEDULER_ENABLED=false)")

    try:
        yield
    finally:
        trigger.stop()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Hourly fund NAV synchronisation from a quote API and fund pages",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service exceptions carry no HTTP knowledge; status codes are decided here.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(FundNotFoundError)
async def fund_not_found_handler(request: Request, exc: FundNotFoundError) -> JSONResponse:
    """Handle fund not found errors (404)."""
    logger.warning(f"Fund not found: {exc.fund_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="FundNotFoundError",
            message=str(exc),
            details={"fund_id": exc.fund_id},
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
        ).model_dump(),
    )


@app.exception_handler(MissingSourceCodeError)
async def missing_source_code_handler(request: Request, exc: MissingSourceCodeError) -> JSONResponse:
    """Handle funds without a source code (400)."""
    logger.warning(f"Fund {exc.fund_id} has no source code")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="MissingSourceCodeError",
            message=str(exc),
            details={"fund_id": exc.fund_id},
        ).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle validation errors, including invalid NAV values (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(NavUnavailableError)
async def nav_unavailable_handler(request: Request, exc: NavUnavailableError) -> JSONResponse:
    """Handle NAVs no source could provide (503)."""
    logger.warning(f"NAV unavailable: {exc.identifier}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="NavUnavailableError",
            message=str(exc),
            details={"identifier": exc.identifier},
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Convert FastAPI's {"detail": "..."} format to ErrorDetail."""
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        429: "RateLimitError",
        503: "ServiceUnavailableError",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_types.get(exc.status_code, "HTTPError"),
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return request validation errors (422) as ValidationErrorDetail."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(details=errors).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(sync_router)  # /sync/nav/*
app.include_router(funds_router)  # /funds/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(
        request: Request,
        trigger: RecurringTrigger = Depends(get_recurring_trigger),
):
    """
    Health check endpoint.

    - 200: database reachable (scheduler state reported, non-critical)
    - 503: database unreachable
    """
    database = check_database_health()

    response_data = {
        "status": database["status"],
        "checks": {
            "database": {**database, "critical": True},
            "scheduler": {
                "status": "active" if trigger.is_scheduled() else "stopped",
                "critical": False,
                "is_running": trigger.guard.is_running(),
            },
        },
    }

    if database["status"] != "healthy":
        return JSONResponse(status_code=503, content=response_data)
    return response_data


@app.get("/health/sources", tags=["Health"], response_model=SourceStatusResponse)
@limiter.limit(RATE_LIMIT_HEALTH)
async def source_health_check(
        request: Request,
        service: FundNavService = Depends(get_fund_nav_service),
) -> SourceStatusResponse:
    """
    Connectivity of the NAV sources.

    Always 200; `status` is "degraded" when any source is unreachable.
    """
    sources = await service.check_sources()
    return SourceStatusResponse(
        status="healthy" if all(sources.values()) else "degraded",
        sources=sources,
    )
