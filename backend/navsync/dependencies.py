# backend/navsync/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests and the hourly scheduler. Sharing matters here beyond
efficiency: the manual trigger endpoint and the scheduled job must see the
same SchedulerContext, otherwise the single-flight guard could not see a
run started by the other.

Services are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from navsync.dependencies import get_recurring_trigger, get_fund_nav_service

    @router.post("/trigger")
    async def trigger(trigger: RecurringTrigger = Depends(get_recurring_trigger)):
        ...
"""

import logging
from functools import lru_cache

from navsync.config import settings
from navsync.database import SessionLocal
from navsync.services.fund_nav_service import FundNavService
from navsync.services.fund_repository import FundRepository
from navsync.services.nav import (
    BatchFetcher,
    FundPageScraper,
    NavResolver,
    QuoteApiSource,
    SourceStrategy,
)
from navsync.services.scheduler import (
    BackoffPolicy,
    NavSyncTask,
    RecurringTrigger,
    RetryController,
    SchedulerContext,
    TaskExecutionGuard,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Using @lru_cache ensures the function returns the same instance on every call
#
# Order matters: define dependencies before dependents
# 1. get_quote_source, get_scrape_source (no deps)
# 2. get_nav_resolver (depends on sources)
# 3. get_batch_fetcher (depends on resolver)
# 4. get_fund_repository (depends on SessionLocal)
# 5. get_nav_sync_task (depends on repository, fetcher)
# 6. get_scheduler_context -> get_execution_guard
# 7. get_retry_controller
# 8. get_recurring_trigger (depends on guard, retry controller, task)
# 9. get_fund_nav_service (depends on repository, resolver, fetcher)


@lru_cache(maxsize=1)
def get_quote_source() -> QuoteApiSource:
    """Get the singleton quote API source."""
    logger.debug("Initializing singleton QuoteApiSource")
    return QuoteApiSource(
        api_key=settings.quote_api_key,
        base_url=settings.quote_api_base_url,
        timeout=settings.quote_api_timeout,
    )


@lru_cache(maxsize=1)
def get_scrape_source() -> FundPageScraper:
    """Get the singleton fund page scraper."""
    logger.debug("Initializing singleton FundPageScraper")
    return FundPageScraper(
        base_url=settings.scrape_base_url,
        user_agent=settings.scrape_user_agent,
        home_currency=settings.home_currency,
        timeout=settings.scrape_timeout,
        probe_code=settings.scrape_probe_code,
    )


@lru_cache(maxsize=1)
def get_nav_resolver() -> NavResolver:
    logger.debug("Initializing singleton NavResolver")
    return NavResolver(quote_source=get_quote_source(), scrape_source=get_scrape_source())


@lru_cache(maxsize=1)
def get_batch_fetcher() -> BatchFetcher:
    """
    Get the singleton BatchFetcher.

    Pacing is per source: page scrapes are spaced wider than API calls.
    """
    logger.debug("Initializing singleton BatchFetcher")
    return BatchFetcher(
        resolver=get_nav_resolver(),
        spacing={
            SourceStrategy.LOCAL_SCRAPE: settings.scrape_pacing_seconds,
            SourceStrategy.QUOTE_API: settings.quote_pacing_seconds,
            SourceStrategy.NAME_FALLBACK: settings.quote_pacing_seconds,
        },
        default_spacing=settings.quote_pacing_seconds,
    )


@lru_cache(maxsize=1)
def get_fund_repository() -> FundRepository:
    logger.debug("Initializing singleton FundRepository")
    return FundRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_nav_sync_task() -> NavSyncTask:
    logger.debug("Initializing singleton NavSyncTask")
    return NavSyncTask(repository=get_fund_repository(), fetcher=get_batch_fetcher())


# =============================================================================
# SCHEDULER
# =============================================================================


@lru_cache(maxsize=1)
def get_scheduler_context() -> SchedulerContext:
    """
    Get the process-wide scheduler state.

    Holds the running flag, the last run record and the job handle.
    """
    return SchedulerContext()


@lru_cache(maxsize=1)
def get_execution_guard() -> TaskExecutionGuard:
    return TaskExecutionGuard(get_scheduler_context())


@lru_cache(maxsize=1)
def get_retry_controller() -> RetryController:
    logger.debug("Initializing singleton RetryController")
    return RetryController(
        BackoffPolicy(
            max_attempts=settings.sync_max_attempts,
            initial_delay=settings.sync_initial_delay_seconds,
            max_delay=settings.sync_max_delay_seconds,
        )
    )


@lru_cache(maxsize=1)
def get_recurring_trigger() -> RecurringTrigger:
    """
    Get the singleton RecurringTrigger.

    Used by the lifespan handler (start/stop) and by the sync router
    (manual trigger, status).
    """
    logger.debug("Initializing singleton RecurringTrigger")
    return RecurringTrigger(
        guard=get_execution_guard(),
        retry_controller=get_retry_controller(),
        task=get_nav_sync_task(),
        timezone=settings.scheduler_timezone,
    )


# =============================================================================
# ON-DEMAND NAV SERVICE
# =============================================================================


@lru_cache(maxsize=1)
def get_fund_nav_service() -> FundNavService:
    logger.debug("Initializing singleton FundNavService")
    return FundNavService(
        repository=get_fund_repository(),
        resolver=get_nav_resolver(),
        fetcher=get_batch_fetcher(),
        home_currency=settings.home_currency,
    )
