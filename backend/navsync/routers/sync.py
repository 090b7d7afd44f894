# backend/navsync/routers/sync.py
"""
NAV sync endpoints.

Provides endpoints for controlling the scheduled fund NAV sync:
- Trigger a run now (same single-flight guard as the hourly job)
- Inspect scheduler state and the last run
- Start/stop the hourly schedule
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from navsync.dependencies import get_recurring_trigger
from navsync.middleware.rate_limit import limiter, RATE_LIMIT_SYNC, RATE_LIMIT_DEFAULT, RATE_LIMIT_WRITE
from navsync.schemas.errors import ErrorDetail
from navsync.schemas.sync import (
    SchedulerControlResponse,
    SyncStatusResponse,
    TaskRunResponse,
)
from navsync.services.scheduler import RecurringTrigger, SkippedRun, TaskRunRecord

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/sync/nav",
    tags=["NAV Sync"],
)


def _to_response(record: TaskRunRecord) -> TaskRunResponse:
    return TaskRunResponse(
        task_name=record.task_name,
        status=record.status.value,
        started_at=record.started_at,
        ended_at=record.ended_at,
        retries_attempted=record.retries_attempted,
        items_processed=record.items_processed,
        items_expected=record.items_expected,
        error_message=record.error_message,
        duration_seconds=record.duration_seconds,
        is_partial=record.is_partial,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/trigger",
    response_model=TaskRunResponse,
    summary="Run the NAV sync now",
    response_description="Final record of the run",
    responses={409: {"model": ErrorDetail, "description": "A run is already in flight"}},
)
@limiter.limit(RATE_LIMIT_SYNC)
async def trigger_sync(
        request: Request,  # Required for rate limiting
        trigger: RecurringTrigger = Depends(get_recurring_trigger),
):
    """
    Run the fund NAV sync immediately and wait for it to finish.

    The run goes through the same retry policy and single-flight guard as
    the hourly job. A failed run is still a **200** response; inspect
    `status` and `error_message`.

    **Note:** With retries a failing run can take over a minute.

    Raises **409** if a run (scheduled or manual) is already in flight.
    """
    outcome = await trigger.trigger_now()

    if isinstance(outcome, SkippedRun):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=ErrorDetail(
                error="TaskAlreadyRunning",
                message=f"Task '{outcome.task_name}' is already running",
                details={"reason": outcome.reason},
            ).model_dump(),
        )

    return _to_response(outcome)


@router.get(
    "/status",
    response_model=SyncStatusResponse,
    summary="Get NAV sync status",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def get_sync_status(
        request: Request,  # Required for rate limiting
        trigger: RecurringTrigger = Depends(get_recurring_trigger),
) -> SyncStatusResponse:
    """
    Get the scheduler state.

    Returns:
    - **is_running**: Whether a run is in flight
    - **scheduler_active**: Whether the hourly job is registered
    - **next_run_time**: Next hourly firing, if scheduled
    - **last_run**: Record of the most recent finished run (since process start)
    """
    guard = trigger.guard
    last = guard.last_result()

    return SyncStatusResponse(
        task_name=guard.context.task_name,
        is_running=guard.is_running(),
        scheduler_active=trigger.is_scheduled(),
        next_run_time=trigger.next_run_time(),
        last_run=_to_response(last) if last else None,
    )


@router.post(
    "/scheduler/start",
    response_model=SchedulerControlResponse,
    summary="Start the hourly schedule",
)
@limiter.limit(RATE_LIMIT_WRITE)
async def start_scheduler(
        request: Request,  # Required for rate limiting
        trigger: RecurringTrigger = Depends(get_recurring_trigger),
) -> SchedulerControlResponse:
    """
    Register the hourly job. Idempotent.

    Returns `scheduler_active: false` if the scheduler could not be started.
    """
    job = trigger.start()
    return SchedulerControlResponse(
        scheduler_active=job is not None,
        next_run_time=trigger.next_run_time(),
        message="Scheduler started" if job is not None else "Scheduler could not be started",
    )


@router.post(
    "/scheduler/stop",
    response_model=SchedulerControlResponse,
    summary="Stop the hourly schedule",
)
@limiter.limit(RATE_LIMIT_WRITE)
async def stop_scheduler(
        request: Request,  # Required for rate limiting
        trigger: RecurringTrigger = Depends(get_recurring_trigger),
) -> SchedulerControlResponse:
    """
    Remove the hourly job. Idempotent; a run in flight finishes normally.
    """
    trigger.stop()
    return SchedulerControlResponse(
        scheduler_active=False,
        next_run_time=None,
        message="Scheduler stopped",
    )
