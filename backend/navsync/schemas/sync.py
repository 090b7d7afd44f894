# backend/navsync/schemas/sync.py
"""
Pydantic schemas for the NAV sync endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TaskRunResponse(BaseModel):
    """Outcome of one sync run."""

    task_name: str
    status: str = Field(description="pending, running, success or failed")
    started_at: datetime
    ended_at: datetime | None = None
    retries_attempted: int = 0
    items_processed: int = 0
    items_expected: int = 0
    error_message: str | None = None
    duration_seconds: float | None = None
    is_partial: bool = False

    model_config = {"from_attributes": True}


class SyncStatusResponse(BaseModel):
    """Current scheduler state."""

    task_name: str
    is_running: bool
    scheduler_active: bool
    next_run_time: datetime | None = None
    last_run: TaskRunResponse | None = None


class SchedulerControlResponse(BaseModel):
    """Result of starting or stopping the hourly schedule."""

    scheduler_active: bool
    next_run_time: datetime | None = None
    message: str
