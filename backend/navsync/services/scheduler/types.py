# backend/navsync/services/scheduler/types.py
"""
Run records for the NAV sync task.

Records are immutable snapshots; every state change produces a new record
via dataclasses.replace(), so the guard's "last result" can be handed out
without copying.
"""

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

NAV_SYNC_TASK_NAME = "fund-nav-update"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, enum.Enum):
    """
    Status of a sync run.

    State transitions:
        PENDING -> RUNNING -> SUCCESS
        PENDING -> RUNNING -> FAILED
    """
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskRunRecord:
    """
    Outcome of one logical sync run (all of its attempts).

    Attributes:
        task_name: Constant task identifier
        status: Current/final status
        started_at: When the run started
        ended_at: When the run finished (None while running)
        retries_attempted: Retries performed; equals max attempts after exhaustion
        items_processed: Funds whose NAV was persisted
        items_expected: Funds the run tried to update
        error_message: Last error, for failed runs
    """

    task_name: str = NAV_SYNC_TASK_NAME
    status: TaskStatus = TaskStatus.PENDING
    started_at: datetime = field(default_factory=utc_now)
    ended_at: datetime | None = None
    retries_attempted: int = 0
    items_processed: int = 0
    items_expected: int = 0
    error_message: str | None = None

    def __post_init__(self) -> None:
        if self.retries_attempted < 0:
            raise ValueError("retries_attempted cannot be negative")
        if self.items_processed < 0:
            raise ValueError("items_processed cannot be negative")

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.SUCCESS

    @property
    def is_partial(self) -> bool:
        """Successful run that updated fewer funds than it attempted."""
        return self.succeeded and self.items_processed < self.items_expected

    @property
    def duration_seconds(self) -> float | None:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    def finish(
            self,
            status: TaskStatus,
            items_processed: int | None = None,
            error_message: str | None = None,
    ) -> "TaskRunRecord":
        """Return a copy marked finished now."""
        return replace(
            self,
            status=status,
            ended_at=utc_now(),
            items_processed=self.items_processed if items_processed is None else items_processed,
            error_message=error_message,
        )


@dataclass(frozen=True)
class SkippedRun:
    """
    Returned instead of a record when a run is already in flight.

    The in-flight run is not affected and the last result is not changed.
    """

    task_name: str = NAV_SYNC_TASK_NAME
    reason: str = "task already running"
    requested_at: datetime = field(default_factory=utc_now)
