# backend/navsync/services/scheduler/guard.py
"""
Single-flight execution of the NAV sync task.

All scheduler state lives in one SchedulerContext owned by the application
(see dependencies.py) and passed explicitly to the guard and the trigger:

    running      - True while a run is in flight
    last_result  - record of the most recent finished run (process lifetime)
    job          - handle of the registered hourly job, if any

The check-then-set of `running` happens under a threading.Lock and never
spans an await, so it is atomic both for coroutines on the event loop and
for threadpool callers. The flag is released in a finally block: a run that
raises cannot wedge the guard.
"""

import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from navsync.services.scheduler.types import (
    NAV_SYNC_TASK_NAME,
    SkippedRun,
    TaskRunRecord,
    TaskStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[TaskRunRecord]]


@dataclass
class SchedulerContext:
    """
    Mutable scheduler state for one process.

    Only TaskExecutionGuard writes `running` and `last_result`; only
    RecurringTrigger writes `job`.
    """

    task_name: str = NAV_SYNC_TASK_NAME
    running: bool = False
    last_result: TaskRunRecord | None = None
    job: Any | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class TaskExecutionGuard:
    """
    Ensures at most one sync run is active at a time.

    Example:
        guard = TaskExecutionGuard(context)
        outcome = await guard.try_run(lambda: controller.run(task.execute))
        if isinstance(outcome, SkippedRun):
            ...  # another run is in flight
    """

    def __init__(self, context: SchedulerContext) -> None:
        self._context = context

    @property
    def context(self) -> SchedulerContext:
        return self._context

    def is_running(self) -> bool:
        with self._context.lock:
            return self._context.running

    def last_result(self) -> TaskRunRecord | None:
        with self._context.lock:
            return self._context.last_result

    def _acquire(self) -> bool:
        with self._context.lock:
            if self._context.running:
                return False
            self._context.running = True
            return True

    def _release(self, record: TaskRunRecord) -> None:
        with self._context.lock:
            self._context.last_result = record
            self._context.running = False

    async def try_run(self, task_factory: TaskFactory) -> TaskRunRecord | SkippedRun:
        """
        Run the task unless a run is already in flight.

        Args:
            task_factory: Coroutine function performing the (retried) run

        Returns:
            The run's record, or SkippedRun without calling task_factory
        """
        if not self._acquire():
            logger.warning(f"Task '{self._context.task_name}' already running, skipping")
            return SkippedRun(task_name=self._context.task_name)

        started_at = utc_now()
        record: TaskRunRecord | None = None
        try:
            record = await task_factory()
            return record
        except Exception as e:
            logger.exception(f"Task '{self._context.task_name}' raised unexpectedly")
            record = TaskRunRecord(
                task_name=self._context.task_name,
                status=TaskStatus.FAILED,
                started_at=started_at,
                ended_at=utc_now(),
                error_message=str(e) or type(e).__name__,
            )
            return record
        finally:
            if record is None:
                # Cancelled mid-run; nothing to report but the flag must drop
                record = TaskRunRecord(
                    task_name=self._context.task_name,
                    status=TaskStatus.FAILED,
                    started_at=started_at,
                    ended_at=utc_now(),
                    error_message="Task cancelled",
                )
            self._release(record)
