# backend/navsync/services/scheduler/trigger.py
"""
Hourly firing of the NAV sync task.

The job fires at minute 0 of every hour (HH:00:00) in the configured
timezone. Each firing, and each manual trigger, goes through the same
path:

    guard.try_run(lambda: retry_controller.run(task.execute))

so a manual trigger racing an hourly firing is skipped exactly like two
overlapping firings would be.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from navsync.services.exceptions import SchedulerUnavailableError
from navsync.services.scheduler.guard import TaskExecutionGuard
from navsync.services.scheduler.retry import RetryController
from navsync.services.scheduler.task import NavSyncTask
from navsync.services.scheduler.types import SkippedRun, TaskRunRecord
from navsync.utils.context import correlation_scope, new_correlation_id

logger = logging.getLogger(__name__)

SchedulerFactory = Callable[..., Any]


class RecurringTrigger:
    """
    Registers and controls the hourly sync job.

    Configuration:
        guard: Single-flight guard (owns the shared SchedulerContext)
        retry_controller: Retry wrapper for each run
        task: The sync task
        timezone: Timezone of the hourly schedule
        scheduler_factory: Builds the APScheduler instance (tests inject a fake)
    """

    def __init__(
            self,
            guard: TaskExecutionGuard,
            retry_controller: RetryController,
            task: NavSyncTask,
            timezone: str = "UTC",
            scheduler_factory: SchedulerFactory = AsyncIOScheduler,
    ) -> None:
        self._guard = guard
        self._retry_controller = retry_controller
        self._task = task
        self._timezone = timezone
        self._scheduler_factory = scheduler_factory
        self._scheduler: Any | None = None
        self._runs: set[asyncio.Task] = set()

    @property
    def guard(self) -> TaskExecutionGuard:
        return self._guard

    def start(self) -> Any | None:
        """
        Register the hourly job and start the scheduler.

        Idempotent: when a job is already registered its handle is returned.

        Returns:
            Job handle, or None if the scheduler could not be started (logged)
        """
        context = self._guard.context
        if context.job is not None:
            logger.info(f"Task '{context.task_name}' already scheduled")
            return context.job

        try:
            scheduler = self._scheduler or self._scheduler_factory(timezone=self._timezone)
            job = scheduler.add_job(
                self._fire,
                trigger=CronTrigger(minute=0, second=0, timezone=self._timezone),
                id=context.task_name,
                name=context.task_name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            if not scheduler.running:
                scheduler.start()
        except Exception as e:
            error = SchedulerUnavailableError(str(e) or type(e).__name__)
            logger.error(f"Failed to start scheduler: {error.message}")
            return None

        self._scheduler = scheduler
        context.job = job
        logger.info(f"Scheduled task '{context.task_name}' to run hourly ({self._timezone})")
        return job

    def stop(self, handle: Any | None = None) -> None:
        """
        Remove the hourly job and shut the scheduler down.

        Idempotent. A run already in flight finishes normally: shutting the
        scheduler down cancels only the executor's wrapper around _fire(),
        never the shielded run itself (see _fire).
        """
        context = self._guard.context
        job = handle or context.job

        if job is not None and self._scheduler is not None:
            try:
                self._scheduler.remove_job(job.id)
            except JobLookupError:
                logger.debug(f"Job '{job.id}' already removed")

        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

        if context.job is not None:
            logger.info(f"Stopped task '{context.task_name}'")
        context.job = None

    async def trigger_now(self) -> TaskRunRecord | SkippedRun:
        """Run the task immediately, subject to the single-flight guard."""
        logger.info(f"Triggering task '{self._guard.context.task_name}'")
        return await self._guard.try_run(
            lambda: self._retry_controller.run(self._task.execute)
        )

    def is_scheduled(self) -> bool:
        return self._guard.context.job is not None

    def next_run_time(self) -> datetime | None:
        job = self._guard.context.job
        if job is None:
            return None
        return getattr(job, "next_run_time", None)

    async def _fire(self) -> None:
        # The task copies the context, so the run keeps the "sync-" ID
        with correlation_scope(new_correlation_id("sync")):
            run = asyncio.ensure_future(self.trigger_now())
        self._runs.add(run)
        run.add_done_callback(self._runs.discard)

        # Executor shutdown cancels this coroutine, not the run
        outcome = await asyncio.shield(run)
        if isinstance(outcome, SkippedRun):
            logger.info("Hourly firing skipped: previous run still in flight")
