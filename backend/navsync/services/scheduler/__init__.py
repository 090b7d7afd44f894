# backend/navsync/services/scheduler/__init__.py
"""
Scheduled NAV sync package.

This package provides:
- TaskRunRecord / SkippedRun: Run outcomes
- BackoffPolicy / RetryController: Bounded exponential retries
- SchedulerContext / TaskExecutionGuard: Single-flight execution
- NavSyncTask: One attempt of the sync
- RecurringTrigger: Hourly firing, manual trigger, start/stop

Usage:
    from navsync.services.scheduler import RecurringTrigger

    trigger.start()
    outcome = await trigger.trigger_now()
"""

from navsync.services.scheduler.guard import SchedulerContext, TaskExecutionGuard
from navsync.services.scheduler.retry import BackoffPolicy, RetryController
from navsync.services.scheduler.task import NavSyncTask
from navsync.services.scheduler.trigger import RecurringTrigger
from navsync.services.scheduler.types import (
    NAV_SYNC_TASK_NAME,
    SkippedRun,
    TaskRunRecord,
    TaskStatus,
)

__all__ = [
    "NAV_SYNC_TASK_NAME",
    "SchedulerContext",
    "TaskExecutionGuard",
    "BackoffPolicy",
    "RetryController",
    "NavSyncTask",
    "RecurringTrigger",
    "SkippedRun",
    "TaskRunRecord",
    "TaskStatus",
]
