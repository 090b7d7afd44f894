# backend/navsync/services/scheduler/retry.py
"""
Bounded retries with exponential backoff for whole sync runs.

One logical run is attempted up to `max_attempts` times. An attempt fails
when the task returns a FAILED record or raises. Between attempts the
controller waits:

    delay(attempt) = min(initial_delay * 2 ** (attempt - 1), max_delay)

    attempt 1 -> 5s, attempt 2 -> 10s, attempt 3 -> 20s, ... capped at 60s

There is no wait after the last attempt. The wait is an asyncio sleep, so
the event loop keeps serving requests while a run is backing off.

The controller never raises: exhaustion produces a FAILED record with
retries_attempted == max_attempts and the last error message.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
)

from navsync.services.scheduler.types import (
    NAV_SYNC_TASK_NAME,
    TaskRunRecord,
    TaskStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
TaskFn = Callable[[], Awaitable[TaskRunRecord]]

# Exponents beyond this would overflow float arithmetic; the cap applies long before
_MAX_EXPONENT = 62


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Retry limits and the exponential delay formula.

    Instances are usable directly as a tenacity `wait` strategy.

    Attributes:
        max_attempts: Total attempts per run (default: 3)
        initial_delay: Delay after the first failed attempt, seconds (default: 5)
        max_delay: Upper bound for any delay, seconds (default: 60)
    """

    max_attempts: int = 3
    initial_delay: float = 5.0
    max_delay: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay cannot be negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay cannot be less than initial_delay")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        exponent = min(attempt - 1, _MAX_EXPONENT)
        return min(self.initial_delay * (2 ** exponent), self.max_delay)

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.delay(retry_state.attempt_number)


def _is_failed(record: TaskRunRecord) -> bool:
    return record.status != TaskStatus.SUCCESS


def _failure_message(retry_state: RetryCallState) -> str:
    outcome = retry_state.outcome
    if outcome is None:
        return "Unknown error"
    if outcome.failed:
        exc = outcome.exception()
        return str(exc) or type(exc).__name__
    return outcome.result().error_message or "Unknown error"


class RetryController:
    """
    Runs a sync task with bounded retries.

    Example:
        controller = RetryController(BackoffPolicy(max_attempts=3))
        record = await controller.run(task.execute)
        if record.status == TaskStatus.FAILED:
            ...  # already logged, nothing raised
    """

    def __init__(
            self,
            policy: BackoffPolicy | None = None,
            sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep

    async def run(self, task: TaskFn) -> TaskRunRecord:
        """
        Run `task` until it returns a SUCCESS record or attempts run out.

        Args:
            task: Coroutine function producing one attempt's record

        Returns:
            The successful record (retries_attempted = attempts - 1), or a
            synthesized FAILED record after exhaustion
        """
        started_at = utc_now()
        attempts = 0
        last_record: TaskRunRecord | None = None

        async def attempt() -> TaskRunRecord:
            nonlocal attempts, last_record
            attempts += 1
            logger.debug(f"Sync attempt {attempts}/{self.policy.max_attempts}")
            last_record = await task()
            return last_record

        def exhausted(retry_state: RetryCallState) -> TaskRunRecord:
            message = _failure_message(retry_state)
            logger.error(
                f"Task failed after {self.policy.max_attempts} attempts: {message}"
            )
            return TaskRunRecord(
                task_name=last_record.task_name if last_record else NAV_SYNC_TASK_NAME,
                status=TaskStatus.FAILED,
                started_at=started_at,
                ended_at=utc_now(),
                retries_attempted=self.policy.max_attempts,
                items_processed=last_record.items_processed if last_record else 0,
                items_expected=last_record.items_expected if last_record else 0,
                error_message=message,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=self.policy,
            retry=retry_if_exception_type(Exception) | retry_if_result(_is_failed),
            before_sleep=self._log_before_sleep,
            retry_error_callback=exhausted,
            sleep=self._sleep,
        )

        record = await retrying(attempt)

        if record.status == TaskStatus.SUCCESS:
            return replace(record, started_at=started_at, retries_attempted=attempts - 1)
        return record

    def _log_before_sleep(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Attempt {retry_state.attempt_number}/{self.policy.max_attempts} failed: "
            f"{_failure_message(retry_state)}; retrying in {delay:.0f}s"
        )
