# backend/navsync/utils/context.py
"""
Execution context for log correlation.

Two kinds of work carry a correlation ID:
- HTTP requests (set by CorrelationIdMiddleware)
- Scheduled NAV sync runs (set by the recurring trigger, prefixed "sync-")

Uses Python's contextvars so the ID follows async/await calls, including
the retry delays of a sync run.

Usage:
    from navsync.utils.context import correlation_scope, get_correlation_id

    with correlation_scope(new_correlation_id("sync")):
        await run()
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the correlation ID of the current request or sync run, if any."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def new_correlation_id(prefix: str | None = None) -> str:
    """
    Generate a new correlation ID.

    Args:
        prefix: Optional label, e.g. "sync" gives "sync-<uuid4>"
    """
    value = str(uuid.uuid4())
    return f"{prefix}-{value}" if prefix else value


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a block.

    The previous value is restored on exit, so nested scopes (a manual
    trigger issued from inside a request) keep the outer ID afterwards.
    """
    token = _correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id_var.reset(token)
