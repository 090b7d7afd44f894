# backend/navsync/utils/__init__.py
"""
Cross-cutting utilities:
- logging: Logging configuration with correlation ID support
- context: Correlation ID storage for requests and sync runs

Usage:
    from navsync.utils import setup_logging
    from navsync.utils import correlation_scope, new_correlation_id
"""

from navsync.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    new_correlation_id,
    correlation_scope,
)
from navsync.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_correlation_id",
    "correlation_scope",
]
