# backend/navsync/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

- errors: Error response formats
- nav: NAV fetch, manual entry and source status
- sync: Scheduled sync status and control

Usage:
    from navsync.schemas import ErrorDetail, NavQuoteResponse, TaskRunResponse
"""

from navsync.schemas.errors import ErrorDetail, ValidationErrorDetail
from navsync.schemas.nav import (
    FetchNavRequest,
    FetchNavsRequest,
    FetchNavsResponse,
    FundNavResponse,
    FundNavResultItem,
    ManualNavRequest,
    NavQuoteResponse,
    SourceStatusResponse,
)
from navsync.schemas.sync import (
    SchedulerControlResponse,
    SyncStatusResponse,
    TaskRunResponse,
)

__all__ = [
    "ErrorDetail",
    "ValidationErrorDetail",
    "FetchNavRequest",
    "FetchNavsRequest",
    "FetchNavsResponse",
    "FundNavResponse",
    "FundNavResultItem",
    "ManualNavRequest",
    "NavQuoteResponse",
    "SourceStatusResponse",
    "SchedulerControlResponse",
    "SyncStatusResponse",
    "TaskRunResponse",
]
