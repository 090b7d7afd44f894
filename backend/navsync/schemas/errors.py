# backend/navsync/schemas/errors.py
"""
Pydantic schemas for error responses.

Every non-2xx response of the API uses ErrorDetail, produced by the
exception handlers in main.py from the service layer exceptions.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """
    Standard error response format.

    `error` is the exception class name so clients can branch on it
    (e.g. 'TaskAlreadyRunning', 'FundNotFoundError').
    """

    error: str = Field(
        ...,
        description="Error type/code (e.g., 'FundNotFoundError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context (optional)"
    )


class ValidationErrorDetail(BaseModel):
    """Request validation error response format (422 responses)."""

    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="List of validation errors"
    )
