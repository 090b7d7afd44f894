# backend/navsync/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The application layer (main.py) maps them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidNavValueError
    ├── NotFoundError
    │   └── FundNotFoundError
    ├── MissingSourceCodeError
    ├── NavSourceError
    │   ├── NavNotFoundError
    │   ├── SourceTransportError
    │   ├── SourceParseError
    │   └── SourceRateLimitedError
    ├── NavUnavailableError
    └── SchedulerUnavailableError

The NavSourceError family is raised by individual NAV sources and never
leaves the NavResolver: it is logged and turned into "not found" there.
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidNavValueError(ValidationError):
    """Raised when a NAV value is not a finite, non-negative number."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid NAV value: '{value}'. Expected a finite non-negative number",
            field="nav",
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Fund")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class FundNotFoundError(NotFoundError):
    """Raised when a fund record cannot be found."""

    def __init__(self, fund_id: int) -> None:
        self.fund_id = fund_id
        super().__init__(
            f"Fund {fund_id} not found",
            resource_type="Fund",
            resource_id=fund_id,
        )


class MissingSourceCodeError(ServiceError):
    """Raised when a fund has no source code and none was supplied."""

    def __init__(self, fund_id: int) -> None:
        self.fund_id = fund_id
        super().__init__(f"Fund {fund_id} has no source code configured")


# =============================================================================
# NAV SOURCE ERRORS
# =============================================================================


class NavSourceError(ServiceError):
    """
    Base exception for NAV source failures.

    Attributes:
        source: Name of the source that failed
        identifier: The code that was being looked up
    """

    def __init__(
            self,
            message: str,
            source: str | None = None,
            identifier: str | None = None,
    ) -> None:
        self.source = source
        self.identifier = identifier
        super().__init__(message)


class NavNotFoundError(NavSourceError):
    """
    Raised when a source has no usable NAV for an identifier.

    Expected and non-exceptional from the caller's point of view.
    """

    def __init__(self, source: str, identifier: str, reason: str | None = None) -> None:
        message = f"No NAV for '{identifier}' from {source}"
        if reason:
            message += f": {reason}"
        super().__init__(message, source=source, identifier=identifier)
        self.reason = reason


class SourceTransportError(NavSourceError):
    """
    Raised on network errors, timeouts or server errors talking to a source.

    Retryable at the batch-task level, never per item within one pass.
    """

    def __init__(self, source: str, identifier: str, reason: str) -> None:
        super().__init__(
            f"Transport error from {source} for '{identifier}': {reason}",
            source=source,
            identifier=identifier,
        )
        self.reason = reason


class SourceParseError(NavSourceError):
    """Raised when a source response does not have the expected shape."""

    def __init__(self, source: str, identifier: str, reason: str) -> None:
        super().__init__(
            f"Unexpected response from {source} for '{identifier}': {reason}",
            source=source,
            identifier=identifier,
        )
        self.reason = reason


class SourceRateLimitedError(NavSourceError):
    """
    Raised when a source signals throttling.

    Attributes:
        detail: The throttling notice returned by the source (if any)
    """

    def __init__(self, source: str, identifier: str, detail: str | None = None) -> None:
        message = f"Rate limited by {source} while fetching '{identifier}'"
        if detail:
            message += f": {detail}"
        super().__init__(message, source=source, identifier=identifier)
        self.detail = detail


class NavUnavailableError(ServiceError):
    """Raised by on-demand operations when no source could resolve a NAV."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Unable to fetch NAV for '{identifier}'")


# =============================================================================
# SCHEDULER ERRORS
# =============================================================================


class SchedulerUnavailableError(ServiceError):
    """
    Raised internally when the timer facility cannot register the job.

    The recurring trigger logs it and reports itself stopped; it is never
    propagated to the host application.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Scheduler unavailable: {reason}")


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidNavValueError",
    "NotFoundError",
    "FundNotFoundError",
    "MissingSourceCodeError",
    "NavSourceError",
    "NavNotFoundError",
    "SourceTransportError",
    "SourceParseError",
    "SourceRateLimitedError",
    "NavUnavailableError",
    "SchedulerUnavailableError",
]
