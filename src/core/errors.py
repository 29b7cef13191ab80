"""Error types and classification for task store failures."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class StoreError(Exception):
    """Raised when a round trip to the task store fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(StoreError):
    """Raised when an update or lookup matches no row."""


class ErrorCategory(Enum):
    """Categories of errors that can occur while handling a task intent."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONSTRAINT_VIOLATION = "constraint_violation"
    AUTHENTICATION_FAILED = "authentication_failed"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_CONSTRAINT_VIOLATION = "ERR_CONSTRAINT_VIOLATION"
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_RATE_LIMIT_EXCEEDED = "ERR_RATE_LIMIT_EXCEEDED"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    category: ErrorCategory
    message: str
    suggestion: str
    severity: ErrorSeverity


_PatternType = Literal["not_found", "constraint", "auth", "rate_limit", "network"]

_ERROR_PATTERNS: dict[_PatternType, dict[str, list[str] | set[str] | set[int]]] = {
    "not_found": {
        "phrases": ["not found", "no rows", "matched no"],
        "exception_types": {"RecordNotFoundError", "KeyError"},
        "status_codes": {404},
    },
    "constraint": {
        "phrases": [
            "check constraint",
            "violates",
            "constraint failed",
            "not null",
            "invalid input value",
            "23514",
            "23502",
        ],
        "exception_types": {"IntegrityError"},
        "status_codes": {409},
    },
    "auth": {
        "phrases": ["unauthorized", "invalid api key", "jwt", "permission denied", "row-level security"],
        "exception_types": {"PermissionError"},
        "status_codes": {401, 403},
    },
    "rate_limit": {
        "phrases": ["rate limit", "too many requests"],
        "exception_types": set(),
        "status_codes": {429},
    },
    "network": {
        "phrases": ["connection", "timeout", "timed out", "network", "unreachable", "name resolution"],
        "exception_types": {"ConnectionError", "TimeoutError", "ConnectError", "ReadTimeout", "TransportError"},
        "status_codes": {502, 503, 504},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    status_code: int | None,
    pattern_type: _PatternType,
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    if status_code is not None and status_code in patterns["status_codes"]:
        return True
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def validation_error(message: str) -> ErrorResponse:
    """Build the response for an intent rejected before any round trip."""
    return ErrorResponse(
        code=ErrorCode.ERR_VALIDATION,
        category=ErrorCategory.VALIDATION,
        message=message,
        suggestion="Correct the input and try again.",
        severity=ErrorSeverity.LOW,
    )


def not_found_error(task_id: int) -> ErrorResponse:
    """Build the response for an intent that names a task missing from the local mirror."""
    return ErrorResponse(
        code=ErrorCode.ERR_TASK_NOT_FOUND,
        category=ErrorCategory.NOT_FOUND,
        message=f"Task {task_id} was not found.",
        suggestion="Reload the task list and try again.",
        severity=ErrorSeverity.LOW,
    )


def classify_store_error(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify a task store failure and return a structured response.

    Inspects the exception type, HTTP status code (when the backend reported one)
    and message to determine the category of the failure.

    Args:
        exception: The exception raised by the store backend

    Returns:
        ErrorResponse with code, category, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__
    status_code = getattr(exception, "status_code", None)

    def matches(pattern_type: _PatternType) -> bool:
        return _match_error_pattern(
            error_str=error_str,
            exception_type=exception_type,
            status_code=status_code,
            pattern_type=pattern_type,
        )

    if matches("not_found"):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            category=ErrorCategory.NOT_FOUND,
            message="The task no longer exists in the store.",
            suggestion="Reload the task list to pick up the latest state.",
            severity=ErrorSeverity.LOW,
        )

    if matches("auth"):
        return ErrorResponse(
            code=ErrorCode.ERR_AUTHENTICATION_FAILED,
            category=ErrorCategory.AUTHENTICATION_FAILED,
            message="The task store rejected the credentials.",
            suggestion="Check SUPABASE_KEY and the table's row-level security policies.",
            severity=ErrorSeverity.CRITICAL,
        )

    if matches("rate_limit"):
        return ErrorResponse(
            code=ErrorCode.ERR_RATE_LIMIT_EXCEEDED,
            category=ErrorCategory.RATE_LIMIT_EXCEEDED,
            message="Too many requests.",
            suggestion="Please wait a moment and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if matches("network"):
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            category=ErrorCategory.NETWORK_ERROR,
            message="Network error occurred.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if matches("constraint"):
        return ErrorResponse(
            code=ErrorCode.ERR_CONSTRAINT_VIOLATION,
            category=ErrorCategory.CONSTRAINT_VIOLATION,
            message="The task store rejected the values.",
            suggestion="Priority must be low, medium or high and the title cannot be empty.",
            severity=ErrorSeverity.LOW,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        category=ErrorCategory.UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, check the logs.",
        severity=ErrorSeverity.MEDIUM,
    )
