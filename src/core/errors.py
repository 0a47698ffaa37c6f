"""Error taxonomy and classification utilities."""

from enum import Enum

from pydantic import BaseModel


class FamilyQuestError(Exception):
    """Base class for all domain errors raised by familyquest services."""


class ValidationError(FamilyQuestError, ValueError):
    """A required field is missing or malformed."""


class AuthenticationError(FamilyQuestError):
    """Credentials or bearer token could not be verified."""


class AuthorizationError(FamilyQuestError, PermissionError):
    """Caller lacks the required role or family membership."""


class NotFoundError(FamilyQuestError, KeyError):
    """Referenced record does not exist (or is not visible to the caller)."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep messages readable
        return str(self.args[0]) if self.args else ""


class ConflictError(NotFoundError):
    """A concurrent request already moved the record out of the expected state."""


class InvalidStateError(FamilyQuestError, ValueError):
    """The requested transition is not allowed from the record's current state."""


class GateLockedError(InvalidStateError):
    """The task is below the minimum value required by the claimant's next gate."""

    def __init__(self, message: str, *, required_points: int) -> None:
        super().__init__(message)
        self.required_points = required_points


class StorageError(FamilyQuestError, RuntimeError):
    """Underlying persistence failure."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_ALREADY_CLAIMED = "ERR_ALREADY_CLAIMED"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_GATE_LOCKED = "ERR_GATE_LOCKED"
    ERR_STORAGE = "ERR_STORAGE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Subclasses are matched before their parents, so a lost claim race is reported
    as a conflict rather than a plain not-found.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    detail = str(exception)

    if isinstance(exception, ConflictError):
        return ErrorResponse(
            code=ErrorCode.ERR_ALREADY_CLAIMED,
            message=detail or "This task has already been claimed by someone else.",
            suggestion="Refresh the task market to see what is still open.",
            severity=ErrorSeverity.LOW,
            status_code=409,
        )

    if isinstance(exception, NotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=detail or "The requested item could not be found.",
            suggestion="Refresh and try again.",
            severity=ErrorSeverity.LOW,
            status_code=404,
        )

    if isinstance(exception, GateLockedError):
        return ErrorResponse(
            code=ErrorCode.ERR_GATE_LOCKED,
            message=detail,
            suggestion=f"Pick a task worth at least {exception.required_points} points.",
            severity=ErrorSeverity.LOW,
            status_code=409,
        )

    if isinstance(exception, InvalidStateError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message=detail or "This action cannot be performed in the current state.",
            suggestion="Refresh to see the latest status and try again.",
            severity=ErrorSeverity.LOW,
            status_code=409,
        )

    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=detail or "Some required fields are missing or invalid.",
            suggestion="Check the submitted fields and try again.",
            severity=ErrorSeverity.LOW,
            status_code=400,
        )

    if isinstance(exception, AuthenticationError):
        return ErrorResponse(
            code=ErrorCode.ERR_AUTHENTICATION_FAILED,
            message=detail or "Authentication failed.",
            suggestion="Log in again.",
            severity=ErrorSeverity.MEDIUM,
            status_code=401,
        )

    if isinstance(exception, AuthorizationError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message=detail or "You don't have permission for this action.",
            suggestion="Ask a family admin if you think this is an error.",
            severity=ErrorSeverity.MEDIUM,
            status_code=403,
        )

    if isinstance(exception, StorageError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE,
            message="The request could not be saved.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
            status_code=500,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
        status_code=500,
    )
