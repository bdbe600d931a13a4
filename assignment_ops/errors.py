"""
Typed application errors.

Each error carries the HTTP status and a stable machine-readable code; the
handlers in main.py render them as {"ok": false, "error": {...}}.
"""

from uuid import UUID


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    SCHEDULER_STATUS_NOT_FOUND = "SCHEDULER_STATUS_NOT_FOUND"
    NOT_INSTRUCTOR = "NOT_INSTRUCTOR"
    NOT_COURSE_OWNER = "NOT_COURSE_OWNER"
    SCHEDULER_NOT_AUTHORIZED = "ASSIGNMENT_SCHEDULER_NOT_AUTHORIZED"
    SCHEDULER_ALREADY_RUNNING = "ASSIGNMENT_SCHEDULER_ALREADY_RUNNING"
    SCHEDULER_EXECUTION_FAILED = "ASSIGNMENT_SCHEDULER_EXECUTION_FAILED"
    AUTO_CLOSE_FAILED = "ASSIGNMENT_AUTO_CLOSE_FAILED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    CONCURRENT_MODIFICATION = "ASSIGNMENT_CONCURRENT_MODIFICATION"
    LOG_CREATION_FAILED = "ASSIGNMENT_LOG_CREATION_FAILED"


class AppError(Exception):
    status_code = 500
    code = ErrorCode.SCHEDULER_EXECUTION_FAILED

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationFailed(AppError):
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR


class NotFound(AppError):
    status_code = 404
    code = ErrorCode.ASSIGNMENT_NOT_FOUND


class NotAuthorized(AppError):
    status_code = 403
    code = ErrorCode.SCHEDULER_NOT_AUTHORIZED


class SchedulerAlreadyRunning(AppError):
    status_code = 409
    code = ErrorCode.SCHEDULER_ALREADY_RUNNING


class SchedulerExecutionFailed(AppError):
    status_code = 500
    code = ErrorCode.SCHEDULER_EXECUTION_FAILED


class AutoCloseFailed(AppError):
    status_code = 500
    code = ErrorCode.AUTO_CLOSE_FAILED


class InvalidStatusTransition(AppError):
    status_code = 400
    code = ErrorCode.INVALID_STATUS_TRANSITION


class ConcurrentModification(AppError):
    status_code = 409
    code = ErrorCode.CONCURRENT_MODIFICATION


def ensure_uuid(value: str, label: str = "ID") -> str:
    """Raise ValidationFailed unless value parses as a UUID."""
    try:
        return str(UUID(str(value)))
    except ValueError:
        raise ValidationFailed(f"Invalid {label} format.")
