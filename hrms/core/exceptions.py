"""
Domain errors raised by the leave/attendance services.

Client-caused errors (validation, not found, conflict) are reported immediately.
SyncFailure and StoreUnavailable are retryable: the caller may repeat the call and
the engine will converge because attendance writes are idempotent upserts.
"""
from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 500
    code = "internal_error"
    retryable = False

    def __init__(self, detail: str, code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code


class ValidationError(DomainError):
    """Raised when input data is missing or malformed."""

    status_code = 400
    code = "validation_error"


class InvalidRange(ValidationError):
    """Raised when a date range ends before it starts."""

    code = "invalid_range"


class NotFound(DomainError):
    """Raised for an unknown employee, leave or attendance id."""

    status_code = 404
    code = "not_found"


class Conflict(DomainError):
    """Raised when a request collides with existing state."""

    status_code = 409
    code = "conflict"


class DuplicateRecord(Conflict):
    code = "duplicate_record"


class OverlappingLeave(Conflict):
    code = "overlapping_leave"


class EmployeeInactive(Conflict):
    code = "employee_inactive"


class NoAttendanceHistory(Conflict):
    code = "no_attendance_history"


class InvalidTransition(Conflict):
    code = "invalid_transition"


class SyncFailure(DomainError):
    """Attendance span of an approved leave could not be fully written."""

    status_code = 503
    code = "sync_failure"
    retryable = True

    def __init__(self, detail: str, leave_id: Optional[int] = None, days_written: int = 0):
        super().__init__(detail)
        self.leave_id = leave_id
        self.days_written = days_written


class StoreUnavailable(DomainError):
    """Transient storage fault (timeout, dropped connection, locked database)."""

    status_code = 503
    code = "store_unavailable"
    retryable = True
