from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class ClosedAttendanceError(DomainError):
    """Raised when a mutation targets a day whose attendance is closed.

    Always raised client-side, before any network call.
    """

    def __init__(self, group_id: str, date: str):
        super().__init__(f"Attendance for group {group_id} on {date} is closed")
        self.group_id = group_id
        self.date = date


class TransportError(DomainError):
    """Raised when reading or writing attendance through the backend fails."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TransportError):
    """No attendance exists yet for the requested key (HTTP 404)."""

    def __init__(self, message: str = "Attendance not found"):
        super().__init__(message, status_code=404)


class AttendanceLoadingError(DomainError):
    """Raised when a snapshot is needed while another fetch is still in flight."""

    def __init__(self, group_id: str, date: str):
        super().__init__(f"Attendance for group {group_id} on {date} is still loading, try again")
        self.group_id = group_id
        self.date = date
