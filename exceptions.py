"""
Exceptions raised by the reservation workflow.

Each carries an error code and the HTTP status the API answers with, so
route handlers never translate them by hand.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_TIME_WINDOW = "INVALID_TIME_WINDOW"
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    ROOM_UNAVAILABLE = "ROOM_UNAVAILABLE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


class BookingError(Exception):
    """Base class for every error the workflow reports to its callers."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"ok": False, "error": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(BookingError):
    """Missing or malformed reservation fields."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)
        self.field = field


class ConflictError(BookingError):
    """The requested room is not free for the requested window."""

    code = ErrorCode.BOOKING_CONFLICT
    status_code = 409


class NotFoundError(BookingError):
    code = ErrorCode.RESOURCE_NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} {identifier} not found",
            details={"resource": resource, "id": identifier},
        )


class InvalidTransitionError(BookingError):
    code = ErrorCode.INVALID_TRANSITION
    status_code = 409

    def __init__(self, current: str, target: str, reservation_id: Any = None):
        details = {"from": current, "to": target}
        if reservation_id is not None:
            details["reservation_id"] = reservation_id
        super().__init__(
            f"cannot move a {current} reservation to {target}", details=details
        )


class PersistenceError(BookingError):
    """Saving the workspace failed; in-memory state was left untouched."""

    code = ErrorCode.PERSISTENCE_ERROR
    status_code = 503
