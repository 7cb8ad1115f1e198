"""Domain error taxonomy shared by services and the HTTP boundary.

Services raise ``DomainError`` subclasses; routers decide how they surface:
mutating endpoints fold them into an ``ActionResult`` envelope, read
endpoints turn them into ``HTTPException``.
"""
import enum

from fastapi import status


class ErrorKind(str, enum.Enum):
    invalid_format = "InvalidFormat"
    out_of_window = "OutOfWindow"
    event_not_found = "EventNotFound"
    reminder_not_found = "ReminderNotFound"
    duplicate_reminder = "DuplicateReminder"
    forbidden = "Forbidden"
    unauthorized = "Unauthorized"
    validation_error = "ValidationError"
    persistence_error = "PersistenceError"
    confirmation_required = "ConfirmationRequired"


class DomainError(Exception):
    """Base class for every error the core reports to callers."""

    kind: ErrorKind = ErrorKind.validation_error
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class InvalidFormat(DomainError):
    kind = ErrorKind.invalid_format
    default_message = "Invalid reminder time"


class OutOfWindow(DomainError):
    kind = ErrorKind.out_of_window
    default_message = "Reminder must be 15 minutes to 7 days before event."


class EventNotFound(DomainError):
    kind = ErrorKind.event_not_found
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Event not found"


class ReminderNotFound(DomainError):
    kind = ErrorKind.reminder_not_found
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Reminder not found"


class DuplicateReminder(DomainError):
    kind = ErrorKind.duplicate_reminder
    status_code = status.HTTP_409_CONFLICT
    default_message = "A reminder already exists for this event."


class Forbidden(DomainError):
    kind = ErrorKind.forbidden
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed"


class Unauthorized(DomainError):
    kind = ErrorKind.unauthorized
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class ValidationError(DomainError):
    kind = ErrorKind.validation_error
    status_code = 422
    default_message = "Invalid input"


class PersistenceError(DomainError):
    kind = ErrorKind.persistence_error
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage operation failed"


class ConfirmationRequired(DomainError):
    kind = ErrorKind.confirmation_required
    status_code = status.HTTP_428_PRECONDITION_REQUIRED
    default_message = "Destructive action must be confirmed with confirm=true"
