"""Errors raised by the scheduling and booking services."""


class BookingError(Exception):
    """Base exception for schedule and appointment operations."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Raised when a request is malformed, before any store mutation."""


class ScheduleNotFound(BookingError):
    """Raised when a doctor has no schedule for the requested date."""


class SlotNotFound(BookingError):
    """Raised when a schedule day has no slot with the requested label."""


class SlotAlreadyBooked(BookingError):
    """Raised when the requested slot was claimed by another booking."""


class RecordNotFound(BookingError):
    """Raised when no appointment matches the requested key."""


class InvalidTransition(BookingError):
    """Raised when an appointment status change is not allowed."""


class ScheduleConflict(BookingError):
    """Raised when a schedule day cannot be replaced or removed because it has bookings."""


class TransientError(BookingError):
    """Raised when the store failed or timed out; the operation is safe to retry."""
