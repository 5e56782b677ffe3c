"""Exception taxonomy shared by the allocation and cancellation services."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for room allocation failures."""

    error_kind = "BookingError"


class BookingValidationError(BookingError):
    """Raised when a booking or cancellation request is malformed."""

    error_kind = "ValidationError"


class LedgerUnavailableError(BookingError):
    """Raised when the reservation store cannot be reached or written."""

    error_kind = "LedgerUnavailable"


class InvalidTransitionError(BookingError):
    """Raised when a status change would leave a terminal state."""

    error_kind = "InvalidTransition"


class NotificationError(BookingError):
    """Raised by dispatchers when a message could not be delivered."""

    error_kind = "NotificationFailure"
