"""Error taxonomy for the booking core.

Validation and conflict errors are deterministic and go straight back to
the caller. Transient store errors may be retried by the caller.
Notification delivery errors never reach the booking caller.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all booking core errors."""


class ValidationError(BookingError):
    """Required booking input is missing or malformed. Nothing was persisted."""

    def __init__(self, message: str, fields: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class ConflictError(BookingError):
    """The requested time overlaps an active booking at commit time."""

    def __init__(self, message: str, conflicting_ids: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.conflicting_ids = conflicting_ids or []


class TransientStoreError(BookingError):
    """The backing store is unavailable. The whole commit may be retried."""


class BookingNotFoundError(BookingError):
    """No booking exists with the given id."""


class InvalidTransitionError(BookingError):
    """Raised when a lifecycle transition is not valid from the current state."""


class NotificationDeliveryError(BookingError):
    """A notification sink failed. Recorded out-of-band, never raised to callers."""

    def __init__(self, sink: str, event_kind: str, booking_id: str, cause: Exception) -> None:
        super().__init__(f"{sink} failed to deliver '{event_kind}' for {booking_id}: {cause}")
        self.sink = sink
        self.event_kind = event_kind
        self.booking_id = booking_id
        self.cause = cause
