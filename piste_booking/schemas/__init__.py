from piste_booking.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingSnapshot,
    BookingStatus,
    CustomerSummary,
    Holiday,
    ServiceMenu,
    SourceChannel,
    TimeRange,
)
from piste_booking.schemas.notification_schema import EventKind, NotificationEvent

__all__ = [
    "Booking", "BookingRequest", "BookingSnapshot", "BookingStatus", "Holiday",
    "ServiceMenu", "SourceChannel", "TimeRange", "CustomerSummary",
    "EventKind", "NotificationEvent",
]
