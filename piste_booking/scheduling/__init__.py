from piste_booking.scheduling.availability import AvailabilityService
from piste_booking.scheduling.booking_state import (
    BookingState,
    BookingStateMachine,
    BookingTrigger,
)
from piste_booking.scheduling.lifecycle import BookingLifecycle, CommitResult
from piste_booking.scheduling.overlap import filter_admissible, is_admissible, overlaps
from piste_booking.scheduling.slot_generator import OperatingHours, generate_slots

__all__ = [
    "AvailabilityService",
    "BookingLifecycle",
    "BookingState",
    "BookingStateMachine",
    "BookingTrigger",
    "CommitResult",
    "OperatingHours",
    "filter_admissible",
    "generate_slots",
    "is_admissible",
    "overlaps",
]
