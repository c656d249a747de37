"""Notification event models passed from the lifecycle to sinks."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from piste_booking.schemas.booking_schema import BookingSnapshot


class EventKind(str, Enum):
    CREATED = "created"
    CANCELLED = "cancelled"


class NotificationEvent(BaseModel):
    """A lifecycle transition to be announced downstream."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    booking: BookingSnapshot
    occurred_at: datetime = Field(default_factory=datetime.now)
