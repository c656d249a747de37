"""Booking, menu and holiday data models."""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BookingStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class SourceChannel(str, Enum):
    """Where a booking was entered."""

    WEB_FORM = "web-form"
    CHAT_ASSISTANT = "chat-assistant"
    ADMIN_MANUAL = "admin-manual"
    EXTERNAL_CALENDAR_SYNC = "external-calendar-sync"


class ServiceMenu(BaseModel):
    """A bookable service. Referenced by bookings, never owned by them."""

    id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0)
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)


class TimeRange(BaseModel):
    """Half-open [start, end) time-of-day interval of an active booking."""

    model_config = ConfigDict(frozen=True)

    start: dt.time
    end: dt.time


class BookingRequest(BaseModel):
    """A customer's selections and contact details, as submitted.

    Contact fields may arrive empty; the lifecycle rejects them with a
    ValidationError rather than failing model construction, so the caller
    gets a booking-level error it can re-render.
    """

    menu_id: str
    date: dt.date
    start_time: dt.time
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    source_channel: SourceChannel = SourceChannel.WEB_FORM
    linked_messaging_id: Optional[str] = None
    linked_account_id: Optional[str] = None

    @field_validator("customer_name", "customer_phone", "customer_email", mode="before")
    @classmethod
    def _strip(cls, value: Optional[str]) -> str:
        return (value or "").strip()

    @field_validator("start_time")
    @classmethod
    def _minute_resolution(cls, value: dt.time) -> dt.time:
        return value.replace(second=0, microsecond=0)


class Booking(BaseModel):
    """A persisted reservation.

    ``end_time`` is fixed at creation from the menu duration and is not
    recomputed if the menu changes later.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    menu_id: str
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    customer_email: str = Field(min_length=1)
    source_channel: SourceChannel
    status: BookingStatus = BookingStatus.ACTIVE
    cancel_reason: Optional[str] = None
    linked_messaging_id: Optional[str] = None
    linked_account_id: Optional[str] = None
    reminder_sent: bool = False
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)

    @model_validator(mode="after")
    def _check_interval(self) -> "Booking":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.cancel_reason is not None and self.status != BookingStatus.CANCELLED:
            raise ValueError("cancel_reason is only set on cancelled bookings")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    def snapshot(self) -> "BookingSnapshot":
        return BookingSnapshot.model_validate(self.model_dump())


class BookingSnapshot(BaseModel):
    """Immutable copy of a booking handed to notification sinks."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    menu_id: str
    customer_name: str
    customer_phone: str
    customer_email: str
    source_channel: SourceChannel
    status: BookingStatus
    cancel_reason: Optional[str] = None
    linked_messaging_id: Optional[str] = None
    linked_account_id: Optional[str] = None


class Holiday(BaseModel):
    """A date the gym is fully closed."""

    date: dt.date
    note: Optional[str] = None


class CustomerSummary(BaseModel):
    """One customer of the admin roster, merged across bookings on (name, phone)."""

    name: str
    phone: str
    email: str
    linked_messaging_id: Optional[str] = None
    linked_account_id: Optional[str] = None
    booking_count: int = 0
