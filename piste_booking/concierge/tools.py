"""
Tool handlers for the chat concierge.

Each handler is a stateless request/response call into the same
availability and lifecycle code the web form uses; the chat path has no
booking logic of its own. Results are JSON-serialisable dicts with a
``success`` flag and a ``message`` the model can relay.
"""

from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Optional, TypedDict

from pydantic import ValidationError as SchemaValidationError

from piste_booking.errors import (
    BookingError,
    ConflictError,
    TransientStoreError,
    ValidationError,
)
from piste_booking.logging_context import get_request_logger, new_request_id
from piste_booking.scheduling.availability import AvailabilityService
from piste_booking.scheduling.lifecycle import BookingLifecycle
from piste_booking.schemas.booking_schema import Booking, BookingRequest, SourceChannel
from piste_booking.utils import format_hhmm

logger = get_request_logger(__name__)

_TIME_FORMATS = ("%H:%M", "%H:%M:%S")


class ToolResult(TypedDict, total=False):
    """Result returned to the model for any tool call."""

    success: bool
    message: str
    error: str
    booking_id: str
    booked_ranges: list[str]
    available_times: list[str]
    found_reservations: list[dict[str, Any]]


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError(f"Date '{value}' doesn't look right. Use YYYY-MM-DD.", ["date"]) from None


def _parse_time(value: str) -> time:
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except (AttributeError, ValueError):
            continue
    raise ValidationError(f"Time '{value}' doesn't look right. Use HH:MM.", ["time"])


def _summary(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "date": booking.date.isoformat(),
        "time": format_hhmm(booking.start_time),
        "end_time": format_hhmm(booking.end_time),
        "menu_id": booking.menu_id,
        "name": booking.customer_name,
    }


class ConciergeTools:
    """Routes concierge tool calls to the availability service and lifecycle."""

    def __init__(self, availability: AvailabilityService, lifecycle: BookingLifecycle) -> None:
        self._availability = availability
        self._lifecycle = lifecycle
        self._handlers: dict[str, Callable[..., Awaitable[ToolResult]]] = {
            "get_booked_times": self.get_booked_times,
            "list_available_times": self.list_available_times,
            "find_user_reservations": self.find_user_reservations,
            "add_reservation": self.add_reservation,
            "cancel_reservation": self.cancel_reservation,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, name: str, args: Optional[dict[str, Any]] = None) -> ToolResult:
        """Run the tool ``name`` with the model-supplied ``args``."""
        new_request_id()
        handler = self._handlers.get(name)
        if handler is None:
            return {"success": False, "error": "unknown_tool", "message": f"Unknown tool '{name}'."}
        args = args or {}
        logger.info("Concierge tool call: %s", name)
        try:
            return await handler(**args)
        except TypeError as exc:
            logger.warning("Bad arguments for %s: %s", name, exc)
            return {"success": False, "error": "bad_arguments", "message": str(exc)}
        except ConflictError as exc:
            return {"success": False, "error": "conflict", "message": str(exc)}
        except ValidationError as exc:
            return {"success": False, "error": "validation", "message": str(exc)}
        except TransientStoreError as exc:
            logger.error("Store unavailable during %s: %s", name, exc)
            return {
                "success": False,
                "error": "unavailable",
                "message": "The reservation system is busy. Please try again shortly.",
            }
        except BookingError as exc:
            return {"success": False, "error": type(exc).__name__, "message": str(exc)}

    # ------------------------------------------------------------------ #
    # Tools
    # ------------------------------------------------------------------ #

    async def get_booked_times(self, date: str) -> ToolResult:
        day = _parse_date(date)
        ranges = await self._availability.booked_ranges(day)
        return {
            "success": True,
            "booked_ranges": [f"{format_hhmm(r.start)}-{format_hhmm(r.end)}" for r in ranges],
            "message": f"{len(ranges)} booking(s) on {day.isoformat()}.",
        }

    async def list_available_times(self, date: str, menu_id: str) -> ToolResult:
        day = _parse_date(date)
        slots = await self._availability.available_slots(day, menu_id)
        if not slots:
            return {
                "success": True,
                "available_times": [],
                "message": f"No free times on {day.isoformat()}. Suggest another date.",
            }
        return {
            "success": True,
            "available_times": [format_hhmm(s) for s in slots],
            "message": f"{len(slots)} free start times on {day.isoformat()}.",
        }

    async def find_user_reservations(
        self, name: Optional[str] = None, phone_last4: Optional[str] = None
    ) -> ToolResult:
        found = await self._lifecycle.find_customer_reservations(name=name, phone_last4=phone_last4)
        return {
            "success": True,
            "found_reservations": [_summary(b) for b in found],
            "message": f"{len(found)} upcoming reservation(s) found.",
        }

    async def add_reservation(
        self,
        name: str,
        email: str,
        phone: str,
        date: str,
        time: str,
        menu_id: str,
    ) -> ToolResult:
        try:
            request = BookingRequest(
                menu_id=menu_id,
                date=_parse_date(date),
                start_time=_parse_time(time),
                customer_name=name,
                customer_phone=phone,
                customer_email=email,
                source_channel=SourceChannel.CHAT_ASSISTANT,
            )
        except SchemaValidationError as exc:
            raise ValidationError(f"Reservation details are invalid: {exc.errors()[0]['msg']}") from exc
        result = await self._lifecycle.commit_with_retry(request)
        booking = result.booking
        return {
            "success": True,
            "booking_id": booking.id,
            "message": (
                f"Reservation confirmed for {booking.date.isoformat()} at "
                f"{format_hhmm(booking.start_time)}."
            ),
        }

    async def cancel_reservation(self, id: str, cancel_reason: Optional[str] = None) -> ToolResult:
        booking = await self._lifecycle.cancel(id, reason=cancel_reason)
        return {
            "success": True,
            "booking_id": booking.id,
            "message": (
                f"Reservation on {booking.date.isoformat()} at "
                f"{format_hhmm(booking.start_time)} has been cancelled."
            ),
        }
