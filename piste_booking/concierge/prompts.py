"""
System prompt and tool declarations for the chat concierge.

The conversation loop itself runs in the hosted LLM integration; this
module only renders what that loop is configured with.
"""

from datetime import date

from piste_booking.config import settings

_hours = settings.hours

CONCIERGE_SYSTEM_PROMPT = """
You are the reservation concierge for {name}, a personal training gym.
Answer politely and support customers with booking, checking and
cancelling reservations. Today's date: {today}.

Opening hours: {morning_start}-{morning_end} and {afternoon_start}-{afternoon_end}.
Closed on: {closed_days}, plus holidays set by the gym.

RULES:
- Before booking, call list_available_times for the requested date and menu,
  and only offer times it returns.
- Collect name, phone number and email before calling add_reservation.
- If add_reservation reports a conflict, apologise and offer other times.
  Never pick a different time on the customer's behalf.
- To cancel, find the reservation with find_user_reservations first and
  confirm date and time with the customer. Ask for a reason but do not
  insist on one.
"""

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def build_system_prompt(today: date) -> str:
    closed = ", ".join(_DAY_NAMES[d] for d in sorted(_hours.closed_weekdays)) or "none"
    return CONCIERGE_SYSTEM_PROMPT.format(
        name=_hours.name,
        today=today.isoformat(),
        morning_start=_hours.morning_start,
        morning_end=_hours.morning_end,
        afternoon_start=_hours.afternoon_start,
        afternoon_end=_hours.afternoon_end,
        closed_days=closed,
    ).strip()


def _string(description: str = "") -> dict:
    prop = {"type": "string"}
    if description:
        prop["description"] = description
    return prop


TOOL_DECLARATIONS: list[dict] = [
    {
        "name": "get_booked_times",
        "description": "List the booked time ranges of a date.",
        "parameters": {
            "type": "object",
            "properties": {"date": _string("Date to check (YYYY-MM-DD)")},
            "required": ["date"],
        },
    },
    {
        "name": "list_available_times",
        "description": "List free start times of a date for a menu.",
        "parameters": {
            "type": "object",
            "properties": {
                "date": _string("Date to check (YYYY-MM-DD)"),
                "menu_id": _string("Menu identifier"),
            },
            "required": ["date", "menu_id"],
        },
    },
    {
        "name": "find_user_reservations",
        "description": "Search a customer's upcoming reservations.",
        "parameters": {
            "type": "object",
            "properties": {
                "name": _string(),
                "phone_last4": _string("Last four digits of the phone number"),
            },
        },
    },
    {
        "name": "add_reservation",
        "description": "Register a new reservation.",
        "parameters": {
            "type": "object",
            "properties": {
                "name": _string(),
                "email": _string(),
                "phone": _string(),
                "date": _string("YYYY-MM-DD"),
                "time": _string("HH:MM"),
                "menu_id": _string(),
            },
            "required": ["name", "email", "phone", "date", "time", "menu_id"],
        },
    },
    {
        "name": "cancel_reservation",
        "description": "Cancel a reservation.",
        "parameters": {
            "type": "object",
            "properties": {
                "id": _string(),
                "cancel_reason": _string(),
            },
            "required": ["id"],
        },
    },
]
