"""
Booking lifecycle: commit and cancel with the double-booking guard.

Commit re-reads the day's active bookings inside the store's per-date
transaction and re-runs the overlap filter there, so two customers racing
for the same time cannot both succeed. A resubmission of the same
(date, start time, customer name) returns the existing booking instead of
creating a second one, which makes retrying a failed commit safe.

Usage:
    lifecycle = BookingLifecycle(bookings, menus, dispatcher)
    result = await lifecycle.commit(request)
    await lifecycle.cancel(result.booking.id, reason="schedule conflict")
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from piste_booking.config import StoreConfig
from piste_booking.errors import (
    BookingNotFoundError,
    ConflictError,
    TransientStoreError,
    ValidationError,
)
from piste_booking.logging_context import get_request_logger
from piste_booking.notifications.dispatcher import NotificationDispatcher
from piste_booking.scheduling.booking_state import (
    BookingState,
    BookingStateMachine,
    BookingTrigger,
)
from piste_booking.scheduling.overlap import MINUTES_PER_DAY, candidate_end_minutes, conflicting_ranges
from piste_booking.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    CustomerSummary,
    SourceChannel,
)
from piste_booking.schemas.notification_schema import EventKind, NotificationEvent
from piste_booking.stores.booking_store import BookingStore
from piste_booking.stores.menu_store import MenuStore
from piste_booking.utils import Clock, format_hhmm, from_minutes, normalize_phone

logger = get_request_logger(__name__)

REQUIRED_CONTACT_FIELDS = ("customer_name", "customer_phone", "customer_email")
MAX_LOOKUP_RESULTS = 5

# Store errors that mean "try again later" rather than "this request is wrong".
_TRANSIENT_ERRORS = (ConnectionError, TimeoutError, asyncio.TimeoutError)


@dataclass
class CommitResult:
    """Outcome of a successful commit."""

    booking: Booking
    created: bool
    state_trace: list[str] = field(default_factory=list)


class BookingLifecycle:
    """Commits and cancels bookings against injected stores and a notification dispatcher."""

    def __init__(
        self,
        bookings: BookingStore,
        menus: MenuStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = datetime.now,
        store_config: Optional[StoreConfig] = None,
    ) -> None:
        self._bookings = bookings
        self._menus = menus
        self._dispatcher = dispatcher or NotificationDispatcher()
        self._clock = clock
        self._store_config = store_config or StoreConfig()

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------ #
    # Commit
    # ------------------------------------------------------------------ #

    async def commit(self, request: BookingRequest) -> CommitResult:
        """
        Persist ``request`` as a new active booking.

        Raises:
            ValidationError: Missing contact fields, unknown menu, or a
                booking that would run past midnight. Nothing persisted.
            ConflictError: The time overlaps an active booking.
            TransientStoreError: The store could not be reached.
        """
        sm = BookingStateMachine()

        missing = [name for name in REQUIRED_CONTACT_FIELDS if not getattr(request, name)]
        if request.customer_phone and not normalize_phone(request.customer_phone):
            missing.append("customer_phone")
        if missing:
            sm.transition(BookingTrigger.INVALID)
            logger.info("Booking rejected, missing fields: %s", ", ".join(missing))
            raise ValidationError(
                f"Cannot create booking - missing required fields: {', '.join(missing)}.",
                fields=missing,
            )

        sm.transition(BookingTrigger.SUBMIT)
        try:
            result = await self._commit_locked(request, sm)
        except ConflictError:
            sm.transition(BookingTrigger.CONFLICT)
            raise
        except ValidationError:
            sm.transition(BookingTrigger.INVALID)
            raise
        except TransientStoreError:
            sm.transition(BookingTrigger.STORE_FAILED)
            raise
        except _TRANSIENT_ERRORS as exc:
            sm.transition(BookingTrigger.STORE_FAILED)
            raise TransientStoreError(f"Booking store unavailable: {exc}") from exc

        result.state_trace = sm.get_state_trace()
        if result.created:
            await self._dispatcher.dispatch(
                NotificationEvent(kind=EventKind.CREATED, booking=result.booking.snapshot())
            )
        return result

    async def _commit_locked(self, request: BookingRequest, sm: BookingStateMachine) -> CommitResult:
        menu = await self._menus.get(request.menu_id)
        if menu is None:
            raise ValidationError(f"Unknown menu: {request.menu_id}", fields=["menu_id"])
        end_minutes = candidate_end_minutes(request.start_time, menu.duration_minutes)
        if end_minutes >= MINUTES_PER_DAY:
            raise ValidationError(
                f"{menu.label} starting at {format_hhmm(request.start_time)} would run past midnight.",
                fields=["start_time"],
            )
        end_time = from_minutes(end_minutes)

        async with self._bookings.transaction(request.date):
            active = await self._bookings.list_active_by_date(request.date)

            for existing in active:
                if (
                    existing.start_time == request.start_time
                    and existing.customer_name == request.customer_name
                ):
                    sm.transition(BookingTrigger.ALREADY_BOOKED)
                    logger.info(
                        "Duplicate submission for %s %s by %s, returning %s",
                        request.date.isoformat(), format_hhmm(request.start_time),
                        request.customer_name, existing.id,
                    )
                    return CommitResult(booking=existing, created=False)

            clashes = conflicting_ranges(
                request.start_time, menu.duration_minutes, [b.time_range for b in active]
            )
            if clashes:
                ids = [b.id for b in active if b.time_range in clashes]
                logger.info(
                    "Conflict for %s %s-%s with %s",
                    request.date.isoformat(), format_hhmm(request.start_time),
                    format_hhmm(end_time), ", ".join(ids),
                )
                raise ConflictError(
                    f"Sorry, {format_hhmm(request.start_time)} on {request.date.isoformat()} "
                    "was just taken. Please pick a different time.",
                    conflicting_ids=ids,
                )

            booking = Booking(
                id=uuid.uuid4().hex,
                date=request.date,
                start_time=request.start_time,
                end_time=end_time,
                menu_id=menu.id,
                customer_name=request.customer_name,
                customer_phone=normalize_phone(request.customer_phone),
                customer_email=request.customer_email,
                source_channel=request.source_channel,
                linked_messaging_id=request.linked_messaging_id,
                linked_account_id=request.linked_account_id,
                created_at=self._clock(),
            )
            stored = await self._bookings.create(booking)

        sm.transition(BookingTrigger.PERSISTED)
        logger.info(
            "Booking committed: %s %s %s-%s %s (%s)",
            stored.id, stored.date.isoformat(), format_hhmm(stored.start_time),
            format_hhmm(stored.end_time), stored.menu_id, stored.source_channel.value,
        )
        return CommitResult(booking=stored, created=True)

    async def commit_with_retry(
        self,
        request: BookingRequest,
        max_attempts: Optional[int] = None,
        backoff_sec: Optional[float] = None,
    ) -> CommitResult:
        """Commit, retrying the whole commit on TransientStoreError a bounded number of times."""
        attempts = max_attempts or self._store_config.max_commit_attempts
        backoff = self._store_config.retry_backoff_sec if backoff_sec is None else backoff_sec
        for attempt in range(1, attempts + 1):
            try:
                return await self.commit(request)
            except TransientStoreError as exc:
                if attempt == attempts:
                    logger.error("Commit failed after %d attempts: %s", attempts, exc)
                    raise
                logger.warning("Commit attempt %d/%d failed: %s", attempt, attempts, exc)
                await asyncio.sleep(backoff * attempt)
        raise AssertionError("unreachable")

    async def admin_create(self, request: BookingRequest) -> CommitResult:
        """Manual booking from the admin console, through the same guarded commit."""
        manual = request.model_copy(update={"source_channel": SourceChannel.ADMIN_MANUAL})
        return await self.commit(manual)

    # ------------------------------------------------------------------ #
    # Post-commit mutations
    # ------------------------------------------------------------------ #

    async def cancel(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """
        Soft-cancel an active booking and announce it downstream.

        Raises:
            BookingNotFoundError: Unknown id.
            InvalidTransitionError: The booking is already cancelled.
        """
        current = await self._require(booking_id)
        async with self._bookings.transaction(current.date):
            current = await self._require(booking_id)
            sm = BookingStateMachine(
                BookingState.COMMITTED if current.is_active else BookingState.CANCELLED
            )
            sm.transition(BookingTrigger.CANCEL)
            reason = reason.strip() if reason and reason.strip() else None
            cancelled = await self._bookings.update_status(
                booking_id, BookingStatus.CANCELLED, reason
            )
        logger.info("Booking cancelled: %s (reason: %s)", booking_id, reason or "-")
        await self._dispatcher.dispatch(
            NotificationEvent(kind=EventKind.CANCELLED, booking=cancelled.snapshot())
        )
        return cancelled

    async def link_messaging_id(self, booking_id: str, messaging_id: str) -> Booking:
        """Attach the customer's chat-notification id after the booking was made."""
        await self._require(booking_id)
        booking = await self._bookings.update_links(booking_id, messaging_id=messaging_id)
        logger.info("Booking %s linked to messaging id", booking_id)
        return booking

    async def link_account(self, booking_id: str, account_id: str) -> Booking:
        await self._require(booking_id)
        booking = await self._bookings.update_links(booking_id, account_id=account_id)
        logger.info("Booking %s linked to account %s", booking_id, account_id)
        return booking

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def day_schedule(self, day: date) -> list[Booking]:
        """All bookings of ``day`` (cancelled included) ordered by start time."""
        return await self._bookings.list_by_date(day)

    async def account_reservations(self, account_id: str) -> list[Booking]:
        """Every booking linked to a member account, oldest date first."""
        if not account_id:
            raise ValidationError("An account id is required.", fields=["account_id"])
        return await self._bookings.list_by_account(account_id)

    async def customer_roster(self) -> list[CustomerSummary]:
        """
        Customers known from bookings, one entry per (name, phone), sorted by name.

        Contact details come from the earliest booking; link ids are taken
        from any booking that carries them.
        """
        roster: dict[tuple[str, str], CustomerSummary] = {}
        for booking in await self._bookings.list_all():
            key = (booking.customer_name, booking.customer_phone)
            entry = roster.get(key)
            if entry is None:
                entry = roster[key] = CustomerSummary(
                    name=booking.customer_name,
                    phone=booking.customer_phone,
                    email=booking.customer_email,
                )
            entry.booking_count += 1
            entry.linked_messaging_id = entry.linked_messaging_id or booking.linked_messaging_id
            entry.linked_account_id = entry.linked_account_id or booking.linked_account_id
        return sorted(roster.values(), key=lambda c: (c.name.casefold(), c.phone))

    async def find_customer_reservations(
        self,
        name: Optional[str] = None,
        phone_last4: Optional[str] = None,
        limit: int = MAX_LOOKUP_RESULTS,
    ) -> list[Booking]:
        """Upcoming active bookings matching a name fragment and/or phone suffix."""
        name = (name or "").strip().lower()
        suffix = normalize_phone(phone_last4 or "")
        if not name and not suffix:
            raise ValidationError("Provide a name or the last digits of a phone number.")
        today = self._clock().date()
        matches = [
            b for b in await self._bookings.list_from(today)
            if b.is_active
            and (not name or name in b.customer_name.lower())
            and (not suffix or b.customer_phone.endswith(suffix))
        ]
        return matches[:limit]

    async def _require(self, booking_id: str) -> Booking:
        booking = await self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found.")
        return booking
