"""Tests for the in-memory stores and the booking model they hold."""

from datetime import date, datetime, time

import pytest
from pydantic import ValidationError as SchemaValidationError

from piste_booking.errors import BookingNotFoundError
from piste_booking.schemas.booking_schema import Booking, BookingStatus, SourceChannel
from piste_booking.stores.menu_store import DEFAULT_MENUS, InMemoryMenuStore, menu_label
from tests.conftest import TUESDAY, make_request


def make_booking(booking_id: str = "b1", start: time = time(9, 0), end: time = time(9, 20), **kw) -> Booking:
    fields = dict(
        id=booking_id,
        date=TUESDAY,
        start_time=start,
        end_time=end,
        menu_id="personal-20",
        customer_name="Aiko Tanaka",
        customer_phone="09012345678",
        customer_email="aiko@example.com",
        source_channel=SourceChannel.WEB_FORM,
        created_at=datetime(2026, 2, 1, 12, 0),
    )
    fields.update(kw)
    return Booking(**fields)


class TestBookingModel:
    def test_end_must_follow_start(self):
        with pytest.raises(SchemaValidationError):
            make_booking(start=time(9, 20), end=time(9, 0))

    def test_reason_only_when_cancelled(self):
        with pytest.raises(SchemaValidationError):
            make_booking(cancel_reason="changed my mind")
        booking = make_booking(status=BookingStatus.CANCELLED, cancel_reason="changed my mind")
        assert not booking.is_active

    def test_empty_contact_rejected(self):
        with pytest.raises(SchemaValidationError):
            make_booking(customer_phone="")

    def test_snapshot_is_frozen(self):
        snapshot = make_booking().snapshot()
        with pytest.raises(SchemaValidationError):
            snapshot.customer_name = "Someone Else"


class TestBookingStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, booking_store):
        booking = make_booking()
        await booking_store.create(booking)
        assert await booking_store.get("b1") == booking

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, booking_store):
        await booking_store.create(make_booking())
        with pytest.raises(ValueError):
            await booking_store.create(make_booking())

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, booking_store):
        await booking_store.create(make_booking())
        fetched = await booking_store.get("b1")
        fetched.customer_name = "Changed"
        assert (await booking_store.get("b1")).customer_name == "Aiko Tanaka"

    @pytest.mark.asyncio
    async def test_lists_sorted_by_start(self, booking_store):
        await booking_store.create(make_booking("late", time(15, 0), time(15, 20)))
        await booking_store.create(make_booking("early", time(9, 0), time(9, 20)))
        await booking_store.create(
            make_booking("other-day", time(8, 0), time(8, 20), date=date(2026, 2, 4))
        )
        assert [b.id for b in await booking_store.list_by_date(TUESDAY)] == ["early", "late"]
        assert [b.id for b in await booking_store.list_from(TUESDAY)] == [
            "early", "late", "other-day",
        ]
        assert [b.id for b in await booking_store.list_from(date(2026, 2, 4))] == ["other-day"]

    @pytest.mark.asyncio
    async def test_update_status_filters_active(self, booking_store):
        await booking_store.create(make_booking())
        updated = await booking_store.update_status("b1", BookingStatus.CANCELLED, "sick")
        assert updated.cancel_reason == "sick"
        assert await booking_store.list_active_by_date(TUESDAY) == []
        assert len(await booking_store.list_by_date(TUESDAY)) == 1

    @pytest.mark.asyncio
    async def test_mark_reminder_sent(self, booking_store):
        await booking_store.create(make_booking())
        assert (await booking_store.mark_reminder_sent("b1")).reminder_sent

    @pytest.mark.asyncio
    async def test_list_by_account(self, booking_store):
        await booking_store.create(make_booking("mine-late", time(15, 0), time(15, 20), linked_account_id="acct-1"))
        await booking_store.create(make_booking("mine-early", time(9, 0), time(9, 20), linked_account_id="acct-1"))
        await booking_store.create(make_booking("guest", time(10, 0), time(10, 20)))
        assert [b.id for b in await booking_store.list_by_account("acct-1")] == ["mine-early", "mine-late"]
        assert await booking_store.list_by_account("acct-2") == []

    @pytest.mark.asyncio
    async def test_list_all_includes_cancelled(self, booking_store):
        await booking_store.create(make_booking("b1"))
        await booking_store.create(
            make_booking("b2", time(10, 0), time(10, 20), date=date(2026, 2, 4),
                         status=BookingStatus.CANCELLED)
        )
        assert [b.id for b in await booking_store.list_all()] == ["b1", "b2"]

    @pytest.mark.asyncio
    async def test_update_unknown(self, booking_store):
        with pytest.raises(BookingNotFoundError):
            await booking_store.update_links("missing", messaging_id="U1")

    @pytest.mark.asyncio
    async def test_reset(self, booking_store):
        await booking_store.create(make_booking())
        booking_store.reset()
        assert await booking_store.get("b1") is None


class TestMenuStore:
    @pytest.mark.asyncio
    async def test_seed_defaults_on_empty(self):
        store = InMemoryMenuStore()
        seeded = await store.seed_defaults()
        assert [m.id for m in seeded] == [m.id for m in DEFAULT_MENUS]

    @pytest.mark.asyncio
    async def test_seed_defaults_keeps_existing(self):
        store = InMemoryMenuStore()
        await store.upsert("Stretch class", 45)
        seeded = await store.seed_defaults()
        assert [m.id for m in seeded] == ["stretch-class-45"]

    @pytest.mark.asyncio
    async def test_upsert_updates_existing(self, menu_store):
        await menu_store.upsert("Personal training", 30, menu_id="personal-20", price=5000)
        menu = await menu_store.get("personal-20")
        assert menu.duration_minutes == 30
        assert menu.price == 5000
        assert len(await menu_store.list_all()) == len(DEFAULT_MENUS)

    @pytest.mark.asyncio
    async def test_delete(self, menu_store):
        assert await menu_store.delete("trial-60")
        assert not await menu_store.delete("trial-60")
        assert await menu_store.get("trial-60") is None

    @pytest.mark.asyncio
    async def test_menu_label_falls_back_to_id(self, menu_store):
        assert await menu_label(menu_store, "trial-60") == "Free trial session"
        assert await menu_label(menu_store, "gone") == "gone"

    @pytest.mark.asyncio
    async def test_menu_duration_change_keeps_booked_end(self, lifecycle, menu_store):
        booking = (await lifecycle.commit(make_request())).booking
        await menu_store.upsert("Personal training", 60, menu_id="personal-20")
        stored = (await lifecycle.day_schedule(TUESDAY))[0]
        assert stored.end_time == booking.end_time == time(14, 20)


class TestHolidayStore:
    @pytest.mark.asyncio
    async def test_toggle(self, holiday_store):
        assert await holiday_store.toggle(TUESDAY) is True
        assert await holiday_store.is_closed(TUESDAY)
        assert await holiday_store.toggle(TUESDAY) is False
        assert not await holiday_store.is_closed(TUESDAY)

    @pytest.mark.asyncio
    async def test_list_sorted(self, holiday_store):
        await holiday_store.toggle(date(2026, 3, 1))
        await holiday_store.toggle(TUESDAY)
        assert [h.date for h in await holiday_store.list_all()] == [TUESDAY, date(2026, 3, 1)]
