from piste_booking.stores.booking_store import BookingStore, InMemoryBookingStore
from piste_booking.stores.holiday_store import HolidayStore, InMemoryHolidayStore
from piste_booking.stores.menu_store import (
    DEFAULT_MENUS,
    InMemoryMenuStore,
    MenuStore,
    menu_label,
)

__all__ = [
    "BookingStore", "InMemoryBookingStore",
    "HolidayStore", "InMemoryHolidayStore",
    "MenuStore", "InMemoryMenuStore", "DEFAULT_MENUS", "menu_label",
]
