"""Service menu catalog: admin-managed menus with their durations."""

import logging
import re
from typing import Optional, Protocol

from piste_booking.schemas.booking_schema import ServiceMenu

logger = logging.getLogger(__name__)

DEFAULT_MENUS: list[ServiceMenu] = [
    ServiceMenu(id="personal-20", label="Personal training", duration_minutes=20, price=0),
    ServiceMenu(id="trial-60", label="Free trial session", duration_minutes=60, price=0),
    ServiceMenu(id="entry-30", label="Membership sign-up", duration_minutes=30, price=0),
    ServiceMenu(id="online-30", label="Online personal training", duration_minutes=30, price=0),
    ServiceMenu(id="first-60", label="First personal session", duration_minutes=60, price=0),
]


class MenuStore(Protocol):
    async def get(self, menu_id: str) -> Optional[ServiceMenu]: ...

    async def list_all(self) -> list[ServiceMenu]: ...


def _slugify(label: str, duration: int) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-") or "menu"
    return f"{slug}-{duration}"


class InMemoryMenuStore:
    """Menu catalog kept in insertion order, as the admin screen lists it."""

    def __init__(self, menus: Optional[list[ServiceMenu]] = None) -> None:
        self._menus: dict[str, ServiceMenu] = {}
        for menu in menus or []:
            self._menus[menu.id] = menu

    async def get(self, menu_id: str) -> Optional[ServiceMenu]:
        return self._menus.get(menu_id)

    async def list_all(self) -> list[ServiceMenu]:
        return list(self._menus.values())

    async def upsert(
        self,
        label: str,
        duration_minutes: int,
        menu_id: Optional[str] = None,
        description: Optional[str] = None,
        price: Optional[int] = None,
    ) -> ServiceMenu:
        """Create a menu, or update the one with ``menu_id``.

        Existing bookings keep the end time computed at their creation.
        """
        menu = ServiceMenu(
            id=menu_id or _slugify(label, duration_minutes),
            label=label,
            duration_minutes=duration_minutes,
            description=description,
            price=price,
        )
        action = "updated" if menu.id in self._menus else "created"
        self._menus[menu.id] = menu
        logger.info("Menu %s: %s (%d min)", action, menu.id, menu.duration_minutes)
        return menu

    async def delete(self, menu_id: str) -> bool:
        removed = self._menus.pop(menu_id, None)
        if removed:
            logger.info("Menu deleted: %s", menu_id)
        return removed is not None

    async def seed_defaults(self) -> list[ServiceMenu]:
        """Register the standard menus when the catalog is empty."""
        if self._menus:
            return list(self._menus.values())
        for menu in DEFAULT_MENUS:
            self._menus[menu.id] = menu
        logger.info("Seeded %d default menus", len(DEFAULT_MENUS))
        return list(self._menus.values())


async def menu_label(store: MenuStore, menu_id: str) -> str:
    """Display label for a menu id, falling back to the id itself."""
    menu = await store.get(menu_id)
    return menu.label if menu else menu_id
