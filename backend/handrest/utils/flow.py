"""Customer booking flow: screen state machine and add-on selection.

The customer app walks through a fixed sequence of screens:

    splash -> home -> packages -> property_details -> addons -> booking -> confirmation

`BookingFlow` keeps the selections made along the way and refuses
transitions invoked from the wrong screen. `back()` always returns to
the screen immediately preceding the current one and drops whatever was
chosen on the screens it leaves behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional


class Screen(str, Enum):
    SPLASH = "splash"
    HOME = "home"
    PACKAGES = "packages"
    PROPERTY_DETAILS = "property_details"
    ADDONS = "addons"
    BOOKING = "booking"
    CONFIRMATION = "confirmation"


SCREEN_ORDER = [
    Screen.SPLASH,
    Screen.HOME,
    Screen.PACKAGES,
    Screen.PROPERTY_DETAILS,
    Screen.ADDONS,
    Screen.BOOKING,
    Screen.CONFIRMATION,
]

SCREEN_TITLES = {
    Screen.SPLASH: "",
    Screen.HOME: "HandRest",
    Screen.PACKAGES: "Packages",
    Screen.PROPERTY_DETAILS: "Property Details",
    Screen.ADDONS: "Add-on Services",
    Screen.BOOKING: "Book Service",
    Screen.CONFIRMATION: "Booking Confirmed",
}


class FlowError(Exception):
    """Raised when a transition is not allowed from the current screen."""


def previous_screen(screen: Screen) -> Screen:
    """Return the screen before `screen`; splash is its own predecessor."""
    idx = SCREEN_ORDER.index(screen)
    return SCREEN_ORDER[max(0, idx - 1)]


class AddonSelection:
    """Set of selected add-on ids with price totals."""

    def __init__(self, selected: Optional[Iterable[int]] = None):
        self._selected: set[int] = set(selected or ())

    def toggle(self, addon_id: int) -> bool:
        """Flip membership of `addon_id`; returns True if now selected."""
        if addon_id in self._selected:
            self._selected.discard(addon_id)
            return False
        self._selected.add(addon_id)
        return True

    def is_selected(self, addon_id: int) -> bool:
        return addon_id in self._selected

    def ids(self) -> list[int]:
        return sorted(self._selected)

    def clear(self) -> None:
        self._selected.clear()

    def __len__(self) -> int:
        return len(self._selected)

    def addon_total(self, addons) -> float:
        """Sum the prices of the selected entries in `addons`.

        `addons` is any iterable of objects with `id` and `price`; ids that
        are selected but missing from `addons` contribute nothing.
        """
        return sum(a.price for a in addons if a.id in self._selected)

    def grand_total(self, base_price: float, addons) -> float:
        return base_price + self.addon_total(addons)


@dataclass
class BookingFlow:
    """Selections and current screen of one customer's booking pass."""

    screen: Screen = Screen.SPLASH
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    package_id: Optional[int] = None
    package_price: Optional[float] = None
    property_details: Optional[dict] = None
    selection: AddonSelection = field(default_factory=AddonSelection)
    addon_prices: dict[int, float] = field(default_factory=dict)
    selected_addons: list[int] = field(default_factory=list)
    booking_number: Optional[str] = None
    submitting: bool = False

    @property
    def addon_price(self) -> float:
        """Total of the add-ons currently selected, at the prices seen when picked."""
        return sum(self.addon_prices.get(i, 0.0) for i in self.selection.ids())

    def _expect(self, *screens: Screen) -> None:
        if self.screen not in screens:
            allowed = ", ".join(s.value for s in screens)
            raise FlowError(f"not allowed on screen '{self.screen.value}' (expected {allowed})")

    def complete_splash(self) -> None:
        self._expect(Screen.SPLASH)
        self.screen = Screen.HOME

    def select_category(self, category_id: int, name: Optional[str] = None) -> None:
        self._expect(Screen.HOME)
        self.category_id = category_id
        self.category_name = name
        self.screen = Screen.PACKAGES

    def select_package(self, package_id: int, price: float) -> None:
        self._expect(Screen.PACKAGES)
        self.package_id = package_id
        self.package_price = price
        self.screen = Screen.PROPERTY_DETAILS

    def submit_property(self, details: dict) -> None:
        self._expect(Screen.PROPERTY_DETAILS)
        self.property_details = dict(details)
        self.screen = Screen.ADDONS

    def request_upgrade(self) -> None:
        """Return to the package list to pick a higher tier."""
        self._expect(Screen.PROPERTY_DETAILS)
        self._clear_package()
        self.screen = Screen.PACKAGES

    def toggle_addon(self, addon_id: int, price: float) -> bool:
        self._expect(Screen.ADDONS)
        selected = self.selection.toggle(addon_id)
        if selected:
            self.addon_prices[addon_id] = price
        else:
            self.addon_prices.pop(addon_id, None)
        return selected

    def submit_addons(self, addons) -> None:
        """Freeze the selected ids at current catalog prices, then move to booking."""
        self._expect(Screen.ADDONS)
        self.selected_addons = self.selection.ids()
        self.addon_prices = {a.id: a.price for a in addons if self.selection.is_selected(a.id)}
        self.screen = Screen.BOOKING

    def quick_clean(self, category_id: Optional[int], package_id: Optional[int] = None,
                    price: Optional[float] = None, category_name: Optional[str] = None) -> None:
        """Jump straight to booking with the basic package when it exists.

        Without a package the flow lands on the package list of
        `category_id` instead.
        """
        self._expect(Screen.HOME)
        self.category_id = category_id
        self.category_name = category_name
        if package_id is not None:
            self.package_id = package_id
            self.package_price = price
            self.screen = Screen.BOOKING
            return
        self.screen = Screen.PACKAGES

    def begin_submit(self) -> dict:
        """Claim the flow for one booking write and return what to book.

        Only one claim may be open at a time; a second submit, or `back`,
        raises `FlowError` until `confirm` or `abort_submit` releases it.
        """
        self._expect(Screen.BOOKING)
        if self.package_id is None:
            raise FlowError("no package selected")
        if self.submitting:
            raise FlowError("booking is already being submitted")
        self.submitting = True
        return {
            "package_id": self.package_id,
            "addon_ids": list(self.selected_addons),
            "property_details": dict(self.property_details or {}),
        }

    def abort_submit(self) -> None:
        self.submitting = False

    def confirm(self, booking_number: str) -> None:
        self._expect(Screen.BOOKING)
        if self.package_id is None:
            raise FlowError("no package selected")
        self.booking_number = booking_number
        self.submitting = False
        self.screen = Screen.CONFIRMATION

    def back(self) -> Screen:
        if self.submitting:
            raise FlowError("booking is being submitted")
        target = previous_screen(self.screen)
        if target == Screen.HOME:
            self.category_id = None
            self.category_name = None
            self._clear_package()
        elif target == Screen.PACKAGES:
            self._clear_package()
        elif target == Screen.ADDONS:
            self.selected_addons = []
        elif target == Screen.BOOKING:
            self.booking_number = None
        self.screen = target
        return target

    def restart(self) -> None:
        """Start another booking from the home screen."""
        self._expect(Screen.CONFIRMATION)
        self.category_id = None
        self.category_name = None
        self._clear_package()
        self.booking_number = None
        self.screen = Screen.HOME

    def _clear_package(self) -> None:
        self.package_id = None
        self.package_price = None
        self.property_details = None
        self.selection.clear()
        self.addon_prices = {}
        self.selected_addons = []

    def title(self) -> str:
        if self.screen == Screen.PACKAGES and self.category_name:
            return self.category_name
        return SCREEN_TITLES[self.screen]

    def to_dict(self) -> dict:
        base = self.package_price or 0.0
        addon_price = self.addon_price
        return {
            "screen": self.screen.value,
            "title": self.title(),
            "can_go_back": self.screen not in (Screen.SPLASH, Screen.HOME),
            "category_id": self.category_id,
            "category_name": self.category_name,
            "package_id": self.package_id,
            "property_details": self.property_details,
            "selected_addons": self.selection.ids(),
            "addon_price": addon_price,
            "base_price": base,
            "total_price": base + addon_price,
            "booking_number": self.booking_number,
        }
