from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Union

from django.db import models


class Screen(models.TextChoices):
    HOME = "home", "Home"
    CHECK_ROOM = "checkRoom", "Room status"
    REGISTER_PRODUCT = "registerProduct", "Products"
    MANAGE_ROOMS = "manageRooms", "Room inventory"
    REGISTER_ROOM = "registerRoom", "Check-in / reservation"
    ROOM_DETAIL = "roomDetail", "Room detail"
    CHECKOUT = "checkout", "Checkout"
    HISTORY = "history", "Account history"
    SIMULATOR = "simulator", "Package simulator"
    MANAGE_AMENITIES = "manageAmenities", "Amenities"
    MANAGE_PACKAGES = "managePackages", "Packages"


@dataclass(frozen=True)
class NavigationState:
    screen: str = Screen.HOME.value
    selected_room_id: str | None = None
    check_in_room_number: str | None = None
    checkout_room_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> NavigationState:
        data = data or {}
        screen = data.get("screen")
        return cls(
            screen=screen if screen in Screen.values else Screen.HOME.value,
            selected_room_id=data.get("selectedRoomId"),
            check_in_room_number=data.get("checkInRoomNumber"),
            checkout_room_id=data.get("checkoutRoomId"),
        )

    def to_dict(self) -> dict:
        return {
            "screen": self.screen,
            "selectedRoomId": self.selected_room_id,
            "checkInRoomNumber": self.check_in_room_number,
            "checkoutRoomId": self.checkout_room_id,
        }


@dataclass(frozen=True)
class Navigate:
    screen: str


@dataclass(frozen=True)
class StartCheckIn:
    room_number: str


@dataclass(frozen=True)
class CheckInCompleted:
    pass


@dataclass(frozen=True)
class SelectRoom:
    room_id: str


@dataclass(frozen=True)
class StartCheckout:
    room_id: str


@dataclass(frozen=True)
class CheckoutConfirmed:
    pass


@dataclass(frozen=True)
class CheckoutCancelled:
    pass


@dataclass(frozen=True)
class RoomReopened:
    room_id: str


Action = Union[
    Navigate,
    StartCheckIn,
    CheckInCompleted,
    SelectRoom,
    StartCheckout,
    CheckoutConfirmed,
    CheckoutCancelled,
    RoomReopened,
]


def reduce(state: NavigationState, action: Action) -> NavigationState:
    """
    Next navigation state after ``action``. Selections are carried as explicit
    fields of the state; nothing outside the returned value changes.
    """
    if isinstance(action, Navigate):
        if action.screen not in Screen.values:
            raise ValueError(f"Unknown screen: {action.screen!r}")
        return replace(state, screen=action.screen)
    if isinstance(action, StartCheckIn):
        return replace(state, screen=Screen.REGISTER_ROOM.value, check_in_room_number=action.room_number)
    if isinstance(action, CheckInCompleted):
        return replace(state, screen=Screen.CHECK_ROOM.value, check_in_room_number=None)
    if isinstance(action, SelectRoom):
        return replace(state, screen=Screen.ROOM_DETAIL.value, selected_room_id=action.room_id)
    if isinstance(action, StartCheckout):
        return replace(state, screen=Screen.CHECKOUT.value, checkout_room_id=action.room_id)
    if isinstance(action, CheckoutConfirmed):
        return replace(state, screen=Screen.HISTORY.value, selected_room_id=None, checkout_room_id=None)
    if isinstance(action, CheckoutCancelled):
        return replace(
            state,
            screen=Screen.ROOM_DETAIL.value,
            selected_room_id=state.checkout_room_id,
            checkout_room_id=None,
        )
    if isinstance(action, RoomReopened):
        return replace(state, screen=Screen.ROOM_DETAIL.value, selected_room_id=action.room_id)
    raise TypeError(f"Unknown navigation action: {action!r}")


def resolve(
    state: NavigationState,
    *,
    active_room_ids: Iterable[str],
    available_room_numbers: Iterable[str],
) -> NavigationState:
    """
    Fall back to the room board when the current screen needs a selection
    that is missing or no longer valid.
    """
    active = set(active_room_ids)
    if state.screen == Screen.REGISTER_ROOM and state.check_in_room_number not in set(available_room_numbers):
        return replace(state, screen=Screen.CHECK_ROOM.value, check_in_room_number=None)
    if state.screen == Screen.ROOM_DETAIL and state.selected_room_id not in active:
        return replace(state, screen=Screen.CHECK_ROOM.value, selected_room_id=None)
    if state.screen == Screen.CHECKOUT and state.checkout_room_id not in active:
        return replace(state, screen=Screen.CHECK_ROOM.value, checkout_room_id=None)
    return state


ACTIONS_BY_NAME = {
    "navigate": lambda payload: Navigate(screen=payload["screen"]),
    "start_check_in": lambda payload: StartCheckIn(room_number=payload["roomNumber"]),
    "check_in_completed": lambda payload: CheckInCompleted(),
    "select_room": lambda payload: SelectRoom(room_id=payload["roomId"]),
    "start_checkout": lambda payload: StartCheckout(room_id=payload["roomId"]),
    "checkout_confirmed": lambda payload: CheckoutConfirmed(),
    "checkout_cancelled": lambda payload: CheckoutCancelled(),
    "room_reopened": lambda payload: RoomReopened(room_id=payload["roomId"]),
}


def action_from_payload(payload: dict) -> Action:
    """Build an action from an API payload like ``{"action": "select_room", "roomId": "..."}``."""
    name = payload.get("action")
    if not isinstance(name, str) or name not in ACTIONS_BY_NAME:
        raise ValueError(f"Unknown navigation action: {name!r}")
    try:
        return ACTIONS_BY_NAME[name](payload)
    except KeyError as exc:
        raise ValueError(f"Missing field for {name}: {exc.args[0]}") from None
