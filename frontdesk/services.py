from __future__ import annotations

import logging
import math
import re
import uuid
from dataclasses import dataclass, replace
from datetime import date as date_type
from datetime import datetime
from typing import Any, Iterable

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_date

from .billing import Payment, PaymentLedger, calculate_bill
from .entities import (
    Amenity,
    ClosedRoom,
    HotelRoom,
    MealPackage,
    OrderItem,
    Package,
    PackageService,
    Product,
    Room,
    RoomStatus,
    format_instant,
    parse_instant,
    utc_midnight,
)
from .seed import seed_meal_products
from .storage import FrontDeskStore


logger = logging.getLogger(__name__)


class FrontDeskError(Exception):
    """Base error type for front-desk domain errors."""


class NotFoundError(FrontDeskError):
    """Raised when a referenced record does not exist."""


class RoomUnavailableError(FrontDeskError):
    """Raised when checking into a room that already has an active stay."""


class RoomInUseError(FrontDeskError):
    """Raised when removing an inventory room that an active stay references."""


class ProtectedProductError(FrontDeskError):
    """Raised when removing one of the reserved meal products."""


class InvalidTransitionError(FrontDeskError):
    """Raised when an action is not allowed in the room's current status."""


class ConfirmationRequiredError(FrontDeskError):
    """Raised when an action needs an explicit confirmation before it runs."""


class PaymentIncompleteError(FrontDeskError):
    """Raised when confirming checkout before the bill is fully paid."""


class ReopenBlock(models.TextChoices):
    ROOM_OCCUPIED = "room_occupied", "The room is currently occupied."
    NOT_IN_INVENTORY = "not_in_inventory", "The room no longer exists in the inventory."


class ReopenRejectedError(FrontDeskError):
    """Raised when a closed stay cannot be reopened."""

    def __init__(self, reason: ReopenBlock):
        self.reason = reason
        super().__init__(reason.label)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _clean_name(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool) or value in (None, ""):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_stay_date(value: Any) -> date_type | None:
    """
    Accept a calendar date, a YYYY-MM-DD string or a stored ISO instant.
    Returns None for empty input; raises ValueError for anything unparsable.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return parse_instant(format_instant(value)).date()
    if isinstance(value, date_type):
        return value
    if isinstance(value, str):
        day = parse_date(value)
        if day is not None:
            return day
        return parse_instant(value).date()
    raise ValueError(f"Invalid date: {value!r}")


def _name_taken(records: Iterable[Any], name: str, *, exclude_id: str | None = None) -> bool:
    lowered = name.lower()
    return any(record.name.lower() == lowered and record.id != exclude_id for record in records)


def _natural_key(number: str) -> list:
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", number)]


def _find_room(rooms: list[Room], room_id: str) -> Room:
    room = next((room for room in rooms if room.id == room_id), None)
    if room is None:
        raise NotFoundError("Room not found.")
    return room


def _replace_room(rooms: list[Room], updated: Room) -> list[Room]:
    return [updated if room.id == updated.id else room for room in rooms]


# ==========================
# Catalog
# ==========================


def ensure_default_meal_products(store: FrontDeskStore) -> int:
    """Add any reserved meal product missing from the catalog; returns how many were added."""
    return seed_meal_products(store)["created"]


def _validate_product(products: list[Product], name: Any, price: Any, *, exclude_id: str | None = None):
    clean_name = _clean_name(name)
    clean_price = _parse_number(price)
    if not clean_name or clean_price is None or clean_price <= 0:
        raise ValidationError({"__all__": "Enter a valid name and a positive price."})
    if _name_taken(products, clean_name, exclude_id=exclude_id):
        raise ValidationError({"name": "A product with this name already exists."})
    return clean_name, clean_price


def add_product(store: FrontDeskStore, *, name: str, price: Any) -> Product:
    products = store.products.load()
    clean_name, clean_price = _validate_product(products, name, price)
    product = Product(id=_new_id("prod"), name=clean_name, price=clean_price)
    store.products.save([*products, product])
    return product


def update_product(store: FrontDeskStore, *, product_id: str, name: str, price: Any) -> Product:
    """
    Rename or reprice a product. Order lines already on a room keep the name
    and price they were added with.
    """
    products = store.products.load()
    current = next((product for product in products if product.id == product_id), None)
    if current is None:
        raise NotFoundError("Product not found.")
    clean_name, clean_price = _validate_product(products, name, price, exclude_id=product_id)
    updated = replace(current, name=clean_name, price=clean_price)
    store.products.save([updated if product.id == product_id else product for product in products])
    return updated


def remove_product(store: FrontDeskStore, *, product_id: str) -> None:
    products = store.products.load()
    product = next((product for product in products if product.id == product_id), None)
    if product is None:
        raise NotFoundError("Product not found.")
    if product.is_meal:
        raise ProtectedProductError("The default meal products cannot be removed.")
    store.products.save([p for p in products if p.id != product_id])


def add_amenity(store: FrontDeskStore, *, name: str) -> Amenity:
    amenities = store.amenities.load()
    clean_name = _clean_name(name)
    if not clean_name:
        raise ValidationError({"name": "The amenity name cannot be blank."})
    if _name_taken(amenities, clean_name):
        raise ValidationError({"name": "An amenity with this name already exists."})
    amenity = Amenity(id=_new_id("amenity"), name=clean_name)
    store.amenities.save([*amenities, amenity])
    return amenity


def remove_amenity(store: FrontDeskStore, *, amenity_id: str) -> None:
    amenities = store.amenities.load()
    if not any(amenity.id == amenity_id for amenity in amenities):
        raise NotFoundError("Amenity not found.")
    store.amenities.save([amenity for amenity in amenities if amenity.id != amenity_id])


def add_package_service(store: FrontDeskStore, *, name: str) -> PackageService:
    services = store.package_services.load()
    clean_name = _clean_name(name)
    if not clean_name:
        raise ValidationError({"name": "The service name cannot be blank."})
    if _name_taken(services, clean_name):
        raise ValidationError({"name": "A service with this name already exists."})
    service = PackageService(id=_new_id("ps"), name=clean_name)
    store.package_services.save([*services, service])
    return service


def remove_package_service(store: FrontDeskStore, *, service_id: str) -> None:
    services = store.package_services.load()
    if not any(service.id == service_id for service in services):
        raise NotFoundError("Service not found.")
    store.package_services.save([service for service in services if service.id != service_id])


@dataclass(frozen=True)
class PackageInput:
    name: str
    price: Any
    description: str = ""
    service_ids: tuple[str, ...] = ()


def save_package(store: FrontDeskStore, *, data: PackageInput, package_id: str | None = None) -> Package:
    """
    Create a package, or update the package with ``package_id``.
    Package names are unique among the other packages, ignoring case.
    """
    packages = store.packages.load()
    clean_name = _clean_name(data.name)
    clean_price = _parse_number(data.price)
    if not clean_name or clean_price is None or clean_price < 0:
        raise ValidationError({"__all__": "Enter a valid name and price."})
    if _name_taken(packages, clean_name, exclude_id=package_id):
        raise ValidationError({"name": "A package with this name already exists."})

    known_services = {service.id for service in store.package_services.load()}
    unknown = [service_id for service_id in data.service_ids if service_id not in known_services]
    if unknown:
        raise ValidationError({"service_ids": f"Unknown services: {', '.join(unknown)}."})

    package = Package(
        id=package_id or _new_id("pkg"),
        name=clean_name,
        price=clean_price,
        description=_clean_name(data.description),
        service_ids=tuple(data.service_ids),
    )
    if package_id is None:
        store.packages.save([*packages, package])
    else:
        if not any(existing.id == package_id for existing in packages):
            raise NotFoundError("Package not found.")
        store.packages.save([package if existing.id == package_id else existing for existing in packages])
    return package


def remove_package(store: FrontDeskStore, *, package_id: str) -> None:
    packages = store.packages.load()
    if not any(package.id == package_id for package in packages):
        raise NotFoundError("Package not found.")
    store.packages.save([package for package in packages if package.id != package_id])


# ==========================
# Inventory
# ==========================


def add_inventory_room(
    store: FrontDeskStore,
    *,
    number: str,
    name: str = "",
    amenities: Iterable[str] = (),
) -> HotelRoom:
    inventory = store.inventory.load()
    clean_number = _clean_name(number)
    if not clean_number:
        raise ValidationError({"number": "The room number is required."})
    if any(room.number == clean_number for room in inventory):
        raise ValidationError({"number": "A room with this number already exists in the inventory."})
    room = HotelRoom(
        id=_new_id("inv"),
        number=clean_number,
        name=_clean_name(name) or f"Room {clean_number}",
        amenities=tuple(amenities),
    )
    store.inventory.save([*inventory, room])
    return room


def remove_inventory_room(store: FrontDeskStore, *, number: str, confirmed: bool = False) -> None:
    """
    Delete a room from the inventory. Without ``confirmed`` nothing changes and
    ConfirmationRequiredError asks the caller to confirm first.
    """
    inventory = store.inventory.load()
    if not any(room.number == number for room in inventory):
        raise NotFoundError("Room not found in the inventory.")
    if any(room.room_number == number for room in store.rooms.load()):
        raise RoomInUseError(f"Room {number} is occupied or reserved and cannot be removed.")
    if not confirmed:
        raise ConfirmationRequiredError(f"Remove room {number} from the inventory?")
    store.inventory.save([room for room in inventory if room.number != number])
    logger.info("Removed inventory room %s", number)


@dataclass(frozen=True)
class BoardEntry:
    room_number: str
    room_name: str
    status: str
    guest_name: str = ""
    room_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "roomNumber": self.room_number,
            "roomName": self.room_name,
            "status": self.status,
            "guestName": self.guest_name,
            "roomId": self.room_id,
        }


BOARD_FILTERS = ("all", RoomStatus.OCCUPIED, RoomStatus.RESERVED, RoomStatus.AVAILABLE)


def room_board(store: FrontDeskStore, status_filter: str = "all") -> list[BoardEntry]:
    """
    Active stays plus every inventory room without one (shown as available),
    in natural room-number order.
    """
    if status_filter not in BOARD_FILTERS:
        raise ValidationError({"filter": "Invalid room filter."})
    rooms = store.rooms.load()
    active_numbers = {room.room_number for room in rooms}
    entries = [
        BoardEntry(
            room_number=room.room_number,
            room_name=room.room_name,
            status=room.status,
            guest_name=room.guest_name,
            room_id=room.id,
        )
        for room in rooms
    ]
    entries.extend(
        BoardEntry(room_number=hotel_room.number, room_name=hotel_room.name, status=RoomStatus.AVAILABLE)
        for hotel_room in store.inventory.load()
        if hotel_room.number not in active_numbers
    )
    entries.sort(key=lambda entry: _natural_key(entry.room_number))
    if status_filter == "all":
        return entries
    return [entry for entry in entries if entry.status == status_filter]


# ==========================
# Stays
# ==========================


@dataclass(frozen=True)
class CheckInInput:
    room_number: str
    guest_name: str
    daily_rate: Any
    check_in_date: Any
    check_out_date: Any = None
    meal_package: MealPackage = MealPackage()
    package_id: str | None = None


@dataclass(frozen=True)
class StayUpdate:
    guest_name: str
    daily_rate: Any
    check_in_date: Any
    check_out_date: Any
    meal_package: MealPackage
    amenities: tuple[str, ...]


def _validate_stay(guest_name: Any, daily_rate: Any, check_in_date: Any, check_out_date: Any):
    """
    Validate the guest/rate/date fields shared by check-in and stay edits.
    Returns the cleaned values as (guest_name, daily_rate, check_in, check_out).
    """
    errors: dict[str, str] = {}

    clean_guest = _clean_name(guest_name)
    if not clean_guest:
        errors["guest_name"] = "The guest name is required."

    clean_rate = _parse_number(daily_rate)
    if clean_rate is None or clean_rate <= 0:
        errors["daily_rate"] = "The daily rate must be greater than zero."

    check_in = check_out = None
    try:
        check_in = _parse_stay_date(check_in_date)
    except ValueError:
        errors["check_in_date"] = "Enter a valid check-in date."
    else:
        if check_in is None:
            errors["check_in_date"] = "The check-in date is required."
    try:
        check_out = _parse_stay_date(check_out_date)
    except ValueError:
        errors["check_out_date"] = "Enter a valid check-out date."

    if check_in and check_out and check_out < check_in:
        errors["check_out_date"] = "The check-out date cannot be before the check-in date."

    if errors:
        raise ValidationError(errors)
    return clean_guest, clean_rate, check_in, check_out


def check_in(store: FrontDeskStore, *, data: CheckInInput) -> Room:
    """
    Open a stay in an available inventory room. New stays start as reserved.

    Meals the room's amenities already include are always switched on, and
    the room's amenities and the chosen package are copied onto the stay.
    """
    guest_name, daily_rate, check_in_day, check_out_day = _validate_stay(
        data.guest_name, data.daily_rate, data.check_in_date, data.check_out_date
    )

    hotel_room = next((room for room in store.inventory.load() if room.number == data.room_number), None)
    if hotel_room is None:
        raise NotFoundError("Room not found in the inventory.")

    rooms = store.rooms.load()
    if any(room.room_number == hotel_room.number for room in rooms):
        raise RoomUnavailableError(f"Room {hotel_room.number} is already occupied or reserved.")

    package = None
    if data.package_id:
        package = next((pkg for pkg in store.packages.load() if pkg.id == data.package_id), None)
        if package is None:
            raise ValidationError({"package_id": "Package not found."})

    room = Room(
        id=_new_id("room"),
        room_number=hotel_room.number,
        room_name=hotel_room.name,
        guest_name=guest_name,
        daily_rate=daily_rate,
        check_in_date=utc_midnight(check_in_day),
        check_out_date=utc_midnight(check_out_day) if check_out_day else None,
        status=RoomStatus.RESERVED.value,
        amenities=hotel_room.amenities,
        meal_package=data.meal_package.with_included_meals(hotel_room.amenities),
        package_id=package.id if package else None,
        package_name=package.name if package else None,
        package_price=package.price if package else None,
    )
    store.rooms.save([*rooms, room])
    logger.info("Reserved room %s for %s (%s)", room.room_number, room.guest_name, room.id)
    return room


def get_room(store: FrontDeskStore, *, room_id: str) -> Room:
    return _find_room(store.rooms.load(), room_id)


def confirm_check_in(store: FrontDeskStore, *, room_id: str) -> Room:
    rooms = store.rooms.load()
    room = _find_room(rooms, room_id)
    if room.status != RoomStatus.RESERVED:
        raise InvalidTransitionError("Only reserved rooms can be checked in.")
    occupied = replace(room, status=RoomStatus.OCCUPIED.value)
    store.rooms.save(_replace_room(rooms, occupied))
    logger.info("Checked in room %s (%s)", room.room_number, room.id)
    return occupied


def cancel_reservation(store: FrontDeskStore, *, room_id: str, confirmed: bool = False) -> None:
    """
    Cancel (delete) a reservation. Without ``confirmed`` nothing changes and
    ConfirmationRequiredError asks the caller to confirm first.
    """
    rooms = store.rooms.load()
    room = _find_room(rooms, room_id)
    if room.status != RoomStatus.RESERVED:
        raise InvalidTransitionError("Only reservations can be cancelled.")
    if not confirmed:
        raise ConfirmationRequiredError(
            f"Cancel the reservation of room {room.room_number} for {room.guest_name}? This cannot be undone."
        )
    store.rooms.save([r for r in rooms if r.id != room_id])
    logger.info("Cancelled reservation for room %s (%s)", room.room_number, room.id)


def update_stay(store: FrontDeskStore, *, room_id: str, data: StayUpdate) -> Room:
    rooms = store.rooms.load()
    room = _find_room(rooms, room_id)
    guest_name, daily_rate, check_in_day, check_out_day = _validate_stay(
        data.guest_name, data.daily_rate, data.check_in_date, data.check_out_date
    )
    amenities = tuple(data.amenities)
    updated = replace(
        room,
        guest_name=guest_name,
        daily_rate=daily_rate,
        check_in_date=utc_midnight(check_in_day),
        check_out_date=utc_midnight(check_out_day) if check_out_day else None,
        amenities=amenities,
        meal_package=data.meal_package.with_included_meals(amenities),
    )
    store.rooms.save(_replace_room(rooms, updated))
    return updated


def add_order_item(
    store: FrontDeskStore,
    *,
    room_id: str,
    product_id: str,
    confirm_duplicate: bool = False,
) -> Room:
    """
    Add one unit of a product to a room's tab.

    A product already on the tab gets its quantity bumped; otherwise a new
    line is added with the product's current name and price. Adding a meal
    the room's meal package already covers needs ``confirm_duplicate``.
    """
    rooms = store.rooms.load()
    room = _find_room(rooms, room_id)
    if room.status != RoomStatus.OCCUPIED:
        raise InvalidTransitionError("Orders can only be added to occupied rooms.")

    product = next((product for product in store.products.load() if product.id == product_id), None)
    if product is None:
        raise NotFoundError("Product not found.")

    if room.meal_package.includes_product(product.id) and not confirm_duplicate:
        raise ConfirmationRequiredError(
            f"{product.name} is already included in the guest's meal package. Add it as an extra charge?"
        )

    if any(item.product_id == product.id for item in room.order):
        order = tuple(
            replace(item, quantity=item.quantity + 1) if item.product_id == product.id else item
            for item in room.order
        )
    else:
        line = OrderItem(
            id=_new_id("order"),
            product_id=product.id,
            product_name=product.name,
            product_price=product.price,
            quantity=1,
        )
        order = (*room.order, line)

    updated = replace(room, order=order)
    store.rooms.save(_replace_room(rooms, updated))
    return updated


def change_order_quantity(store: FrontDeskStore, *, room_id: str, product_id: str, delta: int) -> Room:
    rooms = store.rooms.load()
    room = _find_room(rooms, room_id)
    if not any(item.product_id == product_id for item in room.order):
        raise NotFoundError("Order line not found.")
    order = tuple(
        item
        for item in (
            replace(item, quantity=max(0, item.quantity + delta)) if item.product_id == product_id else item
            for item in room.order
        )
        if item.quantity >= 1
    )
    updated = replace(room, order=order)
    store.rooms.save(_replace_room(rooms, updated))
    return updated


def checkout(
    store: FrontDeskStore,
    *,
    room_id: str,
    payments: Iterable[Payment],
    at: datetime | None = None,
) -> ClosedRoom:
    """
    Close an occupied stay once its bill is fully paid.

    The bill is computed as of ``at`` (defaults to now) and frozen into the
    history record; it is never recomputed afterwards.
    """
    at = at or timezone.now()
    rooms = store.rooms.load()
    room = _find_room(rooms, room_id)
    if room.status != RoomStatus.OCCUPIED:
        raise InvalidTransitionError("Only occupied rooms can be checked out.")

    bill = calculate_bill(room, store.products.load(), at)
    ledger = PaymentLedger(bill.total_amount, payments)
    if not ledger.is_fully_paid:
        raise PaymentIncompleteError(f"The bill is not fully paid; {ledger.remaining:.2f} remaining.")

    record = ClosedRoom(
        room=room,
        final_check_out_date=format_instant(at),
        room_total=bill.room_total,
        order_total=bill.order_total,
        meal_package_total=bill.meal_package_total,
        total_amount=bill.total_amount,
        original_status=room.status,
    )
    history = sorted(
        [record, *store.closed_rooms.load()],
        key=lambda closed: parse_instant(closed.final_check_out_date),
        reverse=True,
    )
    with store.atomic():
        store.closed_rooms.save(history)
        store.rooms.save([r for r in rooms if r.id != room_id])
    logger.info(
        "Checked out room %s (%s): total %.2f, paid %.2f", room.room_number, room.id, bill.total_amount, ledger.total_paid
    )
    return record


# ==========================
# History
# ==========================


def reopen_block(record: ClosedRoom, rooms: Iterable[Room], inventory: Iterable[HotelRoom]) -> ReopenBlock | None:
    """Why ``record`` cannot be reopened right now, or None if it can."""
    if any(room.room_number == record.room_number for room in rooms):
        return ReopenBlock.ROOM_OCCUPIED
    if not any(hotel_room.number == record.room_number for hotel_room in inventory):
        return ReopenBlock.NOT_IN_INVENTORY
    return None


def reopen(store: FrontDeskStore, *, closed_room_id: str, confirmed: bool = False) -> Room:
    """
    Move a closed stay back to the active rooms with its original status.
    The billing snapshot is discarded; active rooms are always billed live.

    Without ``confirmed`` nothing changes and ConfirmationRequiredError asks
    the caller to confirm first.
    """
    history = store.closed_rooms.load()
    record = next((closed for closed in history if closed.id == closed_room_id), None)
    if record is None:
        raise NotFoundError("Closed account not found.")

    rooms = store.rooms.load()
    block = reopen_block(record, rooms, store.inventory.load())
    if block is not None:
        raise ReopenRejectedError(block)
    if not confirmed:
        raise ConfirmationRequiredError(
            f"Reopen the account of room {record.room_number} for {record.guest_name}?"
        )

    room = record.reopened()
    with store.atomic():
        store.rooms.save([*rooms, room])
        store.closed_rooms.save([closed for closed in history if closed.id != closed_room_id])
    logger.info("Reopened room %s (%s)", room.room_number, room.id)
    return room


def search_history(store: FrontDeskStore, term: str = "") -> list[ClosedRoom]:
    term = (term or "").strip()
    history = store.closed_rooms.load()
    if not term:
        return history
    lowered = term.lower()
    return [record for record in history if lowered in record.guest_name.lower() or term in record.room_number]


def clear_history(store: FrontDeskStore) -> int:
    count = len(store.closed_rooms.load())
    store.closed_rooms.save([])
    logger.info("Cleared %d closed accounts from history", count)
    return count
