from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date as date_type
from datetime import datetime, time
from datetime import timezone as dt_timezone
from typing import Any

from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


MEAL_PRODUCT_IDS: dict[str, str] = {
    "breakfast": "meal_breakfast",
    "lunch": "meal_lunch",
    "dinner": "meal_dinner",
}

# Room amenities that already include a daily meal.
MEAL_AMENITIES: dict[str, str] = {
    "breakfast": "Café da Manhã",
    "lunch": "Almoço",
    "dinner": "Jantar",
}


class RoomStatus(models.TextChoices):
    AVAILABLE = "available", "Available"
    RESERVED = "reserved", "Reserved"
    OCCUPIED = "occupied", "Occupied"


ACTIVE_STATUSES = (RoomStatus.RESERVED.value, RoomStatus.OCCUPIED.value)


def format_instant(value: datetime) -> str:
    """
    Serialize an instant as a UTC ISO string with millisecond precision,
    e.g. ``2024-01-01T00:00:00.000Z``.
    """
    if timezone.is_naive(value):
        value = value.replace(tzinfo=dt_timezone.utc)
    value = value.astimezone(dt_timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def parse_instant(value: str) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        day = parse_date(value)
        if day is None:
            raise ValueError(f"Invalid ISO date: {value!r}")
        parsed = datetime.combine(day, time.min)
    if timezone.is_naive(parsed):
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed.astimezone(dt_timezone.utc)


def utc_midnight(day: date_type) -> str:
    return format_instant(datetime.combine(day, time.min, tzinfo=dt_timezone.utc))


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a number, got {value!r}")
    return value


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected a string, got {value!r}")
    return value


def _instant_text(value: Any) -> str:
    """A stored ISO date string; raises ValueError when it cannot be parsed."""
    parse_instant(_text(value))
    return value


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"Expected true or false, got {value!r}")
    return value


def _text_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise TypeError(f"Expected a list, got {value!r}")
    return tuple(_text(item) for item in value)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float

    @property
    def is_meal(self) -> bool:
        return self.id in MEAL_PRODUCT_IDS.values()

    @classmethod
    def from_dict(cls, data: dict) -> Product:
        return cls(id=_text(data["id"]), name=_text(data["name"]), price=_number(data["price"]))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": self.price}


@dataclass(frozen=True)
class Amenity:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> Amenity:
        return cls(id=_text(data["id"]), name=_text(data["name"]))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class PackageService:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> PackageService:
        return cls(id=_text(data["id"]), name=_text(data["name"]))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Package:
    id: str
    name: str
    price: float
    description: str = ""
    service_ids: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> Package:
        return cls(
            id=_text(data["id"]),
            name=_text(data["name"]),
            price=_number(data["price"]),
            description=_text(data.get("description", "")),
            service_ids=_text_list(data.get("serviceIds", [])),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "serviceIds": list(self.service_ids),
        }


@dataclass(frozen=True)
class HotelRoom:
    """An inventory room, independent of any stay."""

    id: str
    number: str
    name: str
    amenities: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> HotelRoom:
        return cls(
            id=_text(data["id"]),
            number=_text(data["number"]),
            name=_text(data["name"]),
            amenities=_text_list(data.get("amenities", [])),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "number": self.number, "name": self.name, "amenities": list(self.amenities)}


@dataclass(frozen=True)
class OrderItem:
    id: str
    product_id: str
    product_name: str
    product_price: float
    quantity: int

    @property
    def line_total(self) -> float:
        return self.product_price * self.quantity

    @classmethod
    def from_dict(cls, data: dict) -> OrderItem:
        return cls(
            id=_text(data["id"]),
            product_id=_text(data["productId"]),
            product_name=_text(data["productName"]),
            product_price=_number(data["productPrice"]),
            quantity=int(_number(data["quantity"])),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "productPrice": self.product_price,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class MealPackage:
    breakfast: bool = False
    lunch: bool = False
    dinner: bool = False

    def enabled(self) -> list[str]:
        return [meal for meal in MEAL_PRODUCT_IDS if getattr(self, meal)]

    def includes_product(self, product_id: str) -> bool:
        return any(MEAL_PRODUCT_IDS[meal] == product_id for meal in self.enabled())

    def with_included_meals(self, amenities: tuple[str, ...] | list[str]) -> MealPackage:
        """
        Force on every meal the room's amenities already include.
        """
        forced = {meal: True for meal, amenity in MEAL_AMENITIES.items() if amenity in amenities}
        return replace(self, **forced) if forced else self

    @classmethod
    def from_dict(cls, data: dict) -> MealPackage:
        if not isinstance(data, dict):
            raise TypeError(f"Expected a meal package object, got {data!r}")
        return cls(
            breakfast=_flag(data.get("breakfast", False)),
            lunch=_flag(data.get("lunch", False)),
            dinner=_flag(data.get("dinner", False)),
        )

    def to_dict(self) -> dict:
        return {"breakfast": self.breakfast, "lunch": self.lunch, "dinner": self.dinner}


@dataclass(frozen=True)
class Room:
    """An active stay (reserved or occupied) in one inventory room."""

    id: str
    room_number: str
    room_name: str
    guest_name: str
    daily_rate: float
    check_in_date: str
    check_out_date: str | None
    status: str
    order: tuple[OrderItem, ...] = ()
    amenities: tuple[str, ...] = ()
    meal_package: MealPackage = field(default_factory=MealPackage)
    package_id: str | None = None
    package_name: str | None = None
    package_price: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Room:
        status = _text(data["status"])
        if status not in ACTIVE_STATUSES:
            raise ValueError(f"Invalid room status: {status!r}")
        order = data.get("order", [])
        if not isinstance(order, list):
            raise TypeError(f"Expected an order list, got {order!r}")
        check_out = data.get("checkOutDate")
        package_price = data.get("packagePrice")
        return cls(
            id=_text(data["id"]),
            room_number=_text(data["roomNumber"]),
            room_name=_text(data["roomName"]),
            guest_name=_text(data["guestName"]),
            daily_rate=_number(data["dailyRate"]),
            check_in_date=_instant_text(data["checkInDate"]),
            check_out_date=_instant_text(check_out) if check_out is not None else None,
            status=status,
            order=tuple(OrderItem.from_dict(item) for item in order),
            amenities=_text_list(data.get("amenities", [])),
            meal_package=MealPackage.from_dict(data.get("mealPackage", {})),
            package_id=data.get("packageId"),
            package_name=data.get("packageName"),
            package_price=_number(package_price) if package_price is not None else None,
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "roomNumber": self.room_number,
            "roomName": self.room_name,
            "guestName": self.guest_name,
            "dailyRate": self.daily_rate,
            "checkInDate": self.check_in_date,
            "checkOutDate": self.check_out_date,
            "order": [item.to_dict() for item in self.order],
            "status": self.status,
            "amenities": list(self.amenities),
            "mealPackage": self.meal_package.to_dict(),
        }
        # Unset package fields are left out of the stored record entirely.
        if self.package_id is not None:
            data["packageId"] = self.package_id
        if self.package_name is not None:
            data["packageName"] = self.package_name
        if self.package_price is not None:
            data["packagePrice"] = self.package_price
        return data


CLOSED_ROOM_FIELDS = (
    "finalCheckOutDate",
    "roomTotal",
    "orderTotal",
    "mealPackageTotal",
    "totalAmount",
    "originalStatus",
)


@dataclass(frozen=True)
class ClosedRoom:
    """
    Immutable billing record of a checked-out stay.

    The stored shape is the room's own record with the closure fields added
    alongside, so reopening only has to drop those fields again.
    """

    room: Room
    final_check_out_date: str
    room_total: float
    order_total: float
    meal_package_total: float
    total_amount: float
    original_status: str

    @property
    def id(self) -> str:
        return self.room.id

    @property
    def room_number(self) -> str:
        return self.room.room_number

    @property
    def guest_name(self) -> str:
        return self.room.guest_name

    def reopened(self) -> Room:
        return replace(self.room, status=self.original_status)

    @classmethod
    def from_dict(cls, data: dict) -> ClosedRoom:
        original_status = _text(data["originalStatus"])
        if original_status not in ACTIVE_STATUSES:
            raise ValueError(f"Invalid original status: {original_status!r}")
        room_data = {key: value for key, value in data.items() if key not in CLOSED_ROOM_FIELDS}
        return cls(
            room=Room.from_dict(room_data),
            final_check_out_date=_instant_text(data["finalCheckOutDate"]),
            room_total=_number(data["roomTotal"]),
            order_total=_number(data["orderTotal"]),
            meal_package_total=_number(data["mealPackageTotal"]),
            total_amount=_number(data["totalAmount"]),
            original_status=original_status,
        )

    def to_dict(self) -> dict:
        return {
            **self.room.to_dict(),
            "finalCheckOutDate": self.final_check_out_date,
            "roomTotal": self.room_total,
            "orderTotal": self.order_total,
            "mealPackageTotal": self.meal_package_total,
            "totalAmount": self.total_amount,
            "originalStatus": self.original_status,
        }
