from datetime import date, datetime, timezone

import pytest

from frontdesk.entities import (
    ClosedRoom,
    MealPackage,
    OrderItem,
    Package,
    Product,
    Room,
    format_instant,
    parse_instant,
    utc_midnight,
)


def make_room(**overrides):
    data = {
        "id": "room_abc",
        "roomNumber": "101",
        "roomName": "Standard Double",
        "guestName": "Ana Souza",
        "dailyRate": 100,
        "checkInDate": "2024-01-01T00:00:00.000Z",
        "checkOutDate": None,
        "order": [],
        "status": "occupied",
        "amenities": ["Wi-Fi"],
        "mealPackage": {"breakfast": True, "lunch": False, "dinner": False},
    }
    data.update(overrides)
    return data


def test_format_instant_uses_utc_with_milliseconds():
    value = datetime(2024, 3, 5, 14, 7, 9, 123456, tzinfo=timezone.utc)
    assert format_instant(value) == "2024-03-05T14:07:09.123Z"


def test_parse_instant_accepts_plain_dates_and_z_suffix():
    assert parse_instant("2024-01-01") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_instant("2024-01-01T10:30:00.000Z") == datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)


def test_parse_instant_rejects_garbage():
    with pytest.raises(ValueError):
        parse_instant("not a date")


def test_utc_midnight():
    assert utc_midnight(date(2024, 1, 3)) == "2024-01-03T00:00:00.000Z"


def test_meal_package_forces_meals_included_by_amenities():
    package = MealPackage(lunch=True).with_included_meals(["Café da Manhã", "Wi-Fi"])
    assert package == MealPackage(breakfast=True, lunch=True)
    assert package.enabled() == ["breakfast", "lunch"]
    assert package.includes_product("meal_breakfast")
    assert not package.includes_product("meal_dinner")


def test_product_is_meal():
    assert Product(id="meal_lunch", name="Almoço (Diária)", price=50).is_meal
    assert not Product(id="prod_1", name="Water", price=5).is_meal


def test_order_item_line_total():
    item = OrderItem(id="order_1", product_id="prod_1", product_name="Water", product_price=5, quantity=3)
    assert item.line_total == 15


def test_room_without_package_omits_package_fields():
    data = Room.from_dict(make_room()).to_dict()
    assert "packageId" not in data
    assert "packageName" not in data
    assert "packagePrice" not in data
    assert data["checkOutDate"] is None


def test_room_keeps_package_snapshot():
    room = Room.from_dict(make_room(packageId="pkg_1", packageName="Romance", packagePrice=250))
    assert (room.package_id, room.package_name, room.package_price) == ("pkg_1", "Romance", 250)
    assert room.to_dict()["packagePrice"] == 250


def test_room_rejects_unknown_status():
    with pytest.raises(ValueError):
        Room.from_dict(make_room(status="closed"))


def test_room_rejects_non_numeric_rate():
    with pytest.raises(TypeError):
        Room.from_dict(make_room(dailyRate="100"))


def test_package_defaults_optional_fields():
    package = Package.from_dict({"id": "pkg_1", "name": "Romance", "price": 250})
    assert package.description == ""
    assert package.service_ids == ()


def test_closed_room_stores_room_fields_alongside_closure_fields():
    room = Room.from_dict(make_room())
    record = ClosedRoom(
        room=room,
        final_check_out_date="2024-01-03T12:00:00.000Z",
        room_total=200,
        order_total=0,
        meal_package_total=60,
        total_amount=260,
        original_status="occupied",
    )
    data = record.to_dict()
    assert data["roomNumber"] == "101"
    assert data["totalAmount"] == 260

    restored = ClosedRoom.from_dict(data)
    assert restored == record
    assert restored.reopened() == room


@pytest.mark.parametrize("flag", ["false", 0, 1, None])
def test_meal_package_accepts_only_booleans(flag):
    with pytest.raises(TypeError):
        MealPackage.from_dict({"breakfast": flag})


def test_meal_package_missing_flags_are_off():
    assert MealPackage.from_dict({"dinner": True}) == MealPackage(dinner=True)
