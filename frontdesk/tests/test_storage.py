import json
import logging

import pytest

from frontdesk.entities import Product
from frontdesk.models import StoredCollection
from frontdesk.storage import (
    DatabaseKeyValueStore,
    FrontDeskStore,
    InMemoryKeyValueStore,
    get_store,
)


def test_missing_collection_loads_empty(store):
    assert store.products.load() == []
    assert store.closed_rooms.load() == []


def test_collection_save_and_load(store):
    products = [Product(id="prod_1", name="Água", price=5)]
    store.products.save(products)

    assert store.products.load() == products
    assert json.loads(store.backend.read("products")) == [{"id": "prod_1", "name": "Água", "price": 5}]


def test_malformed_collection_falls_back_to_empty(caplog):
    backend = InMemoryKeyValueStore({"rooms": "{not json", "products": json.dumps({"id": "x"})})
    store = FrontDeskStore(backend)

    with caplog.at_level(logging.WARNING, logger="frontdesk.storage"):
        assert store.rooms.load() == []
        assert store.products.load() == []

    assert "unreadable" in caplog.text


def test_record_with_missing_fields_falls_back_to_empty():
    backend = InMemoryKeyValueStore({"products": json.dumps([{"id": "prod_1", "name": "Água"}])})
    assert FrontDeskStore(backend).products.load() == []


def test_theme_defaults_and_validates(store):
    assert store.theme.load() == "light"
    store.theme.save("dark")
    assert store.theme.load() == "dark"
    with pytest.raises(ValueError):
        store.theme.save("blue")


def test_invalid_stored_theme_falls_back():
    store = FrontDeskStore(InMemoryKeyValueStore({"theme": '"purple"'}))
    assert store.theme.load() == "light"


@pytest.mark.django_db
def test_database_store_round_trips_through_table():
    store = FrontDeskStore(DatabaseKeyValueStore())
    store.products.save([Product(id="prod_1", name="Água", price=5)])
    store.products.save([Product(id="prod_2", name="Suco", price=8)])

    row = StoredCollection.objects.get(key="products")
    assert row.record_count() == 1
    assert store.products.load() == [Product(id="prod_2", name="Suco", price=8)]


def test_get_store_follows_setting(settings):
    settings.FRONTDESK_STORAGE = "memory"
    assert isinstance(get_store().backend, InMemoryKeyValueStore)

    settings.FRONTDESK_STORAGE = "redis"
    with pytest.raises(ValueError):
        get_store()


def stored_room(**overrides):
    data = {
        "id": "room_1",
        "roomNumber": "101",
        "roomName": "Standard Double",
        "guestName": "Ana Souza",
        "dailyRate": 100,
        "checkInDate": "2024-01-01T00:00:00.000Z",
        "checkOutDate": None,
        "order": [],
        "status": "occupied",
        "amenities": [],
        "mealPackage": {"breakfast": False, "lunch": False, "dinner": False},
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize(
    "overrides",
    [
        {"checkInDate": "not-a-date"},
        {"checkOutDate": "2024-02-31"},
        {"mealPackage": {"breakfast": "false"}},
    ],
)
def test_room_with_malformed_fields_falls_back_to_empty(overrides):
    store = FrontDeskStore(InMemoryKeyValueStore({"rooms": json.dumps([stored_room(**overrides)])}))
    assert store.rooms.load() == []


def test_history_with_malformed_checkout_date_falls_back_to_empty():
    record = {
        **stored_room(),
        "finalCheckOutDate": "yesterday",
        "roomTotal": 100,
        "orderTotal": 0,
        "mealPackageTotal": 0,
        "totalAmount": 100,
        "originalStatus": "occupied",
    }
    store = FrontDeskStore(InMemoryKeyValueStore({"closedRooms": json.dumps([record])}))
    assert store.closed_rooms.load() == []


def test_well_formed_room_loads():
    store = FrontDeskStore(InMemoryKeyValueStore({"rooms": json.dumps([stored_room()])}))
    assert [room.id for room in store.rooms.load()] == ["room_1"]
