import pytest

from frontdesk.seed import seed_meal_products
from frontdesk.services import add_inventory_room
from frontdesk.storage import FrontDeskStore, InMemoryKeyValueStore


@pytest.fixture
def store():
    return FrontDeskStore(InMemoryKeyValueStore())


@pytest.fixture
def hotel(store):
    """Store with the meal products and three inventory rooms."""
    seed_meal_products(store)
    add_inventory_room(store, number="101", name="Standard Double", amenities=["Wi-Fi"])
    add_inventory_room(store, number="102", name="Standard Twin")
    add_inventory_room(store, number="201", name="Superior Suite", amenities=["Café da Manhã", "Wi-Fi"])
    return store
