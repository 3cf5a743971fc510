import pytest
from django.core.management import call_command

from frontdesk.entities import Product
from frontdesk.seed import DEMO_ROOMS, seed_demo_inventory, seed_meal_products
from frontdesk.storage import get_store


def test_seed_keeps_edited_meal_prices(store):
    store.products.save([Product(id="meal_breakfast", name="Breakfast", price=25)])

    result = seed_meal_products(store)
    assert result == {"created": 2, "updated": 0, "skipped": 1}
    assert store.products.load()[0].price == 25

    result = seed_meal_products(store, update_existing=True)
    assert result == {"created": 0, "updated": 1, "skipped": 2}
    assert store.products.load()[0].price == 30


def test_demo_inventory_is_idempotent(store):
    first = seed_demo_inventory(store)
    assert first["rooms"] == len(DEMO_ROOMS)
    assert seed_demo_inventory(store) == {"amenities": 0, "rooms": 0}


@pytest.mark.django_db
def test_seed_command(capsys):
    call_command("seed_frontdesk", "--demo")
    call_command("seed_frontdesk")

    output = capsys.readouterr().out
    assert "created=3" in output
    assert "created=0 updated=0 skipped=3" in output

    store = get_store()
    assert len(store.products.load()) == 3
    assert {room.number for room in store.inventory.load()} == {seed.number for seed in DEMO_ROOMS}
