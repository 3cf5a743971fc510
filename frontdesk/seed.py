from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from .entities import Amenity, HotelRoom, Product
from .storage import FrontDeskStore


@dataclass(frozen=True)
class ProductSeed:
    id: str
    name: str
    price: float


@dataclass(frozen=True)
class RoomSeed:
    number: str
    name: str
    amenities: list[str] = field(default_factory=list)


DEFAULT_MEAL_PRODUCTS: list[ProductSeed] = [
    ProductSeed(id="meal_breakfast", name="Café da Manhã (Diária)", price=30),
    ProductSeed(id="meal_lunch", name="Almoço (Diária)", price=50),
    ProductSeed(id="meal_dinner", name="Jantar (Diária)", price=45),
]

DEMO_AMENITIES: list[str] = ["Café da Manhã", "Almoço", "Jantar", "Wi-Fi", "Air conditioning", "Minibar"]

DEMO_ROOMS: list[RoomSeed] = [
    RoomSeed(number="101", name="Standard Double", amenities=["Wi-Fi"]),
    RoomSeed(number="102", name="Standard Twin", amenities=["Wi-Fi", "Air conditioning"]),
    RoomSeed(number="201", name="Superior Suite", amenities=["Café da Manhã", "Wi-Fi", "Minibar"]),
    RoomSeed(number="202", name="Family Suite", amenities=["Café da Manhã", "Jantar", "Wi-Fi", "Air conditioning"]),
]


def seed_meal_products(store: FrontDeskStore, *, update_existing: bool = False) -> dict[str, int]:
    """
    Idempotently seed the reserved meal products.

    - If update_existing is False: adds missing meal products only (does not overwrite edits).
    - If update_existing is True: also resets existing meal products to the default name and price.
    """
    created = 0
    updated = 0
    skipped = 0

    products = store.products.load()
    by_id = {product.id: index for index, product in enumerate(products)}

    for seed in DEFAULT_MEAL_PRODUCTS:
        default = Product(id=seed.id, name=seed.name, price=seed.price)
        if seed.id not in by_id:
            products.append(default)
            created += 1
        elif update_existing and products[by_id[seed.id]] != default:
            products[by_id[seed.id]] = default
            updated += 1
        else:
            skipped += 1

    if created or updated:
        store.products.save(products)
    return {"created": created, "updated": updated, "skipped": skipped}


def seed_demo_inventory(store: FrontDeskStore) -> dict[str, int]:
    """
    Add the demo amenities and inventory rooms that are not there yet.
    Existing amenities and rooms are left untouched.
    """
    amenities = store.amenities.load()
    known_amenities = {amenity.name.lower() for amenity in amenities}
    new_amenities = [
        Amenity(id=f"amenity_{uuid.uuid4().hex[:12]}", name=name)
        for name in DEMO_AMENITIES
        if name.lower() not in known_amenities
    ]
    if new_amenities:
        store.amenities.save([*amenities, *new_amenities])

    inventory = store.inventory.load()
    known_numbers = {room.number for room in inventory}
    new_rooms = [
        HotelRoom(id=f"inv_{uuid.uuid4().hex[:12]}", number=seed.number, name=seed.name, amenities=tuple(seed.amenities))
        for seed in DEMO_ROOMS
        if seed.number not in known_numbers
    ]
    if new_rooms:
        store.inventory.save([*inventory, *new_rooms])

    return {"amenities": len(new_amenities), "rooms": len(new_rooms)}
