from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Generic, Iterable, TypeVar

from django.conf import settings
from django.db import DatabaseError, transaction

from .entities import Amenity, ClosedRoom, HotelRoom, Package, PackageService, Product, Room
from .models import StoredCollection


logger = logging.getLogger(__name__)

T = TypeVar("T")

THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class KeyValueStore(ABC):
    """Read/write interface over the raw persisted values."""

    @abstractmethod
    def read(self, key: str) -> str | None:
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def atomic(self):
        """Context manager: writes made inside it are all kept or all discarded."""


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._data[key] = value

    @contextmanager
    def atomic(self):
        snapshot = dict(self._data)
        try:
            yield
        except Exception:
            self._data = snapshot
            raise


class DatabaseKeyValueStore(KeyValueStore):
    """Values kept in the StoredCollection table, one row per key."""

    def read(self, key: str) -> str | None:
        try:
            row = StoredCollection.objects.filter(key=key).only("value").first()
        except DatabaseError:
            logger.exception("Failed to read stored collection %r", key)
            return None
        return row.value if row else None

    def write(self, key: str, value: str) -> None:
        StoredCollection.objects.update_or_create(key=key, defaults={"value": value})

    def atomic(self):
        return transaction.atomic()


class CollectionRepository(Generic[T]):
    """
    A list of records persisted as one JSON array under a single key.

    Reads never fail: a missing key gives an empty list, and unreadable
    content is logged and also gives an empty list.
    """

    def __init__(self, backend: KeyValueStore, key: str, parse: Callable[[dict], T]):
        self.backend = backend
        self.key = key
        self.parse = parse

    def load(self) -> list[T]:
        raw = self.backend.read(self.key)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
            return [self.parse(item) for item in payload]
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning("Stored collection %r is unreadable, falling back to an empty list: %s", self.key, exc)
            return []

    def save(self, records: Iterable[T]) -> None:
        payload = [record.to_dict() for record in records]
        self.backend.write(self.key, json.dumps(payload, ensure_ascii=False))


class ThemeRepository:
    key = "theme"

    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    def load(self) -> str:
        raw = self.backend.read(self.key)
        if raw is None:
            return DEFAULT_THEME
        try:
            theme = json.loads(raw)
        except ValueError:
            theme = None
        if theme not in THEMES:
            logger.warning("Stored theme %r is invalid, falling back to %r", raw, DEFAULT_THEME)
            return DEFAULT_THEME
        return theme

    def save(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r}")
        self.backend.write(self.key, json.dumps(theme))


class FrontDeskStore:
    """All persisted front-desk collections over one backend."""

    def __init__(self, backend: KeyValueStore):
        self.backend = backend
        self.products: CollectionRepository[Product] = CollectionRepository(backend, "products", Product.from_dict)
        self.amenities: CollectionRepository[Amenity] = CollectionRepository(backend, "amenities", Amenity.from_dict)
        self.package_services: CollectionRepository[PackageService] = CollectionRepository(
            backend, "packageServices", PackageService.from_dict
        )
        self.packages: CollectionRepository[Package] = CollectionRepository(backend, "packages", Package.from_dict)
        self.inventory: CollectionRepository[HotelRoom] = CollectionRepository(
            backend, "inventory", HotelRoom.from_dict
        )
        self.rooms: CollectionRepository[Room] = CollectionRepository(backend, "rooms", Room.from_dict)
        self.closed_rooms: CollectionRepository[ClosedRoom] = CollectionRepository(
            backend, "closedRooms", ClosedRoom.from_dict
        )
        self.theme = ThemeRepository(backend)

    def atomic(self):
        return self.backend.atomic()


_memory_backend = InMemoryKeyValueStore()


def get_store() -> FrontDeskStore:
    """
    Store selected by the FRONTDESK_STORAGE setting ("database" or "memory").
    """
    backend_name = getattr(settings, "FRONTDESK_STORAGE", "database")
    if backend_name == "memory":
        return FrontDeskStore(_memory_backend)
    if backend_name == "database":
        return FrontDeskStore(DatabaseKeyValueStore())
    raise ValueError(f"Unknown FRONTDESK_STORAGE backend: {backend_name!r}")
