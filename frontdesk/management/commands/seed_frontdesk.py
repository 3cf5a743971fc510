from __future__ import annotations

from django.core.management.base import BaseCommand

from frontdesk.seed import seed_demo_inventory, seed_meal_products
from frontdesk.storage import get_store


class Command(BaseCommand):
    help = "Seed the default meal products, optionally with demo amenities and rooms (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--update-existing",
            action="store_true",
            help="Reset existing meal products to their default name and price.",
        )
        parser.add_argument(
            "--demo",
            action="store_true",
            help="Also add demo amenities and inventory rooms.",
        )

    def handle(self, *args, **options):
        store = get_store()
        result = seed_meal_products(store, update_existing=options["update_existing"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Meal products: created={result['created']} updated={result['updated']} skipped={result['skipped']}"
            )
        )
        if options["demo"]:
            demo = seed_demo_inventory(store)
            self.stdout.write(
                self.style.SUCCESS(f"Demo data: amenities={demo['amenities']} rooms={demo['rooms']}")
            )
