from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any, Iterable

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .entities import MEAL_PRODUCT_IDS, MealPackage, Product, Room, parse_instant


class PaymentMethod(models.TextChoices):
    CASH = "Cash", "Cash"
    CARD = "Card", "Card"
    PIX = "PIX", "PIX"


@dataclass(frozen=True)
class Bill:
    nights: int
    room_total: float
    meal_package_total: float
    order_total: float
    package_total: float
    total_amount: float

    def to_dict(self) -> dict:
        return {
            "nights": self.nights,
            "roomTotal": self.room_total,
            "mealPackageTotal": self.meal_package_total,
            "orderTotal": self.order_total,
            "packageTotal": self.package_total,
            "totalAmount": self.total_amount,
        }


def count_nights(check_in_date: str, at: datetime) -> int:
    """
    Nights billed between check-in and ``at``, compared as UTC calendar dates.
    Same-day and partial-day stays bill one night.
    """
    if timezone.is_naive(at):
        at = at.replace(tzinfo=dt_timezone.utc)
    start = parse_instant(check_in_date).date()
    end = at.astimezone(dt_timezone.utc).date()
    return max((end - start).days, 1)


def meal_prices(products: Iterable[Product]) -> dict[str, float]:
    """Live price of each meal; a meal missing from the catalog costs 0."""
    by_id = {product.id: product.price for product in products}
    return {meal: by_id.get(product_id, 0) for meal, product_id in MEAL_PRODUCT_IDS.items()}


def daily_meal_cost(meal_package: MealPackage, products: Iterable[Product]) -> float:
    prices = meal_prices(products)
    return sum(prices[meal] for meal in meal_package.enabled())


def calculate_bill(room: Room, products: Iterable[Product], at: datetime | None = None) -> Bill:
    """
    Itemized charges for a stay as of ``at`` (defaults to now).

    Order lines use the prices snapshotted when they were added; meal package
    prices are looked up from the current catalog every time.
    """
    at = at or timezone.now()
    nights = count_nights(room.check_in_date, at)
    room_total = room.daily_rate * nights
    meal_package_total = daily_meal_cost(room.meal_package, products) * nights
    order_total = sum(item.line_total for item in room.order)
    package_total = room.package_price or 0
    return Bill(
        nights=nights,
        room_total=room_total,
        meal_package_total=meal_package_total,
        order_total=order_total,
        package_total=package_total,
        total_amount=room_total + order_total + meal_package_total + package_total,
    )


@dataclass(frozen=True)
class Payment:
    id: str
    method: str
    amount: float

    @classmethod
    def from_dict(cls, data: dict) -> Payment:
        return cls(id=str(data["id"]), method=str(data["method"]), amount=float(data["amount"]))

    def to_dict(self) -> dict:
        return {"id": self.id, "method": self.method, "amount": self.amount}


def parse_amount(value: Any) -> float:
    """
    Coerce a payment amount entered by the user. Rejects anything that is not
    a finite number greater than zero.
    """
    if isinstance(value, bool):
        raise ValidationError({"amount": "Enter a valid amount."})
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError({"amount": "Enter a valid amount."}) from None
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError({"amount": "The amount must be greater than zero."})
    return amount


class PaymentLedger:
    """
    Split payments collected at checkout, reconciled against the bill total.
    Nothing here is persisted; an abandoned checkout simply drops the ledger.
    """

    def __init__(self, total_amount: float, payments: Iterable[Payment] = ()):
        self.total_amount = total_amount
        self.payments: list[Payment] = list(payments)

    @property
    def total_paid(self) -> float:
        return sum(payment.amount for payment in self.payments)

    @property
    def remaining(self) -> float:
        return self.total_amount - self.total_paid

    @property
    def change(self) -> float:
        return max(self.total_paid - self.total_amount, 0)

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining <= 0

    def accepts(self, method: str) -> bool:
        """Once the bill is covered only cash may still be taken."""
        return not self.is_fully_paid or method == PaymentMethod.CASH

    def add(self, method: str, amount: Any) -> Payment:
        if method not in PaymentMethod.values:
            raise ValidationError({"method": "Invalid payment method."})
        value = parse_amount(amount)
        if not self.accepts(method):
            raise ValidationError({"method": "The bill is fully paid; only cash payments can still be added."})
        payment = Payment(id=f"pay_{uuid.uuid4().hex[:12]}", method=method, amount=value)
        self.payments.append(payment)
        return payment

    def remove(self, payment_id: str) -> bool:
        before = len(self.payments)
        self.payments = [payment for payment in self.payments if payment.id != payment_id]
        return len(self.payments) != before

    def to_dict(self) -> dict:
        return {
            "payments": [payment.to_dict() for payment in self.payments],
            "totalAmount": self.total_amount,
            "totalPaid": self.total_paid,
            "remaining": self.remaining,
            "change": self.change,
            "isFullyPaid": self.is_fully_paid,
        }


def split_amount(total_amount: float, split_count: Any) -> float | None:
    """
    Per-person share when splitting the bill for display. Returns None when no
    split should be shown (empty, zero, one or unparsable counts).
    """
    if split_count in (None, ""):
        return None
    try:
        count = int(split_count)
    except (TypeError, ValueError):
        return None
    if count <= 1:
        return None
    return total_amount / count


@dataclass(frozen=True)
class Quote:
    nights: int
    daily_rate: float
    meal_package: MealPackage
    room_total: float
    meal_package_total: float

    @property
    def grand_total(self) -> float:
        return self.room_total + self.meal_package_total

    def to_dict(self) -> dict:
        return {
            "nights": self.nights,
            "dailyRate": self.daily_rate,
            "mealPackage": self.meal_package.to_dict(),
            "roomTotal": self.room_total,
            "mealPackageTotal": self.meal_package_total,
            "grandTotal": self.grand_total,
        }


def estimate_quote(
    *,
    nights: int,
    daily_rate: float,
    meal_package: MealPackage,
    products: Iterable[Product],
) -> Quote:
    """Price a prospective stay before any room is booked."""
    nights = max(nights or 0, 0)
    daily_rate = daily_rate or 0
    return Quote(
        nights=nights,
        daily_rate=daily_rate,
        meal_package=meal_package,
        room_total=daily_rate * nights,
        meal_package_total=daily_meal_cost(meal_package, products) * nights,
    )


def render_quote_text(quote: Quote) -> str:
    def yes_no(flag: bool) -> str:
        return "Yes" if flag else "No"

    lines = [
        "*Stay Quote*",
        "",
        "*Details:*",
        f"- Nights: {quote.nights}",
        f"- Daily rate: {quote.daily_rate:.2f}",
        "",
        "*Included meals:*",
        f"- Breakfast: {yes_no(quote.meal_package.breakfast)}",
        f"- Lunch: {yes_no(quote.meal_package.lunch)}",
        f"- Dinner: {yes_no(quote.meal_package.dinner)}",
        "",
        "*Summary:*",
        f"- Lodging total: {quote.room_total:.2f}",
        f"- Meal package total: {quote.meal_package_total:.2f}",
        "----------------------------------",
        f"*TOTAL:* *{quote.grand_total:.2f}*",
    ]
    return "\n".join(lines)
