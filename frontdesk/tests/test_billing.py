from datetime import datetime, timezone

import pytest
from django.core.exceptions import ValidationError

from frontdesk.billing import (
    Payment,
    PaymentLedger,
    PaymentMethod,
    calculate_bill,
    count_nights,
    estimate_quote,
    render_quote_text,
    split_amount,
)
from frontdesk.entities import MealPackage, OrderItem, Product, Room


MEALS = [
    Product(id="meal_breakfast", name="Café da Manhã (Diária)", price=30),
    Product(id="meal_lunch", name="Almoço (Diária)", price=50),
    Product(id="meal_dinner", name="Jantar (Diária)", price=45),
]


def make_room(**overrides):
    values = {
        "id": "room_1",
        "room_number": "101",
        "room_name": "Standard Double",
        "guest_name": "Ana Souza",
        "daily_rate": 100,
        "check_in_date": "2024-01-01T00:00:00.000Z",
        "check_out_date": None,
        "status": "occupied",
    }
    values.update(overrides)
    return Room(**values)


def at(day, hour=12):
    return datetime(2024, 1, day, hour, tzinfo=timezone.utc)


def test_same_day_checkout_bills_one_night():
    assert count_nights("2024-01-01T00:00:00.000Z", at(1, 23)) == 1


def test_checkout_before_check_in_still_bills_one_night():
    assert count_nights("2024-01-05T00:00:00.000Z", at(1)) == 1


def test_two_nights_room_total():
    bill = calculate_bill(make_room(), MEALS, at(3))
    assert bill.nights == 2
    assert bill.room_total == 200


def test_meal_package_total_uses_enabled_meals():
    room = make_room(meal_package=MealPackage(breakfast=True, lunch=True))
    bill = calculate_bill(room, MEALS, at(3))
    assert bill.meal_package_total == 160


def test_meal_missing_from_catalog_costs_nothing():
    room = make_room(meal_package=MealPackage(breakfast=True, lunch=True))
    products = [product for product in MEALS if product.id != "meal_breakfast"]
    assert calculate_bill(room, products, at(3)).meal_package_total == 100


def test_meal_prices_are_looked_up_live():
    room = make_room(meal_package=MealPackage(breakfast=True))
    cheaper = [Product(id="meal_breakfast", name="Café da Manhã (Diária)", price=20)]
    assert calculate_bill(room, cheaper, at(3)).meal_package_total == 40


def test_total_is_sum_of_parts():
    room = make_room(
        meal_package=MealPackage(dinner=True),
        order=(OrderItem(id="order_1", product_id="prod_1", product_name="Water", product_price=5, quantity=2),),
        package_id="pkg_1",
        package_name="Romance",
        package_price=250,
    )
    bill = calculate_bill(room, MEALS, at(4))
    assert bill.order_total == 10
    assert bill.package_total == 250
    assert bill.total_amount == bill.room_total + bill.order_total + bill.meal_package_total + bill.package_total
    assert bill.total_amount == 300 + 10 + 135 + 250


def test_order_lines_keep_their_snapshot_price():
    room = make_room(
        order=(OrderItem(id="order_1", product_id="prod_1", product_name="Water", product_price=5, quantity=1),)
    )
    repriced = [*MEALS, Product(id="prod_1", name="Water", price=9)]
    assert calculate_bill(room, repriced, at(2)).order_total == 5


def test_split_payments_cover_the_bill():
    ledger = PaymentLedger(300)
    ledger.add(PaymentMethod.CASH, 150)
    ledger.add(PaymentMethod.CARD, 150)
    assert ledger.is_fully_paid
    assert ledger.change == 0

    ledger.add(PaymentMethod.CASH, 50)
    assert ledger.change == 50
    assert ledger.remaining == -50


def test_only_cash_accepted_once_fully_paid():
    ledger = PaymentLedger(100, [Payment(id="pay_1", method="Card", amount=100)])
    assert ledger.accepts(PaymentMethod.CASH)
    assert not ledger.accepts(PaymentMethod.PIX)
    with pytest.raises(ValidationError):
        ledger.add(PaymentMethod.PIX, 10)


def test_payment_can_always_be_removed():
    ledger = PaymentLedger(100)
    payment = ledger.add(PaymentMethod.PIX, 100)
    assert ledger.remove(payment.id)
    assert not ledger.remove(payment.id)
    assert ledger.remaining == 100


@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, float("nan")])
def test_invalid_amounts_are_rejected(amount):
    with pytest.raises(ValidationError):
        PaymentLedger(100).add(PaymentMethod.CASH, amount)


def test_unknown_method_is_rejected():
    with pytest.raises(ValidationError):
        PaymentLedger(100).add("Cheque", 10)


@pytest.mark.parametrize("count", [None, "", 0, 1, "x", -2])
def test_split_hidden_for_trivial_counts(count):
    assert split_amount(300, count) is None


def test_split_per_person():
    assert split_amount(300, "3") == 100


def test_quote_and_text():
    quote = estimate_quote(nights=3, daily_rate=150, meal_package=MealPackage(breakfast=True), products=MEALS)
    assert quote.room_total == 450
    assert quote.meal_package_total == 90
    assert quote.grand_total == 540

    text = render_quote_text(quote)
    assert "- Nights: 3" in text
    assert "- Breakfast: Yes" in text
    assert "- Dinner: No" in text
    assert text.endswith("*TOTAL:* *540.00*")
