from __future__ import annotations

import json

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET
from django.views.decorators.http import require_http_methods
from django.views.decorators.http import require_POST

from . import navigation
from .billing import (
    Payment,
    PaymentLedger,
    PaymentMethod,
    calculate_bill,
    estimate_quote,
    render_quote_text,
    split_amount,
)
from .entities import MealPackage, RoomStatus
from .services import (
    CheckInInput,
    ConfirmationRequiredError,
    FrontDeskError,
    InvalidTransitionError,
    NotFoundError,
    PackageInput,
    ReopenRejectedError,
    StayUpdate,
    add_amenity,
    add_inventory_room,
    add_order_item,
    add_package_service,
    add_product,
    cancel_reservation,
    change_order_quantity,
    check_in,
    checkout,
    clear_history,
    confirm_check_in,
    ensure_default_meal_products,
    get_room,
    remove_amenity,
    remove_inventory_room,
    remove_package,
    remove_package_service,
    remove_product,
    reopen,
    reopen_block,
    room_board,
    save_package,
    search_history,
    update_product,
    update_stay,
)
from .storage import FrontDeskStore, get_store


CHECKOUT_SESSION_KEY = "frontdesk_checkout"
NAVIGATION_SESSION_KEY = "frontdesk_navigation"


class PayloadError(Exception):
    """Raised when a request body is not the expected JSON object."""


def _store() -> FrontDeskStore:
    store = get_store()
    ensure_default_meal_products(store)
    return store


def _read_payload(request) -> dict:
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise PayloadError("Invalid JSON payload.") from None
    if not isinstance(payload, dict):
        raise PayloadError("Expected a JSON object.")
    return payload


def _meal_package(value) -> MealPackage:
    if value is None:
        return MealPackage()
    try:
        return MealPackage.from_dict(value)
    except TypeError:
        raise PayloadError("mealPackage must be an object with breakfast, lunch and dinner flags.") from None


def _string_list(value, field: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PayloadError(f"{field} must be a list of strings.")
    return tuple(value)


def _error_response(exc: Exception) -> JsonResponse:
    if isinstance(exc, PayloadError):
        return JsonResponse({"error": str(exc)}, status=400)
    if isinstance(exc, ValidationError):
        details = exc.message_dict if hasattr(exc, "error_dict") else {"__all__": exc.messages}
        return JsonResponse({"error": "Validation error.", "details": details}, status=400)
    if isinstance(exc, NotFoundError):
        return JsonResponse({"error": str(exc)}, status=404)
    if isinstance(exc, ConfirmationRequiredError):
        return JsonResponse({"error": str(exc), "confirmationRequired": True}, status=409)
    if isinstance(exc, ReopenRejectedError):
        return JsonResponse({"error": str(exc), "reason": exc.reason.value}, status=409)
    return JsonResponse({"error": str(exc)}, status=409)


def _dispatch(request, action: navigation.Action) -> None:
    state = navigation.NavigationState.from_dict(request.session.get(NAVIGATION_SESSION_KEY))
    request.session[NAVIGATION_SESSION_KEY] = navigation.reduce(state, action).to_dict()


def _checkout_payments(request, room_id: str) -> list[Payment]:
    """Payments collected so far for ``room_id``; a checkout for another room starts empty."""
    data = request.session.get(CHECKOUT_SESSION_KEY) or {}
    if data.get("roomId") != room_id:
        return []
    return [Payment.from_dict(item) for item in data.get("payments", [])]


def _save_checkout_payments(request, room_id: str, payments: list[Payment]) -> None:
    request.session[CHECKOUT_SESSION_KEY] = {
        "roomId": room_id,
        "payments": [payment.to_dict() for payment in payments],
    }


# ==========================
# Room board and inventory
# ==========================


@require_GET
@ensure_csrf_cookie
def csrf_api(request):
    """
    GET /api/csrf/
    Sets the csrftoken cookie. Every POST must send the token back in the
    X-CSRFToken header.
    """
    return JsonResponse({"csrfToken": get_token(request)})


@require_GET
@ensure_csrf_cookie
def board_api(request):
    """
    GET /api/board/?filter=all|occupied|reserved|available
    """
    status_filter = request.GET.get("filter", "all").strip() or "all"
    try:
        entries = room_board(_store(), status_filter)
    except ValidationError as exc:
        return _error_response(exc)
    return JsonResponse({"filter": status_filter, "rooms": [entry.to_dict() for entry in entries]})


@require_http_methods(["GET", "POST"])
def inventory_api(request):
    """
    GET  /api/inventory/
    POST /api/inventory/  {"number": "101", "name": "...", "amenities": ["Wi-Fi"]}
    """
    store = _store()
    if request.method == "GET":
        return JsonResponse({"inventory": [room.to_dict() for room in store.inventory.load()]})

    try:
        payload = _read_payload(request)
        room = add_inventory_room(
            store,
            number=payload.get("number", ""),
            name=payload.get("name", ""),
            amenities=_string_list(payload.get("amenities", []), "amenities"),
        )
    except (PayloadError, ValidationError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "room": room.to_dict()}, status=201)


@require_POST
def inventory_delete_api(request, number: str):
    """
    POST /api/inventory/<number>/delete/  {"confirm": true}
    """
    try:
        payload = _read_payload(request)
        remove_inventory_room(_store(), number=number, confirmed=payload.get("confirm") is True)
    except (PayloadError, FrontDeskError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "message": f"Room {number} removed from the inventory."})


# ==========================
# Catalog
# ==========================


@require_http_methods(["GET", "POST"])
def products_api(request):
    """
    GET  /api/products/
    POST /api/products/  {"name": "...", "price": 12.5}
    """
    store = _store()
    if request.method == "GET":
        return JsonResponse({"products": [product.to_dict() for product in store.products.load()]})

    try:
        payload = _read_payload(request)
        product = add_product(store, name=payload.get("name", ""), price=payload.get("price"))
    except (PayloadError, ValidationError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "product": product.to_dict()}, status=201)


@require_POST
def product_update_api(request, product_id: str):
    try:
        payload = _read_payload(request)
        product = update_product(
            _store(), product_id=product_id, name=payload.get("name", ""), price=payload.get("price")
        )
    except (PayloadError, ValidationError, FrontDeskError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "product": product.to_dict()})


@require_POST
def product_delete_api(request, product_id: str):
    try:
        remove_product(_store(), product_id=product_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "message": "Product removed."})


@require_http_methods(["GET", "POST"])
def amenities_api(request):
    store = _store()
    if request.method == "GET":
        return JsonResponse({"amenities": [amenity.to_dict() for amenity in store.amenities.load()]})

    try:
        payload = _read_payload(request)
        amenity = add_amenity(store, name=payload.get("name", ""))
    except (PayloadError, ValidationError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "amenity": amenity.to_dict()}, status=201)


@require_POST
def amenity_delete_api(request, amenity_id: str):
    try:
        remove_amenity(_store(), amenity_id=amenity_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "message": "Amenity removed."})


@require_http_methods(["GET", "POST"])
def package_services_api(request):
    store = _store()
    if request.method == "GET":
        return JsonResponse({"packageServices": [service.to_dict() for service in store.package_services.load()]})

    try:
        payload = _read_payload(request)
        service = add_package_service(store, name=payload.get("name", ""))
    except (PayloadError, ValidationError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "packageService": service.to_dict()}, status=201)


@require_POST
def package_service_delete_api(request, service_id: str):
    try:
        remove_package_service(_store(), service_id=service_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "message": "Service removed."})


def _package_input(payload: dict) -> PackageInput:
    return PackageInput(
        name=payload.get("name", ""),
        price=payload.get("price"),
        description=payload.get("description", "") or "",
        service_ids=_string_list(payload.get("serviceIds", []), "serviceIds"),
    )


@require_http_methods(["GET", "POST"])
def packages_api(request):
    """
    GET  /api/packages/
    POST /api/packages/  {"name", "price", "description", "serviceIds"}
    """
    store = _store()
    if request.method == "GET":
        return JsonResponse({"packages": [package.to_dict() for package in store.packages.load()]})

    try:
        package = save_package(store, data=_package_input(_read_payload(request)))
    except (PayloadError, ValidationError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "package": package.to_dict()}, status=201)


@require_POST
def package_update_api(request, package_id: str):
    try:
        package = save_package(_store(), data=_package_input(_read_payload(request)), package_id=package_id)
    except (PayloadError, ValidationError, FrontDeskError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "package": package.to_dict()})


@require_POST
def package_delete_api(request, package_id: str):
    try:
        remove_package(_store(), package_id=package_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "message": "Package removed."})


# ==========================
# Stays
# ==========================


@require_POST
def check_in_api(request):
    """
    POST /api/check-in/
    Payload (JSON):
      - roomNumber: inventory room number
      - guestName, dailyRate, checkInDate (YYYY-MM-DD)
      - checkOutDate (optional), mealPackage (optional), packageId (optional)
    """
    try:
        payload = _read_payload(request)
        room = check_in(
            _store(),
            data=CheckInInput(
                room_number=str(payload.get("roomNumber", "")),
                guest_name=payload.get("guestName", ""),
                daily_rate=payload.get("dailyRate"),
                check_in_date=payload.get("checkInDate"),
                check_out_date=payload.get("checkOutDate"),
                meal_package=_meal_package(payload.get("mealPackage")),
                package_id=payload.get("packageId") or None,
            ),
        )
    except (PayloadError, ValidationError, FrontDeskError) as exc:
        return _error_response(exc)

    _dispatch(request, navigation.CheckInCompleted())
    return JsonResponse({"success": True, "room": room.to_dict(), "message": "Reservation created."}, status=201)


@require_GET
def room_detail_api(request, room_id: str):
    """
    GET /api/rooms/<id>/
    The room with its running bill as of today.
    """
    store = _store()
    try:
        room = get_room(store, room_id=room_id)
    except NotFoundError as exc:
        return _error_response(exc)
    bill = calculate_bill(room, store.products.load())
    return JsonResponse({"room": room.to_dict(), "runningBill": bill.to_dict()})


@require_POST
def room_confirm_api(request, room_id: str):
    """
    POST /api/rooms/<id>/confirm/
    """
    try:
        room = confirm_check_in(_store(), room_id=room_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "room": room.to_dict(), "message": "Check-in confirmed."})


@require_POST
def room_cancel_api(request, room_id: str):
    """
    POST /api/rooms/<id>/cancel/  {"confirm": true}
    Without the confirm flag the response is 409 with confirmationRequired.
    """
    try:
        payload = _read_payload(request)
        cancel_reservation(_store(), room_id=room_id, confirmed=payload.get("confirm") is True)
    except (PayloadError, FrontDeskError) as exc:
        return _error_response(exc)

    _dispatch(request, navigation.Navigate(screen=navigation.Screen.CHECK_ROOM))
    return JsonResponse({"success": True, "message": "Reservation cancelled."})


@require_POST
def room_update_api(request, room_id: str):
    """
    POST /api/rooms/<id>/update/
    Any of guestName, dailyRate, checkInDate, checkOutDate, mealPackage,
    amenities; omitted fields keep their current value.
    """
    store = _store()
    try:
        payload = _read_payload(request)
        room = get_room(store, room_id=room_id)
        meal_package = payload.get("mealPackage")
        amenities = payload.get("amenities")
        room = update_stay(
            store,
            room_id=room_id,
            data=StayUpdate(
                guest_name=payload.get("guestName", room.guest_name),
                daily_rate=payload.get("dailyRate", room.daily_rate),
                check_in_date=payload.get("checkInDate", room.check_in_date),
                check_out_date=payload.get("checkOutDate", room.check_out_date),
                meal_package=_meal_package(meal_package) if meal_package is not None else room.meal_package,
                amenities=_string_list(amenities, "amenities") if amenities is not None else room.amenities,
            ),
        )
    except (PayloadError, ValidationError, FrontDeskError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "room": room.to_dict(), "message": "Stay updated."})


@require_POST
def order_add_api(request, room_id: str):
    """
    POST /api/rooms/<id>/order/  {"productId": "...", "confirmDuplicate": false}
    """
    try:
        payload = _read_payload(request)
        room = add_order_item(
            _store(),
            room_id=room_id,
            product_id=str(payload.get("productId", "")),
            confirm_duplicate=payload.get("confirmDuplicate") is True,
        )
    except (PayloadError, FrontDeskError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "room": room.to_dict()})


@require_POST
def order_quantity_api(request, room_id: str, product_id: str):
    """
    POST /api/rooms/<id>/order/<product_id>/  {"delta": 1 | -1}
    """
    try:
        payload = _read_payload(request)
        delta = payload.get("delta")
        if not isinstance(delta, int) or isinstance(delta, bool):
            raise PayloadError("delta must be an integer.")
        room = change_order_quantity(_store(), room_id=room_id, product_id=product_id, delta=delta)
    except (PayloadError, FrontDeskError) as exc:
        return _error_response(exc)
    return JsonResponse({"success": True, "room": room.to_dict()})


# ==========================
# Checkout
# ==========================


def _checkout_context(request, store: FrontDeskStore, room_id: str) -> tuple:
    room = get_room(store, room_id=room_id)
    if room.status != RoomStatus.OCCUPIED:
        raise InvalidTransitionError("Only occupied rooms can be checked out.")
    bill = calculate_bill(room, store.products.load())
    ledger = PaymentLedger(bill.total_amount, _checkout_payments(request, room_id))
    return room, bill, ledger


def _checkout_response(room, bill, ledger: PaymentLedger, split_count=None, status: int = 200) -> JsonResponse:
    return JsonResponse(
        {
            "room": room.to_dict(),
            "bill": bill.to_dict(),
            "ledger": ledger.to_dict(),
            "splitPerPerson": split_amount(bill.total_amount, split_count),
            "acceptedMethods": [method for method in PaymentMethod.values if ledger.accepts(method)],
        },
        status=status,
    )


@require_GET
def checkout_summary_api(request, room_id: str):
    """
    GET /api/rooms/<id>/checkout/?split=2
    Bill as of now, the payments collected so far and the optional per-person split.
    """
    try:
        room, bill, ledger = _checkout_context(request, _store(), room_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    return _checkout_response(room, bill, ledger, request.GET.get("split"))


@require_POST
def checkout_payment_add_api(request, room_id: str):
    """
    POST /api/rooms/<id>/checkout/payments/  {"method": "Cash|Card|PIX", "amount": 150}
    """
    try:
        payload = _read_payload(request)
        room, bill, ledger = _checkout_context(request, _store(), room_id)
        ledger.add(payload.get("method"), payload.get("amount"))
    except (PayloadError, ValidationError, FrontDeskError) as exc:
        return _error_response(exc)
    _save_checkout_payments(request, room_id, ledger.payments)
    return _checkout_response(room, bill, ledger, status=201)


@require_POST
def checkout_payment_remove_api(request, room_id: str, payment_id: str):
    """
    POST /api/rooms/<id>/checkout/payments/<payment_id>/delete/
    """
    try:
        room, bill, ledger = _checkout_context(request, _store(), room_id)
    except FrontDeskError as exc:
        return _error_response(exc)
    if not ledger.remove(payment_id):
        return JsonResponse({"error": "Payment not found."}, status=404)
    _save_checkout_payments(request, room_id, ledger.payments)
    return _checkout_response(room, bill, ledger)


@require_POST
def checkout_confirm_api(request, room_id: str):
    """
    POST /api/rooms/<id>/checkout/confirm/
    Closes the stay into history; rejected while the bill is not fully paid.
    """
    try:
        record = checkout(_store(), room_id=room_id, payments=_checkout_payments(request, room_id))
    except FrontDeskError as exc:
        return _error_response(exc)

    request.session.pop(CHECKOUT_SESSION_KEY, None)
    _dispatch(request, navigation.CheckoutConfirmed())
    return JsonResponse({"success": True, "record": record.to_dict(), "message": "Stay closed."})


# ==========================
# History
# ==========================


@require_GET
def history_api(request):
    """
    GET /api/history/?q=<guest name or room number>
    """
    store = _store()
    rooms = store.rooms.load()
    inventory = store.inventory.load()
    records = []
    for record in search_history(store, request.GET.get("q", "")):
        block = reopen_block(record, rooms, inventory)
        records.append(
            {
                **record.to_dict(),
                "canReopen": block is None,
                "reopenBlockedReason": block.value if block else None,
                "reopenBlockedMessage": block.label if block else None,
            }
        )
    return JsonResponse({"history": records})


@require_POST
def history_clear_api(request):
    """
    POST /api/history/clear/  {"confirm": true}
    """
    try:
        payload = _read_payload(request)
    except PayloadError as exc:
        return _error_response(exc)
    if payload.get("confirm") is not True:
        return _error_response(
            ConfirmationRequiredError("Clear the whole account history? This cannot be undone.")
        )
    removed = clear_history(_store())
    return JsonResponse({"success": True, "removed": removed})


@require_POST
def history_reopen_api(request, closed_room_id: str):
    """
    POST /api/history/<id>/reopen/  {"confirm": true}
    """
    try:
        payload = _read_payload(request)
        room = reopen(_store(), closed_room_id=closed_room_id, confirmed=payload.get("confirm") is True)
    except (PayloadError, FrontDeskError) as exc:
        return _error_response(exc)

    _dispatch(request, navigation.RoomReopened(room_id=room.id))
    return JsonResponse({"success": True, "room": room.to_dict(), "message": "Account reopened."})


# ==========================
# Simulator, theme and navigation
# ==========================


@require_POST
def quote_api(request):
    """
    POST /api/quote/  {"nights": 3, "dailyRate": 150, "mealPackage": {...}}
    """
    try:
        payload = _read_payload(request)
        nights = payload.get("nights", 1)
        daily_rate = payload.get("dailyRate", 0)
        if not isinstance(nights, int) or isinstance(nights, bool) or nights < 0:
            raise PayloadError("nights must be a non-negative integer.")
        if not isinstance(daily_rate, (int, float)) or isinstance(daily_rate, bool) or daily_rate < 0:
            raise PayloadError("dailyRate must be a non-negative number.")
        quote = estimate_quote(
            nights=nights,
            daily_rate=daily_rate,
            meal_package=_meal_package(payload.get("mealPackage")),
            products=_store().products.load(),
        )
    except PayloadError as exc:
        return _error_response(exc)
    return JsonResponse({"quote": quote.to_dict(), "text": render_quote_text(quote)})


@require_http_methods(["GET", "POST"])
def theme_api(request):
    """
    GET  /api/theme/
    POST /api/theme/  {"theme": "light" | "dark"}
    """
    store = get_store()
    if request.method == "POST":
        try:
            payload = _read_payload(request)
            store.theme.save(payload.get("theme"))
        except PayloadError as exc:
            return _error_response(exc)
        except ValueError:
            return JsonResponse({"error": "theme must be 'light' or 'dark'."}, status=400)
    return JsonResponse({"theme": store.theme.load()})


@require_http_methods(["GET", "POST"])
def navigation_api(request):
    """
    GET  /api/navigation/
    POST /api/navigation/  {"action": "select_room", "roomId": "..."}
    """
    state = navigation.NavigationState.from_dict(request.session.get(NAVIGATION_SESSION_KEY))
    if request.method == "POST":
        try:
            action = navigation.action_from_payload(_read_payload(request))
            state = navigation.reduce(state, action)
        except PayloadError as exc:
            return _error_response(exc)
        except ValueError as exc:
            return JsonResponse({"error": str(exc)}, status=400)

    store = _store()
    rooms = store.rooms.load()
    active_numbers = {room.room_number for room in rooms}
    state = navigation.resolve(
        state,
        active_room_ids=[room.id for room in rooms],
        available_room_numbers=[room.number for room in store.inventory.load() if room.number not in active_numbers],
    )
    request.session[NAVIGATION_SESSION_KEY] = state.to_dict()
    return JsonResponse({"navigation": state.to_dict()})
