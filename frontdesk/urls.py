from django.urls import path

from .api import (
    amenities_api,
    amenity_delete_api,
    board_api,
    check_in_api,
    checkout_confirm_api,
    checkout_payment_add_api,
    checkout_payment_remove_api,
    checkout_summary_api,
    csrf_api,
    history_api,
    history_clear_api,
    history_reopen_api,
    inventory_api,
    inventory_delete_api,
    navigation_api,
    order_add_api,
    order_quantity_api,
    package_delete_api,
    package_service_delete_api,
    package_services_api,
    package_update_api,
    packages_api,
    product_delete_api,
    product_update_api,
    products_api,
    quote_api,
    room_cancel_api,
    room_confirm_api,
    room_detail_api,
    room_update_api,
    theme_api,
)


app_name = "frontdesk"

urlpatterns = [
    path("api/csrf/", csrf_api, name="csrf_api"),
    path("api/board/", board_api, name="board_api"),
    path("api/inventory/", inventory_api, name="inventory_api"),
    path("api/inventory/<str:number>/delete/", inventory_delete_api, name="inventory_delete_api"),
    path("api/products/", products_api, name="products_api"),
    path("api/products/<str:product_id>/update/", product_update_api, name="product_update_api"),
    path("api/products/<str:product_id>/delete/", product_delete_api, name="product_delete_api"),
    path("api/amenities/", amenities_api, name="amenities_api"),
    path("api/amenities/<str:amenity_id>/delete/", amenity_delete_api, name="amenity_delete_api"),
    path("api/package-services/", package_services_api, name="package_services_api"),
    path(
        "api/package-services/<str:service_id>/delete/",
        package_service_delete_api,
        name="package_service_delete_api",
    ),
    path("api/packages/", packages_api, name="packages_api"),
    path("api/packages/<str:package_id>/update/", package_update_api, name="package_update_api"),
    path("api/packages/<str:package_id>/delete/", package_delete_api, name="package_delete_api"),
    path("api/check-in/", check_in_api, name="check_in_api"),
    path("api/rooms/<str:room_id>/", room_detail_api, name="room_detail_api"),
    path("api/rooms/<str:room_id>/confirm/", room_confirm_api, name="room_confirm_api"),
    path("api/rooms/<str:room_id>/cancel/", room_cancel_api, name="room_cancel_api"),
    path("api/rooms/<str:room_id>/update/", room_update_api, name="room_update_api"),
    path("api/rooms/<str:room_id>/order/", order_add_api, name="order_add_api"),
    path("api/rooms/<str:room_id>/order/<str:product_id>/", order_quantity_api, name="order_quantity_api"),
    path("api/rooms/<str:room_id>/checkout/", checkout_summary_api, name="checkout_summary_api"),
    path(
        "api/rooms/<str:room_id>/checkout/payments/",
        checkout_payment_add_api,
        name="checkout_payment_add_api",
    ),
    path(
        "api/rooms/<str:room_id>/checkout/payments/<str:payment_id>/delete/",
        checkout_payment_remove_api,
        name="checkout_payment_remove_api",
    ),
    path("api/rooms/<str:room_id>/checkout/confirm/", checkout_confirm_api, name="checkout_confirm_api"),
    path("api/history/", history_api, name="history_api"),
    path("api/history/clear/", history_clear_api, name="history_clear_api"),
    path("api/history/<str:closed_room_id>/reopen/", history_reopen_api, name="history_reopen_api"),
    path("api/quote/", quote_api, name="quote_api"),
    path("api/theme/", theme_api, name="theme_api"),
    path("api/navigation/", navigation_api, name="navigation_api"),
]
