"""
URL routing for order API endpoints.

Customer endpoints require a logged-in user; admin endpoints require staff.
"""

from django.urls import path

from apps.web.restaurant import views

app_name = "restaurant"

urlpatterns = [
    # Checkout
    path(
        "orders/initiate-checkout",
        views.initiate_checkout_view,
        name="initiate_checkout",
    ),
    # Customer order tracking
    path("orders/mine", views.my_orders, name="my_orders"),
    path("orders/mine/active", views.my_active_orders, name="my_active_orders"),
    # Staff order handling
    path(
        "admin/restaurants/<str:restaurant_id>/orders/<str:order_id>",
        views.admin_order_detail,
        name="admin_order_detail",
    ),
    path(
        "admin/restaurants/<str:restaurant_id>/orders/<str:order_id>/status",
        views.admin_order_status,
        name="admin_order_status",
    ),
]
