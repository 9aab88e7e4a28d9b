"""
URL configuration for the restaurant ordering backend.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("payments/", include("apps.web.payments.urls")),
    # Customer and staff API endpoints
    path("api/", include("apps.web.restaurant.urls")),
]
