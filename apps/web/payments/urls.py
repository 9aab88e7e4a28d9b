"""
URL routing for payment endpoints.
"""

from django.urls import path

from apps.web.payments import webhooks

app_name = "payments"

urlpatterns = [
    path("webhooks/square", webhooks.square_webhook, name="square-webhook"),
    path("webhooks/stripe", webhooks.stripe_webhook, name="stripe-webhook"),
]
