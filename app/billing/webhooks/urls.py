"""Stripe webhook endpoint, mounted at /stripe/."""

from django.urls import path

from billing.webhooks.views import stripe_webhook

urlpatterns = [
    path("webhook/", stripe_webhook, name="stripe_webhook"),
]
