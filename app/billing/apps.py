"""
Billing app configuration.

This app provides the Stripe subscription layer:
- Billable model mixin (Stripe customer on the user)
- Products, subscriptions and subscription items
- Checkout, status and panels API
- Idempotent webhook processing
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    """Configuration for the billing application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Billing"

    def ready(self):
        """Connect webhook signal listeners."""
        from billing import listeners  # noqa: F401
