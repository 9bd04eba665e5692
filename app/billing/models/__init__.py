"""
Billing models.

Usage:
    from billing.models import Product, Subscription, SubscriptionItem, WebhookEvent
"""

from billing.models.product import Product
from billing.models.subscription import Subscription, SubscriptionItem
from billing.models.webhook_event import WebhookEvent

__all__ = [
    "Product",
    "Subscription",
    "SubscriptionItem",
    "WebhookEvent",
]
