"""
Product model: a purchasable plan backed by a Stripe price.

Products are the "panels" shown to users. Each row points at one Stripe
price; checkout sends that price id to Stripe, so the amount stored here is
for display only and Stripe remains the source of truth for what is charged.

Usage:
    from billing.models import Product

    for product in Product.objects.active():
        print(product.name, product.stripe_price_id)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from billing.states import BillingInterval
from core.models import BaseModel


def default_currency() -> str:
    return settings.BILLING_CURRENCY


class ProductQuerySet(models.QuerySet):
    def active(self):
        """Products that can be purchased, in display order."""
        return self.filter(is_active=True).order_by("sort_order", "id")


class Product(BaseModel):
    """
    A subscription plan linked to a Stripe price.

    Fields:
        name: Display name
        description: Marketing copy shown on the panel
        stripe_price_id: Stripe Price ID (price_xxx) sent to checkout
        stripe_product_id: Stripe Product ID (prod_xxx), informational
        amount_cents: Price in the smallest currency unit, for display
        currency: ISO 4217 code
        billing_interval: Recurring interval of the price
        is_active: Whether the product is offered and accepted at checkout
        sort_order: Position on the panels page (ascending)
    """

    name = models.CharField(
        max_length=100,
        help_text="Display name of the plan",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Description shown to users",
    )
    stripe_price_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Price ID (price_xxx)",
    )
    stripe_product_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe Product ID (prod_xxx)",
    )
    amount_cents = models.PositiveIntegerField(
        default=0,
        help_text="Price in the smallest currency unit",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )
    billing_interval = models.CharField(
        max_length=10,
        choices=BillingInterval.choices,
        default=BillingInterval.MONTH,
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive products are hidden and rejected at checkout",
    )
    sort_order = models.PositiveIntegerField(
        default=0,
        help_text="Display position (ascending)",
    )

    objects = ProductQuerySet.as_manager()

    class Meta:
        ordering = ["sort_order", "id"]
        verbose_name = "Product"
        verbose_name_plural = "Products"

    def __str__(self) -> str:
        return f"{self.name} ({self.stripe_price_id})"
