"""
Subscription and SubscriptionItem models.

A Subscription row mirrors one Stripe subscription for one user. Stripe owns
the state: webhooks (and explicit syncs) copy stripe_status, trial and end
dates onto the row, and the predicates below answer questions about access
from those columns alone, without calling Stripe.

Grace period:
    Canceling at period end sets ends_at to the end of the paid period. Until
    then the subscription is canceled() but still on_grace_period() and
    valid(); once ends_at passes it is ended().

Usage:
    subscription = user.subscription("default")

    if subscription and subscription.valid():
        ...

    subscription.cancel()       # at period end
    subscription.resume()       # only while on grace period
    subscription.cancel_now()   # immediately
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from billing.exceptions import SubscriptionUpdateFailureError
from billing.states import SubscriptionStatus
from core.models import BaseModel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from billing.adapters import SubscriptionResult

logger = logging.getLogger(__name__)


def timestamp_to_datetime(value: int | None) -> datetime | None:
    """Convert a Stripe unix timestamp to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=dt_timezone.utc)


class SubscriptionQuerySet(models.QuerySet):
    """
    Query-side versions of the Subscription predicates.

    Each method matches the instance predicate of the same name.
    """

    def on_trial(self):
        return self.filter(trial_ends_at__gt=timezone.now())

    def on_grace_period(self):
        return self.filter(ends_at__gt=timezone.now())

    def canceled(self):
        return self.filter(ends_at__isnull=False)

    def ended(self):
        return self.filter(ends_at__isnull=False, ends_at__lte=timezone.now())

    def incomplete(self):
        return self.filter(stripe_status=SubscriptionStatus.INCOMPLETE)

    def past_due(self):
        return self.filter(stripe_status=SubscriptionStatus.PAST_DUE)

    def recurring(self):
        now = timezone.now()
        return self.filter(
            Q(trial_ends_at__isnull=True) | Q(trial_ends_at__lte=now),
            ends_at__isnull=True,
        )

    def active(self):
        excluded = [SubscriptionStatus.INCOMPLETE_EXPIRED, SubscriptionStatus.UNPAID]
        if settings.BILLING_DEACTIVATE_INCOMPLETE:
            excluded.append(SubscriptionStatus.INCOMPLETE)
        if settings.BILLING_DEACTIVATE_PAST_DUE:
            excluded.append(SubscriptionStatus.PAST_DUE)
        return self.filter(
            Q(ends_at__isnull=True) | Q(ends_at__gt=timezone.now()),
        ).exclude(stripe_status__in=excluded)


class Subscription(BaseModel):
    """
    Local record of a Stripe subscription.

    Fields:
        user: Owning billable user
        type: Subscription name ("default", "premium", ...)
        stripe_id: Stripe Subscription ID (sub_xxx)
        stripe_status: Last status reported by Stripe
        stripe_price: Price ID for single-price subscriptions, null otherwise
        quantity: Quantity for single-price subscriptions, null otherwise
        trial_ends_at: End of the trial period
        ends_at: End of access after cancellation (null while recurring)
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    type = models.CharField(
        max_length=100,
        default="default",
        help_text="Subscription name used to look it up on the user",
    )
    stripe_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )
    stripe_status = models.CharField(
        max_length=30,
        choices=SubscriptionStatus.choices,
        db_index=True,
    )
    stripe_price = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Price ID when the subscription has a single price",
    )
    quantity = models.PositiveIntegerField(null=True, blank=True)
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        indexes = [
            models.Index(
                fields=["user", "stripe_status"],
                name="billing_sub_user_status_idx",
            ),
            models.Index(
                fields=["user", "type"],
                name="billing_sub_user_type_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.stripe_id}, {self.type}, {self.stripe_status})"

    # ==========================================================================
    # Price helpers
    # ==========================================================================

    def has_multiple_prices(self) -> bool:
        return self.stripe_price is None

    def has_single_price(self) -> bool:
        return not self.has_multiple_prices()

    def has_price(self, price: str) -> bool:
        """Whether the subscription includes the given Stripe price."""
        if self.has_multiple_prices():
            return self.items.filter(stripe_price=price).exists()
        return self.stripe_price == price

    def has_any_price(self, prices: Iterable[str]) -> bool:
        return any(self.has_price(price) for price in prices)

    # ==========================================================================
    # Status predicates
    # ==========================================================================

    def valid(self) -> bool:
        """Whether the user should currently have access."""
        return self.active() or self.on_trial() or self.on_grace_period()

    def incomplete(self) -> bool:
        return self.stripe_status == SubscriptionStatus.INCOMPLETE

    def past_due(self) -> bool:
        return self.stripe_status == SubscriptionStatus.PAST_DUE

    def has_incomplete_payment(self) -> bool:
        return self.past_due() or self.incomplete()

    def active(self) -> bool:
        if self.ended():
            return False
        if self.stripe_status in (
            SubscriptionStatus.INCOMPLETE_EXPIRED,
            SubscriptionStatus.UNPAID,
        ):
            return False
        if settings.BILLING_DEACTIVATE_INCOMPLETE and self.incomplete():
            return False
        if settings.BILLING_DEACTIVATE_PAST_DUE and self.past_due():
            return False
        return True

    def recurring(self) -> bool:
        return not self.on_trial() and not self.canceled()

    def canceled(self) -> bool:
        return self.ends_at is not None

    def ended(self) -> bool:
        return self.canceled() and not self.on_grace_period()

    def on_trial(self) -> bool:
        return self.trial_ends_at is not None and self.trial_ends_at > timezone.now()

    def has_expired_trial(self) -> bool:
        return self.trial_ends_at is not None and self.trial_ends_at <= timezone.now()

    def on_grace_period(self) -> bool:
        return self.ends_at is not None and self.ends_at > timezone.now()

    # ==========================================================================
    # Stripe operations
    # ==========================================================================

    def as_stripe_subscription(self) -> SubscriptionResult:
        from billing.adapters import StripeAdapter

        return StripeAdapter.retrieve_subscription(self.stripe_id)

    def sync_stripe_status(self) -> None:
        """Refresh stripe_status from Stripe."""
        stripe_subscription = self.as_stripe_subscription()
        self.stripe_status = stripe_subscription.status
        self.save(update_fields=["stripe_status", "updated_at"])

    def cancel(self) -> Subscription:
        """
        Cancel at the end of the current billing period.

        A subscription still on trial ends when the trial ends; otherwise it
        ends when the paid period ends.
        """
        from billing.adapters import StripeAdapter

        stripe_subscription = StripeAdapter.update_subscription(
            self.stripe_id, cancel_at_period_end=True
        )
        self.stripe_status = stripe_subscription.status

        if self.on_trial():
            self.ends_at = self.trial_ends_at
        else:
            self.ends_at = timestamp_to_datetime(stripe_subscription.current_period_end)

        self.save(update_fields=["stripe_status", "ends_at", "updated_at"])
        logger.info(
            "Subscription canceled at period end",
            extra={"subscription_id": self.stripe_id, "ends_at": str(self.ends_at)},
        )
        return self

    def cancel_now(self) -> Subscription:
        """Cancel immediately; access ends now."""
        from billing.adapters import StripeAdapter

        StripeAdapter.cancel_subscription(self.stripe_id)
        self.mark_as_canceled()
        logger.info(
            "Subscription canceled immediately",
            extra={"subscription_id": self.stripe_id},
        )
        return self

    def mark_as_canceled(self) -> None:
        self.stripe_status = SubscriptionStatus.CANCELED
        self.ends_at = timezone.now()
        self.save(update_fields=["stripe_status", "ends_at", "updated_at"])

    def resume(self) -> Subscription:
        """
        Undo a cancellation while the subscription is on its grace period.

        Raises:
            SubscriptionUpdateFailureError: The grace period is over or the
                subscription was never canceled
        """
        from billing.adapters import StripeAdapter

        if not self.on_grace_period():
            raise SubscriptionUpdateFailureError(
                "Unable to resume subscription that is not within grace period.",
                details={"subscription_id": self.stripe_id},
            )

        stripe_subscription = StripeAdapter.update_subscription(
            self.stripe_id, cancel_at_period_end=False
        )
        self.stripe_status = stripe_subscription.status
        self.ends_at = None
        self.save(update_fields=["stripe_status", "ends_at", "updated_at"])
        logger.info("Subscription resumed", extra={"subscription_id": self.stripe_id})
        return self


class SubscriptionItem(BaseModel):
    """
    One price line of a Stripe subscription.

    Fields:
        subscription: Parent subscription
        stripe_id: Stripe Subscription Item ID (si_xxx)
        stripe_product: Stripe Product ID
        stripe_price: Stripe Price ID
        quantity: Quantity (null for metered prices)
    """

    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.CASCADE,
        related_name="items",
    )
    stripe_id = models.CharField(max_length=255, unique=True)
    stripe_product = models.CharField(max_length=255)
    stripe_price = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        ordering = ["id"]
        verbose_name = "Subscription Item"
        verbose_name_plural = "Subscription Items"
        constraints = [
            models.UniqueConstraint(
                fields=["subscription", "stripe_price"],
                name="billing_item_unique_price_per_subscription",
            ),
        ]

    def __str__(self) -> str:
        return f"SubscriptionItem({self.stripe_id}, {self.stripe_price})"
