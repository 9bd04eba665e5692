"""
Billable model mixin.

Mixing Billable into the user model adds the Stripe customer columns and the
methods that manage the customer, answer subscription questions and start
checkout sessions.

Usage:
    class User(Billable, AbstractBaseUser, PermissionsMixin):
        ...

    user.create_or_get_stripe_customer()
    user.subscribed()                       # "default" subscription valid?
    user.subscribed("default", "price_pro")  # ... and on that price?
    session = user.new_subscription("default", "price_pro").checkout(ok_url, cancel_url)

Columns:
    stripe_id: Stripe Customer ID (cus_xxx), unique
    pm_type: Brand of the default card (visa, mastercard, ...)
    pm_last_four: Last four digits of the default card
    trial_ends_at: Generic trial, granted without a subscription
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import models
from django.utils import timezone

from billing.adapters import (
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from billing.builders import SubscriptionBuilder, normalize_prices
from billing.exceptions import CustomerAlreadyCreatedError, InvalidCustomerError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from billing.adapters import (
        CheckoutSessionResult,
        CustomerResult,
        PaymentMethodResult,
    )
    from billing.models import Subscription

logger = logging.getLogger(__name__)


def default_subscription_type() -> str:
    return settings.BILLING_DEFAULT_SUBSCRIPTION_TYPE


class Billable(models.Model):
    """Abstract mixin making a model a Stripe customer."""

    stripe_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Customer ID (cus_xxx)",
    )
    pm_type = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Default payment method brand",
    )
    pm_last_four = models.CharField(
        max_length=4,
        null=True,
        blank=True,
        help_text="Default payment method last four digits",
    )
    trial_ends_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="End of a generic trial (no subscription needed)",
    )

    class Meta:
        abstract = True

    # ==========================================================================
    # Customer
    # ==========================================================================

    def stripe_name(self) -> str | None:
        get_full_name = getattr(self, "get_full_name", None)
        name = get_full_name() if callable(get_full_name) else None
        return name or None

    def stripe_email(self) -> str | None:
        return getattr(self, "email", None) or None

    def has_stripe_id(self) -> bool:
        return bool(self.stripe_id)

    def assert_customer_exists(self) -> None:
        if not self.has_stripe_id():
            raise InvalidCustomerError(
                f"{self.__class__.__name__} is not a Stripe customer yet. "
                "See the create_as_stripe_customer method.",
                details={"billable_id": self.pk},
            )

    def create_as_stripe_customer(self, **options: Any) -> CustomerResult:
        """
        Create the Stripe customer and store its id.

        Email and name default to the model's; options are passed through
        to Stripe. The user id is always added to the metadata.

        Raises:
            CustomerAlreadyCreatedError: stripe_id is already set
        """
        if self.has_stripe_id():
            raise CustomerAlreadyCreatedError(
                f"{self.__class__.__name__} is already a Stripe customer "
                f"with ID {self.stripe_id}.",
                details={"stripe_id": self.stripe_id},
            )

        options.setdefault("email", self.stripe_email())
        options.setdefault("name", self.stripe_name())
        options["metadata"] = {**options.get("metadata", {}), "user_id": str(self.pk)}

        # One key per creation; customer.deleted lets the user be created again.
        creation_id = f"{self.pk}.{uuid.uuid4().hex[:12]}"
        customer = StripeAdapter.create_customer(
            idempotency_key=IdempotencyKeyGenerator.generate("create_customer", creation_id),
            **options,
        )

        self.stripe_id = customer.id
        self.save(update_fields=["stripe_id"])
        logger.info(
            "Stripe customer created",
            extra={"user_id": self.pk, "stripe_id": customer.id},
        )
        return customer

    def update_stripe_customer(self, **options: Any) -> CustomerResult:
        self.assert_customer_exists()
        return StripeAdapter.update_customer(self.stripe_id, **options)

    def create_or_get_stripe_customer(self, **options: Any) -> CustomerResult:
        if self.has_stripe_id():
            return self.as_stripe_customer()
        return self.create_as_stripe_customer(**options)

    def as_stripe_customer(self) -> CustomerResult:
        self.assert_customer_exists()
        return StripeAdapter.retrieve_customer(self.stripe_id)

    def sync_stripe_customer_details(self) -> CustomerResult:
        """Push the local name and email to the Stripe customer."""
        return self.update_stripe_customer(
            name=self.stripe_name() or "",
            email=self.stripe_email() or "",
        )

    @classmethod
    def find_billable(cls, stripe_id: str | None):
        """The billable with this Stripe customer id, or None."""
        if not stripe_id:
            return None
        return cls._default_manager.filter(stripe_id=stripe_id).first()

    # ==========================================================================
    # Subscriptions
    # ==========================================================================

    def subscription(self, type: str | None = None) -> Subscription | None:
        """The most recent subscription of the given type."""
        type = type or default_subscription_type()
        return self.subscriptions.filter(type=type).order_by("-created_at", "-id").first()

    def subscribed(
        self,
        type: str | None = None,
        price: str | Iterable[str] | None = None,
    ) -> bool:
        """
        Whether the subscription of this type is valid.

        With price, the subscription must also include one of the prices.
        """
        subscription = self.subscription(type)
        if subscription is None or not subscription.valid():
            return False
        prices = normalize_prices(price)
        return not prices or subscription.has_any_price(prices)

    def subscribed_to_price(
        self,
        prices: str | Iterable[str],
        type: str | None = None,
    ) -> bool:
        subscription = self.subscription(type)
        if subscription is None or not subscription.valid():
            return False
        return subscription.has_any_price(normalize_prices(prices))

    def on_trial(self, type: str | None = None, price: str | None = None) -> bool:
        """
        Whether the user is on a trial.

        Without arguments a generic trial counts too.
        """
        if type is None and price is None and self.on_generic_trial():
            return True

        subscription = self.subscription(type)
        if subscription is None or not subscription.on_trial():
            return False
        return price is None or subscription.has_price(price)

    def on_generic_trial(self) -> bool:
        return self.trial_ends_at is not None and self.trial_ends_at > timezone.now()

    def has_expired_generic_trial(self) -> bool:
        return self.trial_ends_at is not None and self.trial_ends_at <= timezone.now()

    def has_incomplete_payment(self, type: str | None = None) -> bool:
        subscription = self.subscription(type)
        return subscription is not None and subscription.has_incomplete_payment()

    def new_subscription(
        self,
        type: str | None = None,
        prices: str | Iterable[str] | None = None,
    ) -> SubscriptionBuilder:
        return SubscriptionBuilder(self, type or default_subscription_type(), prices)

    # ==========================================================================
    # Checkout & portal
    # ==========================================================================

    def checkout(
        self,
        prices: str | Iterable[str] | dict[str, int],
        success_url: str,
        cancel_url: str,
        mode: str = "payment",
    ) -> CheckoutSessionResult:
        """
        Create a Checkout Session for arbitrary prices.

        prices may be a price id, a list of price ids or {price_id: quantity}.
        """
        if not self.has_stripe_id():
            self.create_as_stripe_customer()

        if isinstance(prices, dict):
            line_items = [
                {"price": price, "quantity": quantity} for price, quantity in prices.items()
            ]
        else:
            line_items = [{"price": price, "quantity": 1} for price in normalize_prices(prices)]

        return StripeAdapter.create_checkout_session(
            CreateCheckoutSessionParams(
                customer_id=self.stripe_id,
                line_items=line_items,
                success_url=success_url,
                cancel_url=cancel_url,
                mode=mode,
                client_reference_id=str(self.pk),
            )
        )

    def billing_portal_url(self, return_url: str) -> str:
        self.assert_customer_exists()
        return StripeAdapter.create_billing_portal_session(self.stripe_id, return_url).url

    # ==========================================================================
    # Payment methods
    # ==========================================================================

    def has_default_payment_method(self) -> bool:
        return bool(self.pm_type)

    def update_default_payment_method_from_stripe(self) -> None:
        """Copy the brand and last four of the customer's default card."""
        customer = self.as_stripe_customer()

        if customer.default_payment_method:
            payment_method = StripeAdapter.retrieve_payment_method(
                customer.default_payment_method
            )
            self.fill_payment_method_details(payment_method)
        else:
            self.pm_type = None
            self.pm_last_four = None

        self.save(update_fields=["pm_type", "pm_last_four"])

    def fill_payment_method_details(self, payment_method: PaymentMethodResult) -> None:
        if payment_method.type == "card":
            self.pm_type = payment_method.card_brand
            self.pm_last_four = payment_method.last_four
        else:
            self.pm_type = payment_method.type
            self.pm_last_four = None
