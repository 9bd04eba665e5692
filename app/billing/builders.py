"""
SubscriptionBuilder: fluent construction of a subscription checkout.

Usage:
    session = (
        user.new_subscription("default", "price_monthly")
        .trial_days(14)
        .with_metadata({"campaign": "spring"})
        .allow_promotion_codes()
        .checkout(success_url, cancel_url)
    )
    return redirect(session.url)

The local Subscription row is not created here. Stripe creates the
subscription when the customer completes checkout and reports it through the
customer.subscription.created webhook, which carries the type in the
subscription metadata set below.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from billing.adapters import CreateCheckoutSessionParams, StripeAdapter
from billing.exceptions import BillingValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from billing.adapters import CheckoutSessionResult

logger = logging.getLogger(__name__)


def normalize_prices(prices: str | Iterable[str] | None) -> list[str]:
    if prices is None:
        return []
    if isinstance(prices, str):
        return [prices]
    return list(prices)


class SubscriptionBuilder:
    """Collects prices and options, then opens a Stripe Checkout Session."""

    def __init__(self, owner, type: str, prices: str | Iterable[str] | None = None):
        self.owner = owner
        self.type = type
        self.items: dict[str, dict[str, Any]] = {}
        self._trial_days: int | None = None
        self._skip_trial = False
        self._metadata: dict[str, str] = {}
        self._allow_promotion_codes = False

        for price in normalize_prices(prices):
            self.price(price)

    def price(self, price: str, quantity: int = 1) -> SubscriptionBuilder:
        self.items[price] = {"price": price, "quantity": quantity}
        return self

    def quantity(self, quantity: int, price: str | None = None) -> SubscriptionBuilder:
        """
        Set the quantity of a price.

        Raises:
            BillingValidationError: No price given while several are set
        """
        if price is None:
            if len(self.items) != 1:
                raise BillingValidationError(
                    "Price is required when creating subscriptions with multiple prices.",
                    details={"prices": list(self.items)},
                )
            price = next(iter(self.items))
        return self.price(price, quantity)

    def trial_days(self, days: int) -> SubscriptionBuilder:
        self._trial_days = days
        return self

    def skip_trial(self) -> SubscriptionBuilder:
        self._skip_trial = True
        return self

    def with_metadata(self, metadata: dict[str, str]) -> SubscriptionBuilder:
        self._metadata = {**self._metadata, **metadata}
        return self

    def allow_promotion_codes(self) -> SubscriptionBuilder:
        self._allow_promotion_codes = True
        return self

    def checkout(self, success_url: str, cancel_url: str) -> CheckoutSessionResult:
        """
        Create a Checkout Session in subscription mode.

        The owner becomes a Stripe customer first if it isn't one yet.

        Raises:
            BillingValidationError: No prices were added
            StripeError: Stripe rejected the session
        """
        if not self.items:
            raise BillingValidationError(
                "At least one price is required to start a subscription.",
                details={"type": self.type},
            )

        if not self.owner.has_stripe_id():
            self.owner.create_as_stripe_customer()

        params = CreateCheckoutSessionParams(
            customer_id=self.owner.stripe_id,
            line_items=list(self.items.values()),
            success_url=success_url,
            cancel_url=cancel_url,
            mode="subscription",
            subscription_metadata={**self._metadata, "type": self.type},
            metadata=dict(self._metadata),
            trial_period_days=None if self._skip_trial else self._trial_days,
            allow_promotion_codes=self._allow_promotion_codes,
            client_reference_id=str(self.owner.pk),
        )
        session = StripeAdapter.create_checkout_session(params)

        logger.info(
            "Subscription checkout created",
            extra={
                "user_id": self.owner.pk,
                "type": self.type,
                "prices": list(self.items),
                "session_id": session.id,
            },
        )
        return session
