"""
Subscription service: the business logic behind the subscription API.

Views stay thin: they validate input, call one SubscriptionService method and
turn the ServiceResult into a response. Billing errors (unknown price, Stripe
declining the request, no subscription to cancel) come back as failed
results; anything else propagates.

Usage:
    from billing.services import SubscriptionService

    result = SubscriptionService.create_checkout(
        request.user, product, success_url, cancel_url
    )
    if result.success:
        return Response({"checkout_url": result.data.url}, status=201)
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.urls import reverse

from billing.exceptions import BillingError
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from django.http import HttpRequest

    from billing.adapters import CheckoutSessionResult
    from billing.models import Product, Subscription


class SubscriptionService(BaseService):
    """Checkout, status, cancellation and portal access for a billable user."""

    @staticmethod
    def callback_urls(request: HttpRequest) -> tuple[str, str]:
        """
        Success and cancel URLs for Stripe Checkout.

        BILLING_SUCCESS_URL / BILLING_CANCEL_URL win when set; otherwise the
        public callback routes of this site are used. Stripe substitutes
        {CHECKOUT_SESSION_ID} in the success URL.
        """
        success_url = settings.BILLING_SUCCESS_URL or (
            request.build_absolute_uri(reverse("subscription_success"))
            + "?session_id={CHECKOUT_SESSION_ID}"
        )
        cancel_url = settings.BILLING_CANCEL_URL or request.build_absolute_uri(
            reverse("subscription_cancel")
        )
        return success_url, cancel_url

    @classmethod
    def create_checkout(
        cls,
        user,
        product: Product,
        success_url: str,
        cancel_url: str,
        type: str | None = None,
    ) -> ServiceResult[CheckoutSessionResult]:
        """
        Start a Stripe Checkout Session subscribing the user to the product.

        The user becomes a Stripe customer first if needed.
        """
        try:
            session = user.new_subscription(type, product.stripe_price_id).checkout(
                success_url, cancel_url
            )
        except BillingError as e:
            return cls.handle_exception(e, "Subscription checkout failed", logging.WARNING)

        cls.get_logger().info(
            "Checkout session ready",
            extra={
                "user_id": user.pk,
                "product_id": product.pk,
                "session_id": session.id,
            },
        )
        return ServiceResult.success(session)

    @classmethod
    def get_status(cls, user, type: str | None = None) -> dict[str, Any]:
        type = type or settings.BILLING_DEFAULT_SUBSCRIPTION_TYPE
        subscription = user.subscription(type)

        if subscription is None:
            return {
                "subscribed": False,
                "status": None,
                "type": type,
                "price": None,
                "on_trial": user.on_generic_trial(),
                "on_grace_period": False,
                "ends_at": None,
                "trial_ends_at": user.trial_ends_at,
                "has_incomplete_payment": False,
            }

        return {
            "subscribed": user.subscribed(type),
            "status": subscription.stripe_status,
            "type": type,
            "price": subscription.stripe_price,
            "on_trial": subscription.on_trial(),
            "on_grace_period": subscription.on_grace_period(),
            "ends_at": subscription.ends_at,
            "trial_ends_at": subscription.trial_ends_at,
            "has_incomplete_payment": subscription.has_incomplete_payment(),
        }

    @classmethod
    def cancel(cls, user, type: str | None = None) -> ServiceResult[Subscription]:
        """Cancel the subscription at the end of the billing period."""
        subscription = user.subscription(type)

        if subscription is None or subscription.ended():
            return ServiceResult.failure(
                "No active subscription to cancel.",
                error_code="SUBSCRIPTION_NOT_FOUND",
            )
        if subscription.on_grace_period():
            return ServiceResult.failure(
                "Subscription is already canceled.",
                error_code="SUBSCRIPTION_ALREADY_CANCELED",
            )

        try:
            subscription.cancel()
        except BillingError as e:
            return cls.handle_exception(e, "Subscription cancel failed", logging.WARNING)

        return ServiceResult.success(subscription)

    @classmethod
    def resume(cls, user, type: str | None = None) -> ServiceResult[Subscription]:
        """Resume a canceled subscription that is still on its grace period."""
        subscription = user.subscription(type)

        if subscription is None:
            return ServiceResult.failure(
                "No subscription to resume.",
                error_code="SUBSCRIPTION_NOT_FOUND",
            )

        try:
            subscription.resume()
        except BillingError as e:
            return cls.handle_exception(e, "Subscription resume failed", logging.WARNING)

        return ServiceResult.success(subscription)

    @classmethod
    def portal_url(cls, user, return_url: str) -> ServiceResult[str]:
        try:
            url = user.billing_portal_url(return_url)
        except BillingError as e:
            return cls.handle_exception(e, "Billing portal session failed", logging.WARNING)
        return ServiceResult.success(url)
