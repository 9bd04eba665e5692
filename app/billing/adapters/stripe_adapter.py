"""
Stripe API adapter for billing operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- Configurable timeouts on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency support for customer creation
- Thread-safe for use from Celery workers

Configuration (via settings):
- STRIPE_SECRET: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_WEBHOOK_TOLERANCE: Signature timestamp tolerance in seconds
- STRIPE_API_VERSION: Pinned Stripe API version
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Max network retries (default: 3)

Usage:
    from billing.adapters import StripeAdapter, CreateCheckoutSessionParams

    session = StripeAdapter.create_checkout_session(
        CreateCheckoutSessionParams(
            customer_id="cus_123",
            line_items=[{"price": "price_basic", "quantity": 1}],
            success_url="https://example.com/subscription/success/",
            cancel_url="https://example.com/subscription/cancel/",
            subscription_metadata={"type": "default"},
        )
    )
    redirect(session.url)
"""

from __future__ import annotations

import hashlib
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from billing.exceptions import (
    BillingValidationError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInvalidRequestError,
    StripeRateLimitError,
)

CHECKOUT_MODES = ("subscription", "payment", "setup")


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout Session.

    Attributes:
        customer_id: Stripe Customer ID the session is created for
        line_items: [{"price": "price_xxx", "quantity": 1}, ...]
        success_url: Redirect target after a completed checkout
        cancel_url: Redirect target when the customer backs out
        mode: 'subscription', 'payment' or 'setup'
        subscription_metadata: Copied onto the created subscription
        metadata: Attached to the session itself
        trial_period_days: Free trial length for subscription mode
        allow_promotion_codes: Show the promotion code field
        client_reference_id: Our own reference (user pk)
    """

    customer_id: str
    line_items: list[dict[str, Any]]
    success_url: str
    cancel_url: str
    mode: str = "subscription"
    subscription_metadata: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    trial_period_days: int | None = None
    allow_promotion_codes: bool = False
    client_reference_id: str | None = None

    def __post_init__(self) -> None:
        if not self.customer_id:
            raise BillingValidationError("customer_id is required")
        if not self.line_items:
            raise BillingValidationError("At least one line item is required")
        if self.mode not in CHECKOUT_MODES:
            raise BillingValidationError(
                f"Unsupported checkout mode: {self.mode}",
                details={"mode": self.mode},
            )
        if not self.success_url or not self.cancel_url:
            raise BillingValidationError("success_url and cancel_url are required")
        if self.trial_period_days is not None and self.trial_period_days < 1:
            raise BillingValidationError(
                "trial_period_days must be positive",
                details={"trial_period_days": self.trial_period_days},
            )

    def to_stripe_params(self) -> dict[str, Any]:
        """Build the keyword arguments for stripe.checkout.Session.create."""
        params: dict[str, Any] = {
            "customer": self.customer_id,
            "mode": self.mode,
            "line_items": self.line_items,
            "success_url": self.success_url,
            "cancel_url": self.cancel_url,
        }
        if self.metadata:
            params["metadata"] = self.metadata
        if self.client_reference_id:
            params["client_reference_id"] = self.client_reference_id
        if self.allow_promotion_codes:
            params["allow_promotion_codes"] = True
        if self.mode == "subscription":
            subscription_data: dict[str, Any] = {}
            if self.subscription_metadata:
                subscription_data["metadata"] = self.subscription_metadata
            if self.trial_period_days:
                subscription_data["trial_period_days"] = self.trial_period_days
            if subscription_data:
                params["subscription_data"] = subscription_data
        return params


@dataclass
class CustomerResult:
    """
    Result from Stripe Customer operations.

    Attributes:
        id: Customer ID (cus_xxx)
        email: Customer email
        name: Customer display name
        default_payment_method: PaymentMethod ID set for invoices (if any)
        deleted: True when the customer was deleted on Stripe
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    email: str | None = None
    name: str | None = None
    default_payment_method: str | None = None
    deleted: bool = False
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckoutSessionResult:
    """Result from Stripe Checkout Session creation."""

    id: str
    url: str
    mode: str
    customer_id: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class SubscriptionResult:
    """
    Result from Stripe Subscription operations.

    Attributes:
        id: Subscription ID (sub_xxx)
        status: Stripe status (trialing, active, past_due, canceled, ...)
        customer_id: Owning customer
        cancel_at_period_end: Whether the subscription ends with the period
        current_period_end: Unix timestamp of the current period end
        trial_end: Unix timestamp of the trial end
        ended_at: Unix timestamp of the end (canceled subscriptions)
        items: Raw subscription item dicts
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    status: str
    customer_id: str | None = None
    cancel_at_period_end: bool = False
    current_period_end: int | None = None
    trial_end: int | None = None
    ended_at: int | None = None
    items: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, data: dict[str, Any]) -> SubscriptionResult:
        """
        Build a result from a subscription dict (API response or webhook).

        Newer API versions moved current_period_end onto the items; the first
        item's value is used when the top-level field is missing.
        """
        items = list((data.get("items") or {}).get("data") or [])
        current_period_end = data.get("current_period_end")
        if current_period_end is None and items:
            current_period_end = items[0].get("current_period_end")
        return cls(
            id=data["id"],
            status=data.get("status") or "",
            customer_id=data.get("customer"),
            cancel_at_period_end=bool(data.get("cancel_at_period_end")),
            current_period_end=current_period_end,
            trial_end=data.get("trial_end"),
            ended_at=data.get("ended_at"),
            items=items,
            metadata=dict(data.get("metadata") or {}),
            raw_response=data,
        )


@dataclass
class PaymentMethodResult:
    """Result from Stripe PaymentMethod retrieval."""

    id: str
    type: str
    card_brand: str | None = None
    last_four: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class PortalSessionResult:
    """Result from Stripe billing portal session creation."""

    id: str
    url: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookEndpointResult:
    """
    Result from Stripe WebhookEndpoint creation.

    Attributes:
        secret: Signing secret (only returned on creation)
    """

    id: str
    url: str
    status: str
    enabled_events: list[str] = field(default_factory=list)
    secret: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="create_customer",
            entity_id=user.pk,
        )
        # Result: "create_customer:42:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | int | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a Stripe error is retryable.

    Use this in Celery tasks to decide whether to retry:

        try:
            dispatch_webhook(event)
        except Exception as e:
            if is_retryable_stripe_error(e):
                raise self.retry(exc=e, countdown=backoff_delay(self.request.retries))
            raise
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)

    Returns:
        Delay in seconds with jitter (0-25% of calculated delay)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are class methods - no instance state is maintained.

    Usage:
        customer = StripeAdapter.create_customer(email=user.email, metadata={...})
        session = StripeAdapter.create_checkout_session(params)
        event = StripeAdapter.verify_webhook_signature(payload, signature)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, version, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET
        api_version = getattr(settings, "STRIPE_API_VERSION", None)
        if api_version:
            stripe.api_version = api_version
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _call(cls, operation: str, log_context: dict[str, Any], func, *args, **kwargs):
        """
        Run one Stripe SDK call with timing, logging and error translation.

        Returns the SDK object. Stripe exceptions are translated by
        _handle_stripe_error; anything else propagates unchanged.
        """
        cls._configure_stripe()
        logger = cls.get_logger()
        log_context = {"operation": operation, **log_context}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            result = func(*args, **kwargs)
        except stripe.StripeError as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "stripe_object_id": getattr(result, "id", None),
                "duration_ms": duration_ms,
            },
        )
        return result

    # =========================================================================
    # Customers
    # =========================================================================

    @classmethod
    def create_customer(
        cls,
        email: str | None = None,
        name: str | None = None,
        metadata: dict[str, str] | None = None,
        idempotency_key: str | None = None,
        **options: Any,
    ) -> CustomerResult:
        """
        Create a Stripe Customer.

        Args:
            email: Customer email
            name: Customer display name
            metadata: Key-value pairs (user_id is attached by the billable)
            idempotency_key: Key for safe retries
            **options: Any other stripe.Customer.create parameter

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
        """
        params: dict[str, Any] = {**options}
        if email:
            params["email"] = email
        if name:
            params["name"] = name
        if metadata:
            params["metadata"] = metadata
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        customer = cls._call(
            "create_customer",
            {"email": email, "idempotency_key": idempotency_key},
            stripe.Customer.create,
            **params,
        )
        return cls._customer_result(customer)

    @classmethod
    def retrieve_customer(cls, customer_id: str) -> CustomerResult:
        customer = cls._call(
            "retrieve_customer",
            {"customer_id": customer_id},
            stripe.Customer.retrieve,
            customer_id,
        )
        return cls._customer_result(customer)

    @classmethod
    def update_customer(cls, customer_id: str, **params: Any) -> CustomerResult:
        """Update a Stripe Customer (email, name, metadata, invoice_settings...)."""
        customer = cls._call(
            "update_customer",
            {"customer_id": customer_id, "fields": sorted(params)},
            stripe.Customer.modify,
            customer_id,
            **params,
        )
        return cls._customer_result(customer)

    @staticmethod
    def _customer_result(customer) -> CustomerResult:
        data = customer.to_dict()
        invoice_settings = data.get("invoice_settings") or {}
        default_pm = invoice_settings.get("default_payment_method")
        if isinstance(default_pm, dict):
            default_pm = default_pm.get("id")
        return CustomerResult(
            id=data["id"],
            email=data.get("email"),
            name=data.get("name"),
            default_payment_method=default_pm,
            deleted=bool(data.get("deleted")),
            raw_response=data,
        )

    # =========================================================================
    # Checkout & Billing Portal
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout Session.

        Raises:
            StripeInvalidRequestError: Unknown price or customer
            StripeAPIUnavailableError: Stripe service unavailable
        """
        session = cls._call(
            "create_checkout_session",
            {
                "customer_id": params.customer_id,
                "mode": params.mode,
                "prices": [item.get("price") for item in params.line_items],
            },
            stripe.checkout.Session.create,
            **params.to_stripe_params(),
        )
        return CheckoutSessionResult(
            id=session.id,
            url=session.url,
            mode=session.mode,
            customer_id=session.customer,
            raw_response=session.to_dict(),
        )

    @classmethod
    def create_billing_portal_session(
        cls,
        customer_id: str,
        return_url: str,
    ) -> PortalSessionResult:
        session = cls._call(
            "create_billing_portal_session",
            {"customer_id": customer_id},
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return PortalSessionResult(
            id=session.id,
            url=session.url,
            raw_response=session.to_dict(),
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    @classmethod
    def retrieve_subscription(cls, subscription_id: str) -> SubscriptionResult:
        subscription = cls._call(
            "retrieve_subscription",
            {"subscription_id": subscription_id},
            stripe.Subscription.retrieve,
            subscription_id,
        )
        return SubscriptionResult.from_stripe(subscription.to_dict())

    @classmethod
    def update_subscription(cls, subscription_id: str, **params: Any) -> SubscriptionResult:
        """
        Update a Stripe Subscription.

        Example:
            # Cancel at the end of the billing period
            StripeAdapter.update_subscription("sub_123", cancel_at_period_end=True)
        """
        subscription = cls._call(
            "update_subscription",
            {"subscription_id": subscription_id, "fields": sorted(params)},
            stripe.Subscription.modify,
            subscription_id,
            **params,
        )
        return SubscriptionResult.from_stripe(subscription.to_dict())

    @classmethod
    def cancel_subscription(cls, subscription_id: str) -> SubscriptionResult:
        """Cancel a Stripe Subscription immediately."""
        subscription = cls._call(
            "cancel_subscription",
            {"subscription_id": subscription_id},
            stripe.Subscription.cancel,
            subscription_id,
        )
        return SubscriptionResult.from_stripe(subscription.to_dict())

    # =========================================================================
    # Payment Methods
    # =========================================================================

    @classmethod
    def retrieve_payment_method(cls, payment_method_id: str) -> PaymentMethodResult:
        payment_method = cls._call(
            "retrieve_payment_method",
            {"payment_method_id": payment_method_id},
            stripe.PaymentMethod.retrieve,
            payment_method_id,
        )
        data = payment_method.to_dict()
        card = data.get("card") or {}
        return PaymentMethodResult(
            id=data["id"],
            type=data.get("type") or "",
            card_brand=card.get("brand"),
            last_four=card.get("last4"),
            raw_response=data,
        )

    # =========================================================================
    # Webhook Endpoints
    # =========================================================================

    @classmethod
    def create_webhook_endpoint(
        cls,
        url: str,
        enabled_events: list[str],
        api_version: str | None = None,
    ) -> WebhookEndpointResult:
        """
        Register a webhook endpoint on the Stripe account.

        The signing secret is only present in this response; callers must
        store it as STRIPE_WEBHOOK_SECRET.
        """
        params: dict[str, Any] = {"url": url, "enabled_events": enabled_events}
        if api_version:
            params["api_version"] = api_version

        endpoint = cls._call(
            "create_webhook_endpoint",
            {"url": url, "api_version": api_version},
            stripe.WebhookEndpoint.create,
            **params,
        )
        return cls._webhook_endpoint_result(endpoint)

    @classmethod
    def disable_webhook_endpoint(cls, endpoint_id: str) -> WebhookEndpointResult:
        endpoint = cls._call(
            "disable_webhook_endpoint",
            {"endpoint_id": endpoint_id},
            stripe.WebhookEndpoint.modify,
            endpoint_id,
            disabled=True,
        )
        return cls._webhook_endpoint_result(endpoint)

    @staticmethod
    def _webhook_endpoint_result(endpoint) -> WebhookEndpointResult:
        data = endpoint.to_dict()
        return WebhookEndpointResult(
            id=data["id"],
            url=data.get("url") or "",
            status=data.get("status") or "",
            enabled_events=list(data.get("enabled_events") or []),
            secret=data.get("secret"),
            raw_response=data,
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or malformed payload
        """
        tolerance = getattr(settings, "STRIPE_WEBHOOK_TOLERANCE", 300)
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
                tolerance=tolerance,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request or bad credentials
            StripeRateLimitError: Rate limited
            StripeAPIUnavailableError: Network failure, 5xx or unknown error
        """
        logger = cls.get_logger()

        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning(
                "Rate limited by Stripe",
                extra=log_context,
            )
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            # Invalid API key - permanent, operational issue
            logger.critical(
                "Stripe authentication failed - check STRIPE_SECRET",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error(
                "Stripe API error",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
