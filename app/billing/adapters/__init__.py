"""
Billing adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency, and observability.

Usage:
    from billing.adapters import StripeAdapter

    customer = StripeAdapter.create_customer(email="user@example.com")
"""

from billing.adapters.stripe_adapter import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    PaymentMethodResult,
    PortalSessionResult,
    StripeAdapter,
    SubscriptionResult,
    WebhookEndpointResult,
    backoff_delay,
    is_retryable_stripe_error,
)

__all__ = [
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "PaymentMethodResult",
    "PortalSessionResult",
    "StripeAdapter",
    "SubscriptionResult",
    "WebhookEndpointResult",
    "backoff_delay",
    "is_retryable_stripe_error",
]
