"""
Billing exceptions for customer, subscription and Stripe operations.

Exception Hierarchy:
    BillingError (base for the billing domain)
    ├── BillingNotFoundError - Product/subscription/customer lookup failures
    ├── BillingValidationError - Unknown prices, bad checkout parameters
    ├── CustomerAlreadyCreatedError - User already has a Stripe customer
    ├── InvalidCustomerError - User has no Stripe customer yet
    ├── SubscriptionUpdateFailureError - Local state forbids the change
    └── BillingProcessingError - Stripe call failed
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            └── StripeAPIUnavailableError - API unavailable (transient, retry)

Usage:
    from billing.exceptions import BillingError, InvalidCustomerError

    if not user.has_stripe_id():
        raise InvalidCustomerError(
            f"User {user.pk} is not a Stripe customer yet",
            details={"user_id": user.pk},
        )

    try:
        session = user.new_subscription("default", price).checkout(...)
    except BillingError as e:
        return Response(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Billing Domain Exceptions
# =============================================================================


class BillingError(BaseApplicationError):
    """
    Base exception for all billing operations.

    Views catch this single type and turn it into a 400 response with the
    message under "error".
    """

    default_error_code: str = "BILLING_ERROR"


class BillingNotFoundError(BillingError, NotFoundError):
    """Raised when a product, subscription or customer cannot be found."""

    default_error_code: str = "BILLING_NOT_FOUND"


class BillingValidationError(BillingError, ValidationError):
    """
    Raised when billing input is rejected before reaching Stripe.

    Example:
        if not prices:
            raise BillingValidationError(
                "At least one price is required",
                details={"type": subscription_type},
            )
    """

    default_error_code: str = "BILLING_VALIDATION_ERROR"


class CustomerAlreadyCreatedError(BillingError, ConflictError):
    """Raised when creating a Stripe customer for a user that already has one."""

    default_error_code: str = "CUSTOMER_ALREADY_CREATED"


class InvalidCustomerError(BillingError):
    """Raised when a Stripe operation needs a customer the user doesn't have."""

    default_error_code: str = "INVALID_CUSTOMER"


class SubscriptionUpdateFailureError(BillingError, ConflictError):
    """
    Raised when a subscription change is not allowed in its current state.

    Example:
        if not subscription.on_grace_period():
            raise SubscriptionUpdateFailureError(
                "Unable to resume subscription that is not within grace period",
                details={"subscription_id": subscription.stripe_id},
            )
    """

    default_error_code: str = "SUBSCRIPTION_UPDATE_FAILED"


class BillingProcessingError(BillingError, ExternalServiceError):
    """Raised when a call to the payment provider fails."""

    default_error_code: str = "BILLING_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(BillingProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    The decline_code attribute contains the specific reason
    (generic_decline, insufficient_funds, expired_card, ...).
    """

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Covers unknown price ids, deleted customers and bad webhook signatures.
    The request will never succeed with the same parameters.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    This covers network connectivity issues and Stripe server errors (5xx).
    Retry with exponential backoff.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


__all__ = [
    # Billing domain
    "BillingError",
    "BillingNotFoundError",
    "BillingValidationError",
    "CustomerAlreadyCreatedError",
    "InvalidCustomerError",
    "SubscriptionUpdateFailureError",
    "BillingProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
]
