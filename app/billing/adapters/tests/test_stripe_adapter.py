"""
Tests for Stripe adapter.

Tests cover:
- Checkout session parameter validation
- Idempotency key generation
- Error translation for each exception type
- Successful API operations
- Helper functions (is_retryable, backoff_delay)
"""

from unittest.mock import patch

import pytest
import stripe
from django.test import override_settings

from billing.adapters import (
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
    SubscriptionResult,
    backoff_delay,
    is_retryable_stripe_error,
)
from billing.exceptions import (
    BillingValidationError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
)


def checkout_params(**overrides):
    values = {
        "customer_id": "cus_test123",
        "line_items": [{"price": "price_basic", "quantity": 1}],
        "success_url": "https://example.com/subscription/success/",
        "cancel_url": "https://example.com/subscription/cancel/",
    }
    values.update(overrides)
    return CreateCheckoutSessionParams(**values)


# =============================================================================
# CreateCheckoutSessionParams Tests
# =============================================================================


class TestCreateCheckoutSessionParams:
    """Tests for CreateCheckoutSessionParams validation and conversion."""

    def test_defaults_to_subscription_mode(self):
        params = checkout_params()

        assert params.mode == "subscription"
        assert params.allow_promotion_codes is False

    def test_requires_line_items(self):
        with pytest.raises(BillingValidationError, match="line item"):
            checkout_params(line_items=[])

    def test_requires_customer(self):
        with pytest.raises(BillingValidationError, match="customer_id"):
            checkout_params(customer_id="")

    def test_rejects_unknown_mode(self):
        with pytest.raises(BillingValidationError, match="Unsupported checkout mode"):
            checkout_params(mode="donation")

    def test_rejects_non_positive_trial(self):
        with pytest.raises(BillingValidationError, match="trial_period_days"):
            checkout_params(trial_period_days=0)

    def test_subscription_data_carries_metadata_and_trial(self):
        params = checkout_params(
            subscription_metadata={"type": "default"},
            trial_period_days=14,
            allow_promotion_codes=True,
        )

        stripe_params = params.to_stripe_params()

        assert stripe_params["subscription_data"] == {
            "metadata": {"type": "default"},
            "trial_period_days": 14,
        }
        assert stripe_params["allow_promotion_codes"] is True
        assert stripe_params["mode"] == "subscription"

    def test_payment_mode_omits_subscription_data(self):
        params = checkout_params(mode="payment", subscription_metadata={"type": "x"})

        assert "subscription_data" not in params.to_stripe_params()


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for idempotency key generation."""

    def test_generate_key_format(self):
        key = IdempotencyKeyGenerator.generate("create_customer", 42)

        parts = key.split(":")
        assert parts[0] == "create_customer"
        assert parts[1] == "42"
        assert parts[2] == "1"
        assert len(parts[3]) == 8

    def test_same_inputs_produce_same_key(self):
        first = IdempotencyKeyGenerator.generate("create_customer", 42)
        second = IdempotencyKeyGenerator.generate("create_customer", 42)

        assert first == second

    def test_different_attempts_produce_different_keys(self):
        first = IdempotencyKeyGenerator.generate("create_customer", 42, attempt=1)
        second = IdempotencyKeyGenerator.generate("create_customer", 42, attempt=2)

        assert first != second


# =============================================================================
# Retry Helper Tests
# =============================================================================


class TestIsRetryableStripeError:
    def test_retryable_errors(self):
        assert is_retryable_stripe_error(StripeRateLimitError("slow down")) is True
        assert is_retryable_stripe_error(StripeAPIUnavailableError("down")) is True

    def test_non_retryable_errors(self):
        assert is_retryable_stripe_error(StripeCardDeclinedError("declined")) is False
        assert is_retryable_stripe_error(StripeInvalidRequestError("bad")) is False

    def test_non_stripe_errors(self):
        assert is_retryable_stripe_error(ValueError("nope")) is False


class TestBackoffDelay:
    def test_exponential_growth(self):
        assert 1.0 <= backoff_delay(0) <= 1.25
        assert 2.0 <= backoff_delay(1) <= 2.5
        assert 4.0 <= backoff_delay(2) <= 5.0

    def test_respects_max_delay(self):
        assert backoff_delay(20, max_delay=60.0) <= 75.0


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_card_declined_error(self, mock_stripe_checkout_session, card_error):
        mock_stripe_checkout_session.create.side_effect = card_error()

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_checkout_session(checkout_params())

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False

    def test_invalid_request_error(
        self, mock_stripe_checkout_session, invalid_request_error
    ):
        mock_stripe_checkout_session.create.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_checkout_session(checkout_params())

        assert exc_info.value.stripe_code == "resource_missing"
        assert "price_missing" in exc_info.value.message

    def test_rate_limit_error(self, mock_stripe_customer, rate_limit_error):
        mock_stripe_customer.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.create_customer(email="user@example.com")

        assert exc_info.value.is_retryable is True

    def test_api_connection_error(self, mock_stripe_customer, api_connection_error):
        mock_stripe_customer.retrieve.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.retrieve_customer("cus_test123")

        assert exc_info.value.stripe_code == "api_connection_error"

    def test_api_error(self, mock_stripe_subscription, api_error):
        mock_stripe_subscription.retrieve.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.retrieve_subscription("sub_test123")

        assert exc_info.value.stripe_code == "api_error"

    def test_authentication_error(self, mock_stripe_customer, authentication_error):
        mock_stripe_customer.create.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_customer(email="user@example.com")

        assert exc_info.value.stripe_code == "authentication_error"
        assert exc_info.value.is_retryable is False

    def test_unknown_stripe_error(self, mock_stripe_customer):
        mock_stripe_customer.create.side_effect = stripe.IdempotencyError(
            message="Keys for idempotent requests can only be used once."
        )

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_customer(email="user@example.com")

        assert exc_info.value.stripe_code == "unknown_error"

    def test_non_stripe_errors_propagate(self, mock_stripe_customer):
        mock_stripe_customer.create.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            StripeAdapter.create_customer(email="user@example.com")


# =============================================================================
# Operation Tests
# =============================================================================


class TestStripeAdapterOperations:
    """Tests for successful Stripe operations."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_customer_passes_fields(self, mock_stripe_customer):
        result = StripeAdapter.create_customer(
            email="billing@example.com",
            name="Jane Doe",
            metadata={"user_id": "7"},
            idempotency_key="create_customer:7:1:abcd1234",
        )

        mock_stripe_customer.create.assert_called_once_with(
            email="billing@example.com",
            name="Jane Doe",
            metadata={"user_id": "7"},
            idempotency_key="create_customer:7:1:abcd1234",
        )
        assert result.id == "cus_test123"
        assert result.email == "billing@example.com"

    def test_update_customer_reads_default_payment_method(
        self, mock_stripe_customer, mock_customer
    ):
        mock_stripe_customer.modify.return_value = mock_customer(
            default_payment_method="pm_card_visa"
        )

        result = StripeAdapter.update_customer("cus_test123", name="New Name")

        mock_stripe_customer.modify.assert_called_once_with(
            "cus_test123", name="New Name"
        )
        assert result.default_payment_method == "pm_card_visa"

    def test_create_checkout_session(self, mock_stripe_checkout_session):
        params = checkout_params(subscription_metadata={"type": "default"})

        result = StripeAdapter.create_checkout_session(params)

        kwargs = mock_stripe_checkout_session.create.call_args.kwargs
        assert kwargs["customer"] == "cus_test123"
        assert kwargs["line_items"] == [{"price": "price_basic", "quantity": 1}]
        assert kwargs["subscription_data"] == {"metadata": {"type": "default"}}
        assert result.id == "cs_test123"
        assert result.url.startswith("https://checkout.stripe.com/")

    def test_cancel_subscription_at_period_end(self, mock_stripe_subscription):
        result = StripeAdapter.update_subscription(
            "sub_test123", cancel_at_period_end=True
        )

        mock_stripe_subscription.modify.assert_called_once_with(
            "sub_test123", cancel_at_period_end=True
        )
        assert result.cancel_at_period_end is True
        assert result.current_period_end == 1893456000

    def test_cancel_subscription_now(self, mock_stripe_subscription):
        result = StripeAdapter.cancel_subscription("sub_test123")

        mock_stripe_subscription.cancel.assert_called_once_with("sub_test123")
        assert result.status == "canceled"

    def test_retrieve_payment_method(self, mock_stripe_payment_method):
        result = StripeAdapter.retrieve_payment_method("pm_test123")

        mock_stripe_payment_method.retrieve.assert_called_once_with("pm_test123")

        assert result.card_brand == "visa"
        assert result.last_four == "4242"

    def test_create_webhook_endpoint(self):
        with patch("stripe.WebhookEndpoint") as mock_endpoint:
            mock_endpoint.create.return_value.to_dict.return_value = {
                "id": "we_test123",
                "url": "https://example.com/stripe/webhook/",
                "status": "enabled",
                "enabled_events": ["customer.updated"],
                "secret": "whsec_new",
            }

            result = StripeAdapter.create_webhook_endpoint(
                "https://example.com/stripe/webhook/",
                ["customer.updated"],
                api_version="2024-06-20",
            )

        mock_endpoint.create.assert_called_once_with(
            url="https://example.com/stripe/webhook/",
            enabled_events=["customer.updated"],
            api_version="2024-06-20",
        )
        assert result.id == "we_test123"
        assert result.secret == "whsec_new"
        assert result.enabled_events == ["customer.updated"]


class TestSubscriptionResult:
    def test_period_end_falls_back_to_first_item(self):
        result = SubscriptionResult.from_stripe(
            {
                "id": "sub_123",
                "status": "active",
                "items": {"data": [{"id": "si_1", "current_period_end": 1700000000}]},
            }
        )

        assert result.current_period_end == 1700000000
        assert result.metadata == {}


# =============================================================================
# Webhook Verification Tests
# =============================================================================


class TestWebhookVerification:
    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_test", STRIPE_WEBHOOK_TOLERANCE=120)
    def test_verify_webhook_signature_success(self, mock_stripe_webhook):
        event = StripeAdapter.verify_webhook_signature(b"{}", "t=1,v1=abc")

        mock_stripe_webhook.construct_event.assert_called_once_with(
            b"{}", "t=1,v1=abc", "whsec_test", tolerance=120
        )
        assert event["id"] == "evt_test123"

    def test_verify_webhook_signature_invalid(
        self, mock_stripe_webhook, signature_verification_error
    ):
        mock_stripe_webhook.construct_event.side_effect = signature_verification_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"{}", "bad")

        assert exc_info.value.stripe_code == "signature_verification_failed"

    def test_verify_webhook_malformed_payload(self, mock_stripe_webhook):
        mock_stripe_webhook.construct_event.side_effect = ValueError("bad json")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"not json", "t=1,v1=abc")

        assert exc_info.value.stripe_code == "invalid_payload"


# =============================================================================
# Configuration Tests
# =============================================================================


class TestStripeAdapterConfiguration:
    @override_settings(STRIPE_SECRET="sk_test_custom")
    def test_uses_settings_api_key(
        self, mock_stripe_customer, mock_stripe_http_client
    ):
        StripeAdapter.retrieve_customer("cus_test123")

        assert stripe.api_key == "sk_test_custom"

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_timeout(self, mock_stripe_customer, mock_stripe_http_client):
        StripeAdapter.retrieve_customer("cus_test123")

        mock_stripe_http_client.assert_called_with(timeout=30)
