"""
Tests for SubscriptionService.

Stripe is mocked through the stripe_adapter fixture; billing errors must
come back as failed ServiceResults, never as exceptions.
"""

from datetime import timedelta

from django.test import RequestFactory
from django.utils import timezone

from billing.exceptions import StripeCardDeclinedError, StripeInvalidRequestError
from billing.services import SubscriptionService
from billing.states import SubscriptionStatus
from billing.tests.factories import SubscriptionFactory


class TestCallbackUrls:
    def test_built_from_request(self, settings):
        settings.BILLING_SUCCESS_URL = ""
        settings.BILLING_CANCEL_URL = ""
        request = RequestFactory().get("/api/v1/subscription/payment/")

        success_url, cancel_url = SubscriptionService.callback_urls(request)

        assert success_url == (
            "http://testserver/subscription/success/?session_id={CHECKOUT_SESSION_ID}"
        )
        assert cancel_url == "http://testserver/subscription/cancel/"

    def test_settings_take_precedence(self, settings):
        settings.BILLING_SUCCESS_URL = "https://app.example.com/welcome"
        settings.BILLING_CANCEL_URL = "https://app.example.com/pricing"
        request = RequestFactory().get("/")

        assert SubscriptionService.callback_urls(request) == (
            "https://app.example.com/welcome",
            "https://app.example.com/pricing",
        )


class TestCreateCheckout:
    def test_success(self, stripe_adapter, customer, product):
        result = SubscriptionService.create_checkout(
            customer, product, "https://ok", "https://cancel"
        )

        assert result.success is True
        assert result.data.id == "cs_test_123"
        params = stripe_adapter.create_checkout_session.call_args.args[0]
        assert params.line_items == [{"price": "price_pro", "quantity": 1}]
        assert params.subscription_metadata["type"] == "default"

    def test_stripe_error_becomes_failure(self, stripe_adapter, customer, product):
        """
        Given Stripe rejects the price
        When create_checkout is called
        Then a failed result carries the message and error code
        """
        stripe_adapter.create_checkout_session.side_effect = StripeInvalidRequestError(
            "No such price: 'price_pro'"
        )

        result = SubscriptionService.create_checkout(
            customer, product, "https://ok", "https://cancel"
        )

        assert result.success is False
        assert result.error == "No such price: 'price_pro'"
        assert result.error_code == "INVALID_STRIPE_REQUEST"

    def test_customer_creation_error_becomes_failure(self, stripe_adapter, user, product):
        stripe_adapter.create_customer.side_effect = StripeCardDeclinedError("Declined")

        result = SubscriptionService.create_checkout(user, product, "https://ok", "https://cancel")

        assert result.success is False
        stripe_adapter.create_checkout_session.assert_not_called()


class TestGetStatus:
    def test_without_subscription(self, user):
        status = SubscriptionService.get_status(user)

        assert status == {
            "subscribed": False,
            "status": None,
            "type": "default",
            "price": None,
            "on_trial": False,
            "on_grace_period": False,
            "ends_at": None,
            "trial_ends_at": None,
            "has_incomplete_payment": False,
        }

    def test_with_active_subscription(self, subscription, customer):
        status = SubscriptionService.get_status(customer)

        assert status["subscribed"] is True
        assert status["status"] == SubscriptionStatus.ACTIVE
        assert status["price"] == "price_monthly"
        assert status["on_grace_period"] is False

    def test_with_grace_period(self, grace_period_subscription, customer):
        status = SubscriptionService.get_status(customer)

        assert status["subscribed"] is True
        assert status["on_grace_period"] is True
        assert status["ends_at"] == grace_period_subscription.ends_at

    def test_other_type(self, subscription, customer):
        status = SubscriptionService.get_status(customer, "team")

        assert status["type"] == "team"
        assert status["subscribed"] is False


class TestCancel:
    def test_cancel(self, stripe_adapter, subscription, customer):
        result = SubscriptionService.cancel(customer)

        assert result.success is True
        subscription.refresh_from_db()
        assert subscription.on_grace_period() is True

    def test_cancel_without_subscription(self, stripe_adapter, user):
        result = SubscriptionService.cancel(user)

        assert result.success is False
        assert result.error_code == "SUBSCRIPTION_NOT_FOUND"

    def test_cancel_already_canceled(self, stripe_adapter, grace_period_subscription, customer):
        result = SubscriptionService.cancel(customer)

        assert result.success is False
        assert result.error_code == "SUBSCRIPTION_ALREADY_CANCELED"
        stripe_adapter.update_subscription.assert_not_called()

    def test_cancel_ended_subscription(self, stripe_adapter, customer):
        SubscriptionFactory(
            user=customer,
            stripe_status=SubscriptionStatus.CANCELED,
            ends_at=timezone.now() - timedelta(days=1),
        )

        result = SubscriptionService.cancel(customer)

        assert result.error_code == "SUBSCRIPTION_NOT_FOUND"


class TestResume:
    def test_resume(self, stripe_adapter, grace_period_subscription, customer):
        result = SubscriptionService.resume(customer)

        assert result.success is True
        grace_period_subscription.refresh_from_db()
        assert grace_period_subscription.ends_at is None

    def test_resume_outside_grace_period(self, stripe_adapter, subscription, customer):
        result = SubscriptionService.resume(customer)

        assert result.success is False
        assert result.error_code == "SUBSCRIPTION_UPDATE_FAILED"

    def test_resume_without_subscription(self, stripe_adapter, user):
        result = SubscriptionService.resume(user)

        assert result.error_code == "SUBSCRIPTION_NOT_FOUND"


class TestPortalUrl:
    def test_portal_url(self, stripe_adapter, customer):
        result = SubscriptionService.portal_url(customer, "https://example.com")

        assert result.success is True
        assert result.data == "https://billing.stripe.com/p/session/bps_123"

    def test_portal_requires_customer(self, stripe_adapter, user):
        result = SubscriptionService.portal_url(user, "https://example.com")

        assert result.success is False
        assert result.error_code == "INVALID_CUSTOMER"
