"""
Pytest fixtures for billing tests.

Stripe is never called: stripe_adapter patches the StripeAdapter
classmethods the billing code uses and returns realistic result objects.

Usage:
    def test_cancel(stripe_adapter, subscription):
        subscription.cancel()
        stripe_adapter.update_subscription.assert_called_once_with(
            subscription.stripe_id, cancel_at_period_end=True
        )
"""

from contextlib import ExitStack
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.tests.factories import UserFactory
from billing.adapters import (
    CheckoutSessionResult,
    CustomerResult,
    PaymentMethodResult,
    PortalSessionResult,
    StripeAdapter,
    SubscriptionResult,
    WebhookEndpointResult,
)
from billing.tests.factories import PERIOD_END, ProductFactory, SubscriptionFactory

ADAPTER_METHODS = [
    "create_customer",
    "retrieve_customer",
    "update_customer",
    "create_checkout_session",
    "create_billing_portal_session",
    "retrieve_subscription",
    "update_subscription",
    "cancel_subscription",
    "retrieve_payment_method",
    "create_webhook_endpoint",
    "disable_webhook_endpoint",
]


# =============================================================================
# Stripe Adapter
# =============================================================================


@pytest.fixture
def stripe_adapter():
    """Patch every StripeAdapter call with a mock returning sane results."""
    with ExitStack() as stack:
        mocks = {
            name: stack.enter_context(patch.object(StripeAdapter, name))
            for name in ADAPTER_METHODS
        }
        adapter = SimpleNamespace(**mocks)

        adapter.create_customer.return_value = CustomerResult(
            id="cus_new123", email="user@example.com"
        )
        adapter.retrieve_customer.return_value = CustomerResult(id="cus_new123")
        adapter.update_customer.return_value = CustomerResult(id="cus_new123")
        adapter.create_checkout_session.return_value = CheckoutSessionResult(
            id="cs_test_123",
            url="https://checkout.stripe.com/c/pay/cs_test_123",
            mode="subscription",
            customer_id="cus_new123",
        )
        adapter.create_billing_portal_session.return_value = PortalSessionResult(
            id="bps_123", url="https://billing.stripe.com/p/session/bps_123"
        )
        adapter.retrieve_subscription.return_value = SubscriptionResult(
            id="sub_test", status="active", current_period_end=PERIOD_END
        )
        adapter.update_subscription.return_value = SubscriptionResult(
            id="sub_test", status="active", current_period_end=PERIOD_END
        )
        adapter.cancel_subscription.return_value = SubscriptionResult(
            id="sub_test", status="canceled"
        )
        adapter.retrieve_payment_method.return_value = PaymentMethodResult(
            id="pm_123", type="card", card_brand="visa", last_four="4242"
        )
        adapter.create_webhook_endpoint.return_value = WebhookEndpointResult(
            id="we_123",
            url="https://example.com/stripe/webhook/",
            status="enabled",
            secret="whsec_created",
        )
        adapter.disable_webhook_endpoint.return_value = WebhookEndpointResult(
            id="we_123",
            url="https://example.com/stripe/webhook/",
            status="disabled",
        )

        yield adapter


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def user(db):
    """A user who is not a Stripe customer yet."""
    return UserFactory(email="subscriber@example.com", first_name="Sam", last_name="Lee")


@pytest.fixture
def customer(db):
    """A user who already has a Stripe customer."""
    return UserFactory(email="customer@example.com", stripe_id="cus_existing")


# =============================================================================
# Products & Subscriptions
# =============================================================================


@pytest.fixture
def product(db):
    return ProductFactory(name="Pro", stripe_price_id="price_pro", sort_order=1)


@pytest.fixture
def subscription(db, customer):
    """An active recurring subscription on price_monthly."""
    return SubscriptionFactory(user=customer, stripe_id="sub_test")


@pytest.fixture
def grace_period_subscription(db, customer):
    """Canceled at period end, still within the paid period."""
    return SubscriptionFactory(
        user=customer,
        stripe_id="sub_grace",
        ends_at=timezone.now() + timedelta(days=10),
    )


@pytest.fixture
def trial_subscription(db, customer):
    return SubscriptionFactory(
        user=customer,
        stripe_id="sub_trial",
        stripe_status="trialing",
        trial_ends_at=timezone.now() + timedelta(days=7),
    )


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, customer):
    api_client.force_authenticate(user=customer)
    return api_client


@pytest.fixture
def new_user_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def deactivate_unpaid(settings):
    """past_due and incomplete subscriptions do not count as active."""
    settings.BILLING_DEACTIVATE_PAST_DUE = True
    settings.BILLING_DEACTIVATE_INCOMPLETE = True
    return settings
