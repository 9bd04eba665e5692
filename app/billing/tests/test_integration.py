"""
End-to-end subscription journey.

A user picks a plan, pays through Stripe Checkout and Stripe reports the
subscription back through webhooks. Stripe calls are mocked; the webhook
task runs eagerly from the webhook view.
"""

import json
from unittest.mock import patch

from rest_framework import status

from billing.models import WebhookEvent
from billing.states import WebhookEventStatus
from billing.tests.factories import build_event, stripe_subscription


def post_stripe_event(client, event: dict):
    with patch(
        "billing.webhooks.views.StripeAdapter.verify_webhook_signature",
        return_value=event,
    ):
        return client.post(
            "/stripe/webhook/",
            data=json.dumps(event),
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE="t=1,v1=test",
        )


class TestSubscriptionJourney:
    def test_checkout_webhook_cancel_resume(
        self, client, stripe_adapter, new_user_client, user, product
    ):
        """
        Given a new user and an active plan
        When the user checks out and Stripe sends the subscription events
        Then the status endpoint follows every step of the subscription
        """
        panels = new_user_client.get("/api/v1/subscription/panels/")
        assert [p["stripe_price_id"] for p in panels.data["products"]] == ["price_pro"]

        response = new_user_client.post(
            "/api/v1/subscription/payment/", {"product_id": product.pk}, format="json"
        )
        assert response.status_code == status.HTTP_201_CREATED
        user.refresh_from_db()
        assert user.stripe_id == "cus_new123"

        status_response = new_user_client.get("/api/v1/subscription/status/")
        assert status_response.data["subscribed"] is False

        created = build_event(
            "customer.subscription.created",
            stripe_subscription("sub_journey", customer="cus_new123", prices=("price_pro",)),
            event_id="evt_journey_created",
        )
        assert post_stripe_event(client, created).status_code == 200
        assert WebhookEvent.objects.get(stripe_event_id="evt_journey_created").status == (
            WebhookEventStatus.PROCESSED
        )

        status_response = new_user_client.get("/api/v1/subscription/status/")
        assert status_response.data["subscribed"] is True
        assert status_response.data["price"] == "price_pro"

        # Stripe retries the same event; nothing changes
        assert post_stripe_event(client, created).content == b"Already processed"

        cancel_response = new_user_client.post("/api/v1/subscription/cancel/")
        assert cancel_response.status_code == status.HTTP_200_OK
        assert cancel_response.data["on_grace_period"] is True

        resume_response = new_user_client.post("/api/v1/subscription/resume/")
        assert resume_response.status_code == status.HTTP_200_OK
        assert resume_response.data["on_grace_period"] is False

        deleted = build_event(
            "customer.subscription.deleted",
            stripe_subscription(
                "sub_journey", customer="cus_new123", prices=("price_pro",), status="canceled"
            ),
            event_id="evt_journey_deleted",
        )
        post_stripe_event(client, deleted)

        status_response = new_user_client.get("/api/v1/subscription/status/")
        assert status_response.data["subscribed"] is False
        assert status_response.data["status"] == "canceled"
