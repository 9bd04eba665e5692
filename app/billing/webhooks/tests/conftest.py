"""
Pytest fixtures for webhook tests.

Provides WebhookEvent objects in each processing state and a helper to wrap
a Stripe object into a pending event. Stripe, user and subscription
fixtures come from billing/conftest.py.
"""

from datetime import timedelta

import pytest
from django.test import RequestFactory
from django.utils import timezone

from billing.models import WebhookEvent
from billing.states import WebhookEventStatus
from billing.tests.factories import WebhookEventFactory, build_event


@pytest.fixture
def rf():
    return RequestFactory()


@pytest.fixture
def make_event(db):
    """Create a pending WebhookEvent for a Stripe object."""

    def _make_event(event_type: str, obj: dict) -> WebhookEvent:
        payload = build_event(event_type, obj)
        return WebhookEventFactory(
            stripe_event_id=payload["id"],
            event_type=event_type,
            payload=payload,
        )

    return _make_event


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(db):
    return WebhookEventFactory(stripe_event_id="evt_pending_123")


@pytest.fixture
def processed_webhook_event(db):
    event = WebhookEventFactory(stripe_event_id="evt_processed_123")
    event.mark_processing()
    event.mark_processed()
    event.save()
    return event


@pytest.fixture
def processing_webhook_event(db):
    """Claimed by a worker that has not finished yet."""
    event = WebhookEventFactory(stripe_event_id="evt_processing_123")
    event.mark_processing()
    event.save()
    return event


@pytest.fixture
def failed_webhook_event(db):
    event = WebhookEventFactory(stripe_event_id="evt_failed_123")
    event.mark_processing()
    event.mark_failed("Previous error")
    event.save()
    return event


@pytest.fixture
def exhausted_webhook_event(db):
    """Failed as many times as it may be retried."""
    return WebhookEventFactory(
        stripe_event_id="evt_exhausted_123",
        status=WebhookEventStatus.FAILED,
        retry_count=WebhookEvent.MAX_RETRIES,
        error_message="Still failing",
    )


@pytest.fixture
def stuck_webhook_event(db):
    """PROCESSING for longer than the stuck threshold."""
    event = WebhookEventFactory(
        stripe_event_id="evt_stuck_123",
        status=WebhookEventStatus.PROCESSING,
        retry_count=1,
    )
    WebhookEvent.objects.filter(pk=event.pk).update(
        updated_at=timezone.now() - timedelta(hours=1)
    )
    event.refresh_from_db()
    return event
