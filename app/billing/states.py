"""
Status and choice enumerations for billing models.

SubscriptionStatus mirrors Stripe's subscription statuses one to one; the
local row never moves between them on its own, it only records what Stripe
reports (via webhooks or an explicit sync).

Usage:
    from billing.states import SubscriptionStatus, WebhookEventStatus

    if subscription.stripe_status == SubscriptionStatus.PAST_DUE:
        ...
"""

from django.db import models


class SubscriptionStatus(models.TextChoices):
    """
    Stripe subscription statuses.

    Grouping used by the subscription predicates:
        INCOMPLETE, PAST_DUE: Payment pending; active only when configured
        INCOMPLETE_EXPIRED, UNPAID: Never active
        TRIALING, ACTIVE: Active
        CANCELED, PAUSED: Recorded as-is, ended by ends_at
    """

    INCOMPLETE = "incomplete", "Incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired", "Incomplete (expired)"
    TRIALING = "trialing", "Trialing"
    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past due"
    CANCELED = "canceled", "Canceled"
    UNPAID = "unpaid", "Unpaid"
    PAUSED = "paused", "Paused"


class BillingInterval(models.TextChoices):
    """Recurring interval of a Stripe price."""

    DAY = "day", "Daily"
    WEEK = "week", "Weekly"
    MONTH = "month", "Monthly"
    YEAR = "year", "Yearly"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
