"""
Stripe webhook event log.

Every delivery Stripe makes is stored once, keyed by its event id, and
moves through pending -> processing -> processed/failed. Workers never act
on an event they have not claimed: WebhookEvent.objects.claim() flips a
pending or failed row to processing in a single UPDATE, so two deliveries
of the same event (or a delivery racing the retry task) cannot both run
the handler.

Usage:
    from billing.models import WebhookEvent

    if not WebhookEvent.objects.claim(event_id):
        return  # someone else has it, or it is done

    event = WebhookEvent.objects.get(pk=event_id)
    ...
    event.mark_processed()
    event.save()
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from django.db import models
from django.db.models import F
from django.utils import timezone

from billing.states import WebhookEventStatus
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

CLAIMABLE_STATUSES = (WebhookEventStatus.PENDING, WebhookEventStatus.FAILED)


class WebhookEventQuerySet(models.QuerySet):
    def claim(self, pk) -> bool:
        """
        Take ownership of a pending or failed event.

        Counts the attempt in retry_count. False when the event is missing,
        already processed or held by another worker.
        """
        claimed = self.filter(pk=pk, status__in=CLAIMABLE_STATUSES).update(
            status=WebhookEventStatus.PROCESSING,
            retry_count=F("retry_count") + 1,
            updated_at=timezone.now(),
        )
        return claimed == 1

    def retryable(self):
        return self.filter(
            status=WebhookEventStatus.FAILED,
            retry_count__lt=WebhookEvent.MAX_RETRIES,
        )

    def stuck(self, since: datetime):
        """Events left in processing without a write since `since`."""
        return self.filter(status=WebhookEventStatus.PROCESSING, updated_at__lt=since)

    def processed_before(self, cutoff: datetime):
        return self.filter(status=WebhookEventStatus.PROCESSED, processed_at__lt=cutoff)


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One Stripe event and how far its processing got.

    retry_count counts attempts, not failures: the first run leaves it at 1.
    Failed events are re-queued by billing.tasks.retry_failed_webhooks until
    MAX_RETRIES attempts have been made.
    """

    MAX_RETRIES = 5

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'customer.subscription.updated')",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="billing_whe_status_created_idx",
            ),
            models.Index(
                fields=["event_type", "created_at"],
                name="billing_whe_type_created_idx",
            ),
            models.Index(
                fields=["status", "retry_count"],
                name="billing_whe_status_retry_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    objects = WebhookEventQuerySet.as_manager()

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_processing(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSING

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        return self.is_failed and self.retry_count < self.MAX_RETRIES

    # The mark_* helpers change the instance only; callers save.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object(self) -> dict[str, Any]:
        """The Stripe object the event is about (payload.data.object)."""
        if not isinstance(self.payload, dict):
            return {}
        data = self.payload.get("data")
        if not isinstance(data, dict):
            return {}
        obj = data.get("object")
        return obj if isinstance(obj, dict) else {}

    def get_object_id(self) -> str | None:
        return self.get_object().get("id")

    def get_object_type(self) -> str | None:
        return self.get_object().get("object")
