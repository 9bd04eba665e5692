"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
        event_type = models.CharField(max_length=100)

Note:
    Mixins are abstract and don't create database tables.
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Records that are referenced from logs, Celery task arguments or external
    systems get a non-guessable identifier that can be passed around as a
    string.

    Fields:
        id: UUIDField as primary key (auto-generated)

    Usage:
        event = WebhookEvent.objects.create(stripe_event_id="evt_123")
        process_webhook_event.delay(str(event.id))
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
