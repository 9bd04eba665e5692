"""
Signal listeners for Stripe webhook events.

Connected in BillingConfig.ready(). Add project-specific reactions to
Stripe events here rather than in the webhook handlers, which only keep
the local billing tables in sync.
"""

from __future__ import annotations

import logging

from django.dispatch import receiver

from billing.signals import webhook_received

logger = logging.getLogger(__name__)


@receiver(webhook_received, dispatch_uid="billing.log_stripe_event")
def log_stripe_event(sender, payload: dict, event_type: str, **kwargs) -> None:
    """Log successful invoice payments as they arrive."""
    if payload.get("type") != "invoice.payment_succeeded":
        return

    invoice = (payload.get("data") or {}).get("object") or {}
    logger.info(
        "Stripe invoice paid",
        extra={
            "stripe_event_id": payload.get("id"),
            "invoice_id": invoice.get("id"),
            "customer": invoice.get("customer"),
            "subscription": invoice.get("subscription"),
            "amount_paid": invoice.get("amount_paid"),
            "currency": invoice.get("currency"),
        },
    )
