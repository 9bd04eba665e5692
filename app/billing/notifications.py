"""
Billing emails.

Sent synchronously from the webhook worker; delivery errors propagate so the
webhook event fails and is retried.

Templates:
    billing/emails/payment_action_required.txt
    billing/emails/payment_action_required.html
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def send_payment_action_required(user, invoice: dict) -> None:
    """
    Ask the user to confirm a payment that needs extra authentication.

    Args:
        user: The billable user
        invoice: Stripe invoice dict from the webhook payload
    """
    context = {
        "user": user,
        "payment_url": invoice.get("hosted_invoice_url"),
        "amount_due": (invoice.get("amount_due") or 0) / 100,
        "currency": (invoice.get("currency") or settings.BILLING_CURRENCY).upper(),
    }
    text_content = render_to_string("billing/emails/payment_action_required.txt", context)
    html_content = render_to_string("billing/emails/payment_action_required.html", context)

    email = EmailMultiAlternatives(
        subject="Confirm your payment",
        body=text_content,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[user.email],
    )
    email.attach_alternative(html_content, "text/html")
    email.send(fail_silently=False)

    logger.info(
        "Payment confirmation email sent",
        extra={"user_id": user.pk, "invoice_id": invoice.get("id")},
    )
