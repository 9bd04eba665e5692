"""
Webhook signals.

Both signals are sent by the webhook task with sender=WebhookEvent and the
keyword arguments:
    payload: The full Stripe event as a dict
    event_type: The Stripe event type ("invoice.payment_succeeded", ...)

    webhook_received: Before the event is dispatched to its handler
    webhook_handled: After the handler completed successfully

Usage:
    from django.dispatch import receiver

    from billing.signals import webhook_received

    @receiver(webhook_received)
    def on_stripe_event(sender, payload, event_type, **kwargs):
        if event_type == "invoice.payment_succeeded":
            ...

Receivers run inside the Celery worker. An exception raised by a receiver
fails the event, which is then retried like any handler failure.
"""

from django.dispatch import Signal

webhook_received = Signal()
webhook_handled = Signal()
