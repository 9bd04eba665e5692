"""
Webhook event handlers for Stripe events.

This module provides a handler registry and the handlers that keep the local
billing tables in sync with Stripe.

Handled events:
    customer.subscription.created       - Create the local subscription and items
    customer.subscription.updated       - Sync status, price, trial, end date, items
    customer.subscription.deleted       - Mark the subscription canceled
    customer.updated                    - Refresh the default payment method
    customer.deleted                    - Cancel subscriptions, forget the customer
    payment_method.automatically_updated - Refresh the default payment method
    invoice.payment_action_required     - Email the user (BILLING_PAYMENT_NOTIFICATION)
    invoice.payment_succeeded           - Refresh a subscription stuck on a payment

Events for customers we don't know are acknowledged and ignored.

Usage:
    from billing.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("invoice.finalized")
    def handle_invoice_finalized(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from billing.models import Subscription, WebhookEvent
from billing.models.subscription import timestamp_to_datetime
from billing.signals import webhook_handled, webhook_received
from billing.states import SubscriptionStatus
from core.services import ServiceResult


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("customer.subscription.created")
        def handle_subscription_created(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Sends webhook_received first, then runs the handler. webhook_handled is
    sent only when a registered handler succeeded. Events without a handler
    succeed as no-ops.
    """
    webhook_received.send(
        sender=WebhookEvent,
        payload=webhook_event.payload,
        event_type=webhook_event.event_type,
    )

    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    result = handler(webhook_event)

    if result.success:
        webhook_handled.send(
            sender=WebhookEvent,
            payload=webhook_event.payload,
            event_type=webhook_event.event_type,
        )

    return result


# =============================================================================
# Helpers
# =============================================================================


def get_user_by_stripe_id(stripe_id: str | None):
    return get_user_model().find_billable(stripe_id)


def subscription_type_from(data: dict[str, Any]) -> str:
    metadata = data.get("metadata") or {}
    return (
        metadata.get("type")
        or metadata.get("name")
        or settings.BILLING_DEFAULT_SUBSCRIPTION_TYPE
    )


def subscription_items_from(data: dict[str, Any]) -> list[dict[str, Any]]:
    return list((data.get("items") or {}).get("data") or [])


def single_price_fields(items: list[dict[str, Any]]) -> tuple[str | None, int | None]:
    """stripe_price and quantity for the subscription row (null when multi-price)."""
    if len(items) != 1:
        return None, None
    first = items[0]
    return first["price"]["id"], first.get("quantity")


def period_end_from(data: dict[str, Any], items: list[dict[str, Any]]) -> int | None:
    if data.get("current_period_end") is not None:
        return data["current_period_end"]
    if items:
        return items[0].get("current_period_end")
    return None


def sync_subscription_items(subscription: Subscription, items: list[dict[str, Any]]) -> None:
    """Upsert the given items and delete the ones Stripe no longer lists."""
    item_ids = []
    for item in items:
        item_ids.append(item["id"])
        subscription.items.update_or_create(
            stripe_id=item["id"],
            defaults={
                "stripe_product": item["price"]["product"],
                "stripe_price": item["price"]["id"],
                "quantity": item.get("quantity"),
            },
        )
    subscription.items.exclude(stripe_id__in=item_ids).delete()


def skip_trial_and_cancel(subscription: Subscription) -> None:
    subscription.trial_ends_at = None
    subscription.save(update_fields=["trial_ends_at", "updated_at"])
    subscription.mark_as_canceled()


def event_log_context(webhook_event: WebhookEvent, **extra: Any) -> dict[str, Any]:
    return {
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
        **extra,
    }


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler("customer.subscription.created")
def handle_subscription_created(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Create the local subscription for a subscription Stripe just created.

    The subscription type comes from the metadata set at checkout. A user on
    a generic trial loses it once a real subscription exists.
    """
    data = webhook_event.get_object()
    user = get_user_by_stripe_id(data.get("customer"))

    if user is None:
        logger.info(
            "Subscription created for unknown customer, ignoring",
            extra=event_log_context(webhook_event, customer=data.get("customer")),
        )
        return ServiceResult.success(None)

    items = subscription_items_from(data)
    stripe_price, quantity = single_price_fields(items)

    with transaction.atomic():
        subscription, created = Subscription.objects.get_or_create(
            stripe_id=data["id"],
            defaults={
                "user": user,
                "type": subscription_type_from(data),
                "stripe_status": data.get("status") or "",
                "stripe_price": stripe_price,
                "quantity": quantity,
                "trial_ends_at": timestamp_to_datetime(data.get("trial_end")),
                "ends_at": None,
            },
        )
        if created:
            for item in items:
                subscription.items.create(
                    stripe_id=item["id"],
                    stripe_product=item["price"]["product"],
                    stripe_price=item["price"]["id"],
                    quantity=item.get("quantity"),
                )

        if user.trial_ends_at is not None:
            user.trial_ends_at = None
            user.save(update_fields=["trial_ends_at"])

    logger.info(
        "Subscription created" if created else "Subscription already recorded",
        extra=event_log_context(
            webhook_event,
            user_id=user.pk,
            subscription_id=subscription.stripe_id,
            type=subscription.type,
        ),
    )
    return ServiceResult.success(subscription)


@register_handler("customer.subscription.updated")
def handle_subscription_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Sync a subscription with Stripe's latest view of it.

    Creates the row when the created event was missed. An incomplete_expired
    subscription never started, so its row is deleted.
    """
    data = webhook_event.get_object()
    user = get_user_by_stripe_id(data.get("customer"))

    if user is None:
        logger.info(
            "Subscription updated for unknown customer, ignoring",
            extra=event_log_context(webhook_event, customer=data.get("customer")),
        )
        return ServiceResult.success(None)

    items = subscription_items_from(data)
    status = data.get("status")

    with transaction.atomic():
        subscription = (
            Subscription.objects.select_for_update().filter(stripe_id=data["id"]).first()
        )

        if status == SubscriptionStatus.INCOMPLETE_EXPIRED:
            if subscription is not None:
                subscription.delete()
            logger.info(
                "Incomplete subscription expired, removed",
                extra=event_log_context(webhook_event, subscription_id=data["id"]),
            )
            return ServiceResult.success(None)

        if subscription is None:
            subscription = Subscription(
                user=user,
                stripe_id=data["id"],
                type=subscription_type_from(data),
            )

        subscription.stripe_price, subscription.quantity = single_price_fields(items)

        if data.get("trial_end") is not None:
            subscription.trial_ends_at = timestamp_to_datetime(data["trial_end"])

        if data.get("cancel_at_period_end"):
            if subscription.on_trial():
                subscription.ends_at = subscription.trial_ends_at
            else:
                subscription.ends_at = timestamp_to_datetime(period_end_from(data, items))
        elif data.get("cancel_at") or data.get("canceled_at"):
            subscription.ends_at = timestamp_to_datetime(
                data.get("cancel_at") or data.get("canceled_at")
            )
        else:
            subscription.ends_at = None

        if status:
            subscription.stripe_status = status

        subscription.save()

        if "items" in data:
            sync_subscription_items(subscription, items)

    logger.info(
        "Subscription updated",
        extra=event_log_context(
            webhook_event,
            user_id=user.pk,
            subscription_id=subscription.stripe_id,
            status=subscription.stripe_status,
        ),
    )
    return ServiceResult.success(subscription)


@register_handler("customer.subscription.deleted")
def handle_subscription_deleted(webhook_event: WebhookEvent) -> ServiceResult:
    """Mark the subscription canceled; access ends now."""
    data = webhook_event.get_object()
    user = get_user_by_stripe_id(data.get("customer"))

    if user is None:
        return ServiceResult.success(None)

    with transaction.atomic():
        subscriptions = Subscription.objects.select_for_update().filter(
            user=user, stripe_id=data.get("id")
        )
        for subscription in subscriptions:
            skip_trial_and_cancel(subscription)
            logger.info(
                "Subscription canceled by Stripe",
                extra=event_log_context(
                    webhook_event,
                    user_id=user.pk,
                    subscription_id=subscription.stripe_id,
                ),
            )

    return ServiceResult.success(None)


# =============================================================================
# Customer Handlers
# =============================================================================


@register_handler("customer.updated")
def handle_customer_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Refresh the stored default payment method."""
    user = get_user_by_stripe_id(webhook_event.get_object_id())

    if user is not None:
        user.update_default_payment_method_from_stripe()
        logger.info(
            "Customer payment method refreshed",
            extra=event_log_context(webhook_event, user_id=user.pk, pm_type=user.pm_type),
        )

    return ServiceResult.success(None)


@register_handler("customer.deleted")
def handle_customer_deleted(webhook_event: WebhookEvent) -> ServiceResult:
    """Cancel every subscription and detach the user from the deleted customer."""
    user = get_user_by_stripe_id(webhook_event.get_object_id())

    if user is None:
        return ServiceResult.success(None)

    with transaction.atomic():
        for subscription in Subscription.objects.select_for_update().filter(user=user):
            skip_trial_and_cancel(subscription)

        user.stripe_id = None
        user.trial_ends_at = None
        user.pm_type = None
        user.pm_last_four = None
        user.save(update_fields=["stripe_id", "trial_ends_at", "pm_type", "pm_last_four"])

    logger.info(
        "Stripe customer deleted, billing data cleared",
        extra=event_log_context(webhook_event, user_id=user.pk),
    )
    return ServiceResult.success(None)


@register_handler("payment_method.automatically_updated")
def handle_payment_method_automatically_updated(
    webhook_event: WebhookEvent,
) -> ServiceResult:
    """The card network updated a card (new expiry or number)."""
    data = webhook_event.get_object()
    user = get_user_by_stripe_id(data.get("customer"))

    if user is not None:
        user.update_default_payment_method_from_stripe()

    return ServiceResult.success(None)


# =============================================================================
# Invoice Handlers
# =============================================================================


@register_handler("invoice.payment_action_required")
def handle_invoice_payment_action_required(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Email the user a confirmation link for a payment needing authentication.

    Does nothing unless BILLING_PAYMENT_NOTIFICATION is enabled, or when the
    customer is confirming the payment in an open checkout session.
    """
    if not settings.BILLING_PAYMENT_NOTIFICATION:
        return ServiceResult.success(None)

    invoice = webhook_event.get_object()
    metadata = invoice.get("metadata") or {}
    subscription_metadata = (invoice.get("subscription_details") or {}).get("metadata") or {}
    if metadata.get("is_on_session_checkout") or subscription_metadata.get(
        "is_on_session_checkout"
    ):
        return ServiceResult.success(None)

    user = get_user_by_stripe_id(invoice.get("customer"))
    if user is None:
        return ServiceResult.success(None)

    from billing.notifications import send_payment_action_required

    send_payment_action_required(user, invoice)
    return ServiceResult.success(None)


@register_handler("invoice.payment_succeeded")
def handle_invoice_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Refresh a subscription that was waiting on this payment.

    An incomplete or past_due subscription becomes active once its invoice
    is paid; the status is pulled from Stripe instead of waiting for the
    subscription update event.
    """
    invoice = webhook_event.get_object()
    subscription_id = invoice.get("subscription")

    if not subscription_id:
        return ServiceResult.success(None)

    with transaction.atomic():
        subscription = (
            Subscription.objects.select_for_update().filter(stripe_id=subscription_id).first()
        )
        if subscription is not None and subscription.has_incomplete_payment():
            subscription.sync_stripe_status()
            logger.info(
                "Subscription status refreshed after payment",
                extra=event_log_context(
                    webhook_event,
                    subscription_id=subscription_id,
                    status=subscription.stripe_status,
                ),
            )

    return ServiceResult.success(subscription_id)
