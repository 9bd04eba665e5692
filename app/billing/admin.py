"""
Billing admin configuration.

Registers products, subscriptions and webhook events. Subscriptions and
webhook events are Stripe's records mirrored locally, so most of their
fields are read-only.
"""

from django.contrib import admin

from billing.models import Product, Subscription, SubscriptionItem, WebhookEvent
from billing.states import WebhookEventStatus

__all__ = [
    "ProductAdmin",
    "SubscriptionAdmin",
    "SubscriptionInline",
    "WebhookEventAdmin",
]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin configuration for Product (the plans shown on the panels page)."""

    list_display = [
        "name",
        "stripe_price_id",
        "amount_display",
        "billing_interval",
        "is_active",
        "sort_order",
    ]
    list_filter = ["is_active", "billing_interval", "currency"]
    list_editable = ["is_active", "sort_order"]
    search_fields = ["name", "stripe_price_id", "stripe_product_id"]
    ordering = ["sort_order", "id"]

    fieldsets = (
        (None, {"fields": ("name", "description")}),
        (
            "Stripe",
            {"fields": ("stripe_price_id", "stripe_product_id")},
        ),
        (
            "Pricing",
            {"fields": ("amount_cents", "currency", "billing_interval")},
        ),
        (
            "Display",
            {"fields": ("is_active", "sort_order")},
        ),
    )

    def amount_display(self, obj: Product) -> str:
        """Display the amount formatted as currency."""
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"

    amount_display.short_description = "Amount"


class SubscriptionItemInline(admin.TabularInline):
    model = SubscriptionItem
    extra = 0
    readonly_fields = ["stripe_id", "stripe_product", "stripe_price", "quantity"]
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


class SubscriptionInline(admin.TabularInline):
    """Subscriptions listed on the user change page."""

    model = Subscription
    extra = 0
    fields = ["type", "stripe_id", "stripe_status", "stripe_price", "ends_at"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Admin configuration for Subscription."""

    list_display = [
        "stripe_id",
        "user",
        "type",
        "stripe_status",
        "stripe_price",
        "trial_ends_at",
        "ends_at",
        "created_at",
    ]
    list_filter = ["stripe_status", "type", "created_at"]
    search_fields = ["stripe_id", "user__email", "stripe_price"]
    readonly_fields = [
        "user",
        "stripe_id",
        "stripe_status",
        "stripe_price",
        "quantity",
        "trial_ends_at",
        "ends_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    inlines = [SubscriptionItemInline]

    def has_add_permission(self, request) -> bool:
        """Subscriptions are created by Stripe webhooks only."""
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["requeue_events"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.action(description="Re-queue selected failed events")
    def requeue_events(self, request, queryset):
        from billing.tasks import process_webhook_event

        count = 0
        for event in queryset.filter(status=WebhookEventStatus.FAILED):
            event.status = WebhookEventStatus.PENDING
            event.save(update_fields=["status", "updated_at"])
            process_webhook_event.delay(str(event.id))
            count += 1
        self.message_user(request, f"Re-queued {count} webhook events.")

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        return False
