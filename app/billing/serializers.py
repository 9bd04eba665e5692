"""
Serializers for the subscription API.

This module provides DRF serializers for:
- SubscriptionPaymentSerializer: validates the product chosen for checkout
- ProductSerializer: the plans listed by the panels endpoint
- Response shapes for checkout, status, panels and portal (used by the
  OpenAPI schema)

Related files:
    - models/product.py: Product model
    - views.py: Views that use these serializers
    - services.py: SubscriptionService
"""

from rest_framework import serializers

from billing.models import Product


class SubscriptionPaymentSerializer(serializers.Serializer):
    """
    Validates a subscription payment request.

    product_id must reference an existing, active Product. The validated
    value is the Product instance itself.
    """

    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.active(),
        error_messages={
            "required": "Please choose a product.",
            "does_not_exist": "The selected product does not exist.",
            "incorrect_type": "The selected product is invalid.",
        },
    )


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for Product (read operations)."""

    amount = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "stripe_price_id",
            "amount_cents",
            "amount",
            "currency",
            "billing_interval",
        ]
        read_only_fields = fields

    def get_amount(self, obj) -> str:
        return f"{obj.amount_cents / 100:.2f}"


class CheckoutResponseSerializer(serializers.Serializer):
    checkout_url = serializers.URLField()
    session_id = serializers.CharField()


class SubscriptionStatusSerializer(serializers.Serializer):
    """
    Subscription state for one subscription type.

    Built from the user's most recent subscription of that type; every
    field is false/null when the user has none.
    """

    subscribed = serializers.BooleanField()
    status = serializers.CharField(allow_null=True)
    type = serializers.CharField()
    price = serializers.CharField(allow_null=True)
    on_trial = serializers.BooleanField()
    on_grace_period = serializers.BooleanField()
    ends_at = serializers.DateTimeField(allow_null=True)
    trial_ends_at = serializers.DateTimeField(allow_null=True)
    has_incomplete_payment = serializers.BooleanField()


class PanelsResponseSerializer(serializers.Serializer):
    products = ProductSerializer(many=True)
    stripe_key = serializers.CharField()


class PortalResponseSerializer(serializers.Serializer):
    url = serializers.URLField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    error_code = serializers.CharField(required=False)
