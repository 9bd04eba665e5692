"""
Tests for billing serializers.

SubscriptionPaymentSerializer is the payment request's validation rule:
product_id is required and must reference an existing, active Product.
"""

from billing.serializers import ProductSerializer, SubscriptionPaymentSerializer
from billing.tests.factories import ProductFactory


class TestSubscriptionPaymentSerializer:
    def test_valid_product_resolves_to_instance(self, product):
        serializer = SubscriptionPaymentSerializer(data={"product_id": product.pk})

        assert serializer.is_valid() is True
        assert serializer.validated_data["product_id"] == product

    def test_missing_product_id(self, db):
        serializer = SubscriptionPaymentSerializer(data={})

        assert serializer.is_valid() is False
        assert serializer.errors["product_id"] == ["Please choose a product."]

    def test_unknown_product_id(self, db):
        serializer = SubscriptionPaymentSerializer(data={"product_id": 999999})

        assert serializer.is_valid() is False
        assert serializer.errors["product_id"] == ["The selected product does not exist."]

    def test_inactive_product_is_rejected(self, db):
        """
        Given a product that is no longer offered
        When it is submitted for payment
        Then validation fails as if it did not exist
        """
        product = ProductFactory(is_active=False)

        serializer = SubscriptionPaymentSerializer(data={"product_id": product.pk})

        assert serializer.is_valid() is False
        assert "product_id" in serializer.errors

    def test_non_numeric_product_id(self, db):
        serializer = SubscriptionPaymentSerializer(data={"product_id": "abc"})

        assert serializer.is_valid() is False
        assert serializer.errors["product_id"] == ["The selected product is invalid."]


class TestProductSerializer:
    def test_fields(self, db):
        product = ProductFactory(
            name="Pro",
            stripe_price_id="price_pro",
            amount_cents=1999,
            currency="usd",
        )

        data = ProductSerializer(product).data

        assert data["id"] == product.pk
        assert data["name"] == "Pro"
        assert data["stripe_price_id"] == "price_pro"
        assert data["amount_cents"] == 1999
        assert data["amount"] == "19.99"
        assert data["currency"] == "usd"
        assert data["billing_interval"] == "month"
