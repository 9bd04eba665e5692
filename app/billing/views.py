"""
Subscription API views.

This module provides API views for:
- Starting a subscription through Stripe Checkout
- Reading the current subscription status
- Listing the plans (panels) a user can subscribe to
- Canceling and resuming a subscription
- Opening the Stripe billing portal
- The public pages Stripe Checkout redirects back to

Related files:
    - serializers.py: Request/response serialization
    - services.py: Business logic (SubscriptionService)
    - urls.py / callback_urls.py: URL routing

Endpoints:
    POST /api/v1/subscription/payment/
    GET  /api/v1/subscription/status/
    GET  /api/v1/subscription/panels/
    POST /api/v1/subscription/cancel/
    POST /api/v1/subscription/resume/
    GET  /api/v1/subscription/portal/
    GET  /subscription/success/
    GET  /subscription/cancel/
"""

from django.conf import settings
from django.utils.http import url_has_allowed_host_and_scheme
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.models import Product
from billing.serializers import (
    CheckoutResponseSerializer,
    ErrorResponseSerializer,
    PanelsResponseSerializer,
    PortalResponseSerializer,
    ProductSerializer,
    SubscriptionPaymentSerializer,
    SubscriptionStatusSerializer,
)
from billing.services import SubscriptionService

TYPE_PARAMETER = OpenApiParameter(
    name="type",
    description="Subscription type (defaults to the configured default type)",
    required=False,
    type=str,
)


class SubscriptionPaymentView(APIView):
    """
    Start a subscription to a product.

    POST: Create a Stripe Checkout Session for the product's price

    URL: /api/v1/subscription/payment/

    Request body:
        {
            "product_id": 1
        }

    Returns (201):
        {
            "checkout_url": "https://checkout.stripe.com/c/pay/cs_...",
            "session_id": "cs_..."
        }
    """

    @extend_schema(
        summary="Create subscription checkout",
        description=(
            "Validate the chosen product and create a Stripe Checkout Session. "
            "Redirect the user to checkout_url to pay."
        ),
        tags=["Subscription"],
        request=SubscriptionPaymentSerializer,
        responses={201: CheckoutResponseSerializer, 400: ErrorResponseSerializer},
    )
    def post(self, request):
        serializer = SubscriptionPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.validated_data["product_id"]

        success_url, cancel_url = SubscriptionService.callback_urls(request)
        result = SubscriptionService.create_checkout(
            request.user, product, success_url, cancel_url
        )

        if not result.success:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {"checkout_url": result.data.url, "session_id": result.data.id},
            status=status.HTTP_201_CREATED,
        )


class SubscriptionStatusView(APIView):
    """
    Current subscription state.

    GET: Subscription status for ?type= (default type when omitted)

    URL: /api/v1/subscription/status/
    """

    @extend_schema(
        summary="Get subscription status",
        tags=["Subscription"],
        parameters=[TYPE_PARAMETER],
        responses={200: SubscriptionStatusSerializer},
    )
    def get(self, request):
        data = SubscriptionService.get_status(
            request.user, request.query_params.get("type") or None
        )
        return Response(SubscriptionStatusSerializer(data).data)


class SubscriptionPanelsView(APIView):
    """
    Plans available for subscription.

    GET: Active products in display order plus the Stripe publishable key

    URL: /api/v1/subscription/panels/
    """

    @extend_schema(
        summary="List subscription plans",
        tags=["Subscription"],
        responses={200: PanelsResponseSerializer},
    )
    def get(self, request):
        products = Product.objects.active()
        return Response(
            {
                "products": ProductSerializer(products, many=True).data,
                "stripe_key": settings.STRIPE_KEY,
            }
        )


class SubscriptionCancelView(APIView):
    """
    Cancel at the end of the billing period.

    URL: /api/v1/subscription/cancel/
    """

    @extend_schema(
        summary="Cancel subscription",
        description="Cancel at period end. Access continues during the grace period.",
        tags=["Subscription"],
        parameters=[TYPE_PARAMETER],
        request=None,
        responses={200: SubscriptionStatusSerializer, 400: ErrorResponseSerializer},
    )
    def post(self, request):
        subscription_type = request.query_params.get("type") or None
        result = SubscriptionService.cancel(request.user, subscription_type)

        if not result.success:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        data = SubscriptionService.get_status(request.user, subscription_type)
        return Response(SubscriptionStatusSerializer(data).data)


class SubscriptionResumeView(APIView):
    """
    Resume a canceled subscription during its grace period.

    URL: /api/v1/subscription/resume/
    """

    @extend_schema(
        summary="Resume subscription",
        tags=["Subscription"],
        parameters=[TYPE_PARAMETER],
        request=None,
        responses={200: SubscriptionStatusSerializer, 400: ErrorResponseSerializer},
    )
    def post(self, request):
        subscription_type = request.query_params.get("type") or None
        result = SubscriptionService.resume(request.user, subscription_type)

        if not result.success:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        data = SubscriptionService.get_status(request.user, subscription_type)
        return Response(SubscriptionStatusSerializer(data).data)


class BillingPortalView(APIView):
    """
    Stripe billing portal link.

    GET: URL of a portal session returning to ?return_url= (or the site root)

    return_url must be relative or point at this host or one of
    BILLING_PORTAL_RETURN_HOSTS.

    URL: /api/v1/subscription/portal/
    """

    @extend_schema(
        summary="Open billing portal",
        tags=["Subscription"],
        parameters=[
            OpenApiParameter(name="return_url", required=False, type=str),
        ],
        responses={200: PortalResponseSerializer, 400: ErrorResponseSerializer},
    )
    def get(self, request):
        return_url = request.query_params.get("return_url") or "/"
        allowed_hosts = {request.get_host(), *settings.BILLING_PORTAL_RETURN_HOSTS}
        if not url_has_allowed_host_and_scheme(return_url, allowed_hosts=allowed_hosts):
            return Response(
                {
                    "success": False,
                    "error": "return_url must point to an allowed host.",
                    "error_code": "INVALID_RETURN_URL",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        return_url = request.build_absolute_uri(return_url)
        result = SubscriptionService.portal_url(request.user, return_url)

        if not result.success:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        return Response({"url": result.data})


# =============================================================================
# Checkout Callbacks
# =============================================================================


class CheckoutSuccessView(APIView):
    """
    Stripe Checkout success redirect.

    The subscription itself is recorded by the webhook, not here.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Checkout success callback",
        tags=["Subscription - Callbacks"],
        parameters=[OpenApiParameter(name="session_id", required=False, type=str)],
        responses={200: None},
    )
    def get(self, request):
        data = {
            "status": "success",
            "message": "Payment received. Your subscription will be active shortly.",
        }
        session_id = request.query_params.get("session_id")
        if session_id:
            data["session_id"] = session_id
        return Response(data)


class CheckoutCancelView(APIView):
    """Stripe Checkout cancel redirect."""

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Checkout cancel callback",
        tags=["Subscription - Callbacks"],
        responses={200: None},
    )
    def get(self, request):
        return Response(
            {"status": "canceled", "message": "Checkout was canceled. No payment was taken."}
        )
