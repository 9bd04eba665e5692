"""
DRF permission classes gating views on a subscription.

Usage:
    from billing.permissions import HasActiveSubscription

    class ReportView(APIView):
        permission_classes = [IsAuthenticated, HasActiveSubscription]

    # Other subscription types or prices
    class ProView(APIView):
        permission_classes = [IsAuthenticated, HasActiveSubscription]
        subscription_type = "default"
        subscription_prices = ["price_pro_monthly", "price_pro_yearly"]
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class HasActiveSubscription(permissions.BasePermission):
    """
    Allows access only to users with a valid subscription.

    The view may set subscription_type and subscription_prices; without
    them the default type on any price is accepted. Trials and grace
    periods count as valid.
    """

    message = "An active subscription is required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.subscribed(
            getattr(view, "subscription_type", None),
            getattr(view, "subscription_prices", None),
        )
