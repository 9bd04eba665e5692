"""
Decorators gating function views on a subscription.

Usage:
    from billing.decorators import require_subscription

    @require_subscription()  # default subscription, any price
    def subscriber_feature(request):
        ...

    @require_subscription("default", ["price_pro_monthly", "price_pro_yearly"])
    def premium_feature(request):
        ...

For class-based DRF views use billing.permissions.HasActiveSubscription.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Callable

from django.http import JsonResponse

if TYPE_CHECKING:
    from collections.abc import Iterable


def require_subscription(
    type: str | None = None,
    prices: str | Iterable[str] | None = None,
):
    """
    Require a valid subscription to access the view.

    Args:
        type: Subscription type, default type when None
        prices: Optional price id(s); the subscription must include one

    HTTP Responses:
        401 when the user is not authenticated
        403 when the subscription requirement is not met
    """

    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return JsonResponse({"detail": "Authentication required."}, status=401)

            if not request.user.subscribed(type, prices):
                return JsonResponse(
                    {"detail": "An active subscription is required."},
                    status=403,
                )

            return func(request, *args, **kwargs)

        return wrapper

    return decorator
