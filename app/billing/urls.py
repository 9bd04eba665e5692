"""
URL configuration for the subscription API.

Routes:
    - POST /payment/ - Start a subscription (Stripe Checkout)
    - GET  /status/  - Current subscription status
    - GET  /panels/  - Plans available for subscription
    - POST /cancel/  - Cancel at period end
    - POST /resume/  - Resume during grace period
    - GET  /portal/  - Stripe billing portal URL

All routes are prefixed with /api/v1/subscription/ when included in the main URLconf.
"""

from django.urls import path

from billing.views import (
    BillingPortalView,
    SubscriptionCancelView,
    SubscriptionPanelsView,
    SubscriptionPaymentView,
    SubscriptionResumeView,
    SubscriptionStatusView,
)

urlpatterns = [
    path("payment/", SubscriptionPaymentView.as_view(), name="subscription_payment"),
    path("status/", SubscriptionStatusView.as_view(), name="subscription_status"),
    path("panels/", SubscriptionPanelsView.as_view(), name="subscription_panels"),
    path("cancel/", SubscriptionCancelView.as_view(), name="subscription_cancel_api"),
    path("resume/", SubscriptionResumeView.as_view(), name="subscription_resume"),
    path("portal/", BillingPortalView.as_view(), name="subscription_portal"),
]
