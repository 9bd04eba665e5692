"""
Public pages Stripe Checkout redirects back to.

Mounted at /subscription/ outside the authenticated API.
"""

from django.urls import path

from billing.views import CheckoutCancelView, CheckoutSuccessView

urlpatterns = [
    path("success/", CheckoutSuccessView.as_view(), name="subscription_success"),
    path("cancel/", CheckoutCancelView.as_view(), name="subscription_cancel"),
]
