"""
URL configuration for the subscription billing service.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /stripe/webhook/               - Stripe webhook endpoint (POST, signed)
    /subscription/success/         - Checkout success redirect target
    /subscription/cancel/          - Checkout cancel redirect target
    /api/v1/auth/                  - JWT authentication
        token/                     - Obtain access/refresh pair
        token/refresh/             - Refresh access token
    /api/v1/subscription/          - Subscription endpoints
        payment/                   - Create a Checkout Session (POST)
        status/                    - Current subscription status
        panels/                    - Purchasable products
        cancel/                    - Cancel at period end (POST)
        resume/                    - Resume during grace period (POST)
        portal/                    - Stripe billing portal URL

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (simplejwt)
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # Subscriptions
    path("subscription/", include("billing.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Stripe webhooks
    path("stripe/", include("billing.webhooks.urls")),
    # Checkout redirect targets
    path("subscription/", include("billing.callback_urls")),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Billing Admin"
admin.site.site_title = "Billing Admin Portal"
admin.site.index_title = "Subscriptions and Stripe events"
