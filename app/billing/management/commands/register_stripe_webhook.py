"""
Register this site's webhook endpoint with Stripe.

Usage:
    python manage.py register_stripe_webhook
    python manage.py register_stripe_webhook --url https://example.com/stripe/webhook/
    python manage.py register_stripe_webhook --api-version 2024-06-20 --disabled

The endpoint listens for BILLING_WEBHOOK_EVENTS. Store the printed signing
secret as STRIPE_WEBHOOK_SECRET.
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from billing.adapters import StripeAdapter
from billing.exceptions import BillingError


class Command(BaseCommand):
    help = "Create the Stripe webhook endpoint that feeds the billing tables."

    def add_arguments(self, parser):
        parser.add_argument(
            "--url",
            default=None,
            help="Webhook URL (defaults to BILLING_WEBHOOK_URL)",
        )
        parser.add_argument(
            "--api-version",
            dest="api_version",
            default=None,
            help="Stripe API version for event payloads (defaults to STRIPE_API_VERSION)",
        )
        parser.add_argument(
            "--disabled",
            action="store_true",
            help="Create the endpoint in a disabled state",
        )

    def handle(self, *args, **options):
        url = options["url"] or settings.BILLING_WEBHOOK_URL
        if not url:
            raise CommandError("No webhook URL given. Pass --url or set BILLING_WEBHOOK_URL.")

        api_version = options["api_version"] or settings.STRIPE_API_VERSION

        try:
            endpoint = StripeAdapter.create_webhook_endpoint(
                url,
                list(settings.BILLING_WEBHOOK_EVENTS),
                api_version=api_version,
            )
            if options["disabled"]:
                StripeAdapter.disable_webhook_endpoint(endpoint.id)
        except BillingError as e:
            raise CommandError(f"Stripe webhook registration failed: {e.message}") from e

        self.stdout.write(
            self.style.SUCCESS(f"The Stripe webhook was created successfully ({endpoint.id}).")
        )
        self.stdout.write(f"URL: {url}")
        self.stdout.write(f"Events: {', '.join(settings.BILLING_WEBHOOK_EVENTS)}")
        if endpoint.secret:
            self.stdout.write(f"Signing secret: {endpoint.secret}")
            self.stdout.write("Set it as STRIPE_WEBHOOK_SECRET in your environment.")
        if options["disabled"]:
            self.stdout.write(self.style.WARNING("The Stripe webhook was disabled."))
