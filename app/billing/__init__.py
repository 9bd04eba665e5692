"""
Billing application - Stripe subscriptions for the user model.

Public surface:
    billing.billable.Billable        - Mixin for the user model
    billing.models                   - Product, Subscription, SubscriptionItem, WebhookEvent
    billing.adapters.StripeAdapter   - Every call to the Stripe API
    billing.signals                  - webhook_received, webhook_handled
"""
