"""
Celery configuration for the subscription billing service.

Celery runs the work that must not block a webhook response:
- Processing stored Stripe webhook events
- Periodic retry of failed events and cleanup of old ones

Redis is used as both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps; periodic schedules live in
the database (django-celery-beat) and are created by a billing migration.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
