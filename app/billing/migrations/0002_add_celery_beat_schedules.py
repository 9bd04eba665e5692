"""
Add Celery Beat schedules for webhook maintenance tasks.

This migration creates periodic task schedules for:
- Retrying failed webhook events
- Resetting events stuck in processing
- Deleting old processed events
"""

from django.db import migrations


def create_periodic_tasks(apps, schema_editor):
    """Create periodic tasks for webhook maintenance."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule_5min, _ = IntervalSchedule.objects.get_or_create(
        every=5,
        period="minutes",
    )

    schedule_30min, _ = IntervalSchedule.objects.get_or_create(
        every=30,
        period="minutes",
    )

    # Daily at 4 AM UTC
    crontab_daily_4am, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="4",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )

    PeriodicTask.objects.get_or_create(
        name="Billing: Retry Failed Webhooks",
        defaults={
            "task": "billing.tasks.retry_failed_webhooks",
            "interval": schedule_5min,
            "enabled": True,
            "description": (
                "Re-queues failed Stripe webhook events that haven't "
                "exceeded the maximum retry count."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Billing: Cleanup Stuck Webhooks",
        defaults={
            "task": "billing.tasks.cleanup_stuck_webhooks",
            "interval": schedule_30min,
            "enabled": True,
            "description": (
                "Resets webhook events stuck in PROCESSING for more than "
                "30 minutes to FAILED so they are retried."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Billing: Cleanup Old Webhooks",
        defaults={
            "task": "billing.tasks.cleanup_old_webhooks",
            "crontab": crontab_daily_4am,
            "enabled": True,
            "description": "Deletes processed webhook events older than 90 days.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove all billing periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    task_names = [
        "Billing: Retry Failed Webhooks",
        "Billing: Cleanup Stuck Webhooks",
        "Billing: Cleanup Old Webhooks",
    ]

    PeriodicTask.objects.filter(name__in=task_names).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("billing", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
