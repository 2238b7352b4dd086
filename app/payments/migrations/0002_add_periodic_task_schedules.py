"""
Add celery-beat schedules for payments maintenance tasks.

Creates the periodic tasks:
- sync_bar_connect_statuses: hourly, re-derives every linked bar's cached
  status from Stripe in case an account.updated webhook was missed
- retry_failed_webhooks: every 5 minutes
- cleanup_old_webhooks: daily
"""

from django.db import migrations

PERIODIC_TASKS = [
    (
        "Sync Bar Connect Statuses",
        "payments.tasks.sync_bar_connect_statuses",
        (1, "hours"),
        "Refreshes each bar's cached connected account status from Stripe.",
    ),
    (
        "Retry Failed Webhooks",
        "payments.tasks.retry_failed_webhooks",
        (5, "minutes"),
        "Reprocesses failed Stripe webhook events.",
    ),
    (
        "Cleanup Old Webhooks",
        "payments.tasks.cleanup_old_webhooks",
        (1, "days"),
        "Deletes processed webhook events older than 90 days.",
    ),
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for name, task, (every, period), description in PERIODIC_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(every=every, period=period)
        PeriodicTask.objects.get_or_create(
            name=name,
            defaults={
                "task": task,
                "interval": schedule,
                "enabled": True,
                "description": description,
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[name for name, *_ in PERIODIC_TASKS],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0018_improve_crontab_helptext"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
