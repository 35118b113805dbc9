"""
Add celery-beat schedules for webhook maintenance.

- Retry failed webhook events every 5 minutes
- Reset webhook events stuck in processing every 15 minutes
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Retry Failed Webhook Events",
        "task": "payments.tasks.retry_failed_webhooks",
        "every": 5,
        "description": "Re-queues failed gateway webhook events below the retry limit.",
    },
    {
        "name": "Reset Stuck Webhook Events",
        "task": "payments.tasks.cleanup_stuck_webhooks",
        "every": 15,
        "description": "Marks webhook events stuck in processing as failed so they are retried.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name__in=[entry["name"] for entry in SCHEDULES]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
