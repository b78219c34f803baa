"""
Add celery-beat schedules for payment maintenance.

- expire_stale_payments: every 15 minutes, moves payments left PENDING
  past the expiry window to EXPIRED.
- reconcile_unsynced_payments: every 10 minutes, re-sends the mark-paid
  signal for SUCCEEDED payments whose contribution was not updated.
- recover_stuck_verifications: every 30 minutes, fails payments left
  PROCESSING by a crashed verifier so they can be verified again.
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Expire Stale Payments",
        "task": "payments.tasks.expire_stale_payments",
        "every": 15,
        "description": (
            "Moves payments left pending past PAYMENT_PENDING_EXPIRY_MINUTES "
            "to expired."
        ),
    },
    {
        "name": "Reconcile Unsynced Payments",
        "task": "payments.tasks.reconcile_unsynced_payments",
        "every": 10,
        "description": (
            "Retries marking contributions paid for succeeded payments the "
            "contribution side has not acknowledged."
        ),
    },
    {
        "name": "Recover Stuck Verifications",
        "task": "payments.tasks.recover_stuck_verifications",
        "every": 30,
        "description": (
            "Fails payments left processing by a crashed verifier so they can "
            "be verified again."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for spec in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=spec["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=spec["name"],
            defaults={
                "task": spec["task"],
                "interval": schedule,
                "enabled": True,
                "description": spec["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[spec["name"] for spec in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
