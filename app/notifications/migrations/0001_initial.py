import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("title", models.CharField(help_text="Notification title", max_length=200)),
                ("message", models.TextField(blank=True, default="", help_text="Notification body")),
                ("related_id", models.CharField(blank=True, db_index=True, default="", help_text="Id of the order, escrow, dispute or payout this refers to", max_length=64)),
                (
                    "category",
                    models.CharField(
                        choices=[("transactional", "Transactional"), ("system", "System")],
                        default="transactional",
                        help_text="Inbox category",
                        max_length=20,
                    ),
                ),
                ("is_read", models.BooleanField(db_index=True, default=False, help_text="Whether recipient has read this notification")),
                ("read_at", models.DateTimeField(blank=True, help_text="When the recipient read this notification", null=True)),
                (
                    "recipient",
                    models.ForeignKey(
                        help_text="User receiving this notification",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx")],
            },
        ),
    ]
