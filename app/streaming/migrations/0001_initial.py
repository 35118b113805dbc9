import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StreamLog",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("ip_address", models.GenericIPAddressField(blank=True, help_text="Client IP address", null=True)),
                ("streamed_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "duration",
                    models.PositiveIntegerField(
                        help_text="Playback length in seconds",
                        validators=[django.core.validators.MinValueValidator(30)],
                    ),
                ),
                ("is_valid", models.BooleanField(default=False, help_text="Whether this stream passed the rate limits and earned revenue")),
                (
                    "track",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="streams",
                        to="catalog.track",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="streams",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-streamed_at"],
                "indexes": [
                    models.Index(fields=["track", "user", "streamed_at"], name="stream_track_user_idx"),
                    models.Index(fields=["track", "ip_address", "streamed_at"], name="stream_track_ip_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RevenueEntry",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("streams", "Streams"),
                            ("ad_clicks", "Ad Clicks"),
                            ("subscriptions", "Subscriptions"),
                            ("boosts", "Boosts"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=4, help_text="Earned amount in currency units (not cents)", max_digits=12)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "artist",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="revenue_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "track",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="revenue_entries",
                        to="catalog.track",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Revenue entries",
                "ordering": ["-timestamp"],
                "indexes": [models.Index(fields=["artist", "source"], name="revenue_artist_source_idx")],
            },
        ),
    ]
