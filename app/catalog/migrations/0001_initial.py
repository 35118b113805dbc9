import uuid

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
            name="Product",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("title", models.CharField(help_text="Product title", max_length=200)),
                ("description", models.TextField(blank=True, default="", help_text="Product description")),
                ("price_cents", models.PositiveBigIntegerField(help_text="Price in smallest currency unit (e.g., cents)")),
                ("currency", models.CharField(default="USD", help_text="ISO 4217 currency code", max_length=3)),
                ("is_active", models.BooleanField(default=True, help_text="Inactive products cannot be ordered")),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="User selling this product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["seller", "is_active"], name="product_seller_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="Track",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("title", models.CharField(help_text="Track title", max_length=200)),
                ("play_count", models.PositiveBigIntegerField(default=0, help_text="Number of valid streams")),
                (
                    "artist",
                    models.ForeignKey(
                        help_text="Artist credited with stream revenue",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tracks",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
