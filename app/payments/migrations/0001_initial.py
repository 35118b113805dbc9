import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
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
            name="Order",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Version for optimistic locking - incremented on each save")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("price_cents", models.PositiveBigIntegerField(help_text="Price at purchase time in smallest currency unit")),
                ("currency", models.CharField(default="USD", help_text="ISO 4217 currency code", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending_payment", "Pending Payment"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("disputed", "Disputed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending_payment",
                        help_text="Current order state",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("payment_reference", models.CharField(blank=True, help_text="Gateway charge id (ch_xxx)", max_length=255, null=True, unique=True)),
                ("confirmed_at", models.DateTimeField(blank=True, help_text="When the buyer confirmed receipt", null=True)),
                ("confirmed_by", models.CharField(blank=True, default="", help_text="Party that confirmed receipt", max_length=20)),
                (
                    "buyer",
                    models.ForeignKey(
                        help_text="User paying for the product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        help_text="Purchased product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="catalog.product",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="Product owner receiving the funds",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["buyer", "status"], name="order_buyer_status_idx"),
                    models.Index(fields=["seller", "status"], name="order_seller_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("price_cents__gt", 0)), name="order_price_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Escrow",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Version for optimistic locking - incremented on each save")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Held amount in smallest currency unit")),
                ("currency", models.CharField(default="USD", help_text="ISO 4217 currency code", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("held", "Held"),
                            ("released", "Released"),
                            ("refunded", "Refunded"),
                            ("disputed", "Disputed"),
                        ],
                        db_index=True,
                        default="held",
                        help_text="Current escrow state",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("released_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("refund_reason", models.CharField(blank=True, default="", max_length=255)),
                (
                    "buyer",
                    models.ForeignKey(
                        help_text="User whose funds are held",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="escrows_as_buyer",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.OneToOneField(
                        help_text="Order this escrow secures",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="escrow",
                        to="payments.order",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="User who receives the funds on release",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="escrows_as_seller",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Escrow",
                "verbose_name_plural": "Escrows",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["seller", "status"], name="escrow_seller_status_idx"),
                    models.Index(fields=["buyer", "status"], name="escrow_buyer_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="escrow_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Dispute",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("reason", models.CharField(max_length=255)),
                ("description", models.TextField()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("open", "Open"),
                            ("under_review", "Under Review"),
                            ("resolved", "Resolved"),
                            ("closed", "Closed"),
                        ],
                        db_index=True,
                        default="open",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("resolution", models.TextField(blank=True, default="")),
                ("winner", models.CharField(blank=True, choices=[("buyer", "Buyer"), ("seller", "Seller")], default="", max_length=10)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "initiated_by",
                    models.ForeignKey(
                        help_text="Party that opened the dispute",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes_opened",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        help_text="Disputed order",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes",
                        to="payments.order",
                    ),
                ),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes_resolved",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Dispute",
                "verbose_name_plural": "Disputes",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["open", "under_review"])),
                        fields=("order",),
                        name="dispute_one_active_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Version for optimistic locking - incremented on each save")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Payout amount in smallest currency unit")),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("requested", "Requested"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="requested",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("bank_transfer", "Bank Transfer"),
                            ("airtel_money", "Airtel Money"),
                            ("tnm_mpamba", "TNM Mpamba"),
                        ],
                        default="bank_transfer",
                        max_length=20,
                    ),
                ),
                ("bank_account", models.JSONField(blank=True, default=dict, help_text="Masked destination account (last4, bank_name)")),
                ("requested_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("failure_reason", models.TextField(blank=True, default="")),
                (
                    "artist",
                    models.ForeignKey(
                        help_text="Seller withdrawing funds",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["artist", "status"], name="payout_artist_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="payout_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("gateway_event_id", models.CharField(help_text="Gateway event id - unique for idempotency", max_length=255, unique=True)),
                ("event_type", models.CharField(db_index=True, max_length=100)),
                ("payload", models.JSONField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("dispute_resolution", "Dispute Resolution"),
                            ("dispute_review", "Dispute Review"),
                            ("escrow_release", "Escrow Release"),
                            ("escrow_refund", "Escrow Refund"),
                            ("payout_status_change", "Payout Status Change"),
                        ],
                        max_length=40,
                    ),
                ),
                ("target_type", models.CharField(max_length=50)),
                ("target_id", models.CharField(max_length=64)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "actor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["target_type", "target_id"], name="audit_target_idx"),
                ],
            },
        ),
    ]
