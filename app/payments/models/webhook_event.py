"""
WebhookEvent model for payment gateway event tracking.

Every event received from the gateway is stored before processing. The
unique gateway_event_id makes redelivery of the same event a no-op.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        gateway_event_id="evt_1234567890",
        defaults={"event_type": "charge.succeeded", "payload": payload},
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks gateway webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, signature verified
        2. get_or_create by gateway_event_id
        3. Already PROCESSED -> acknowledge as duplicate
        4. Otherwise queue process_webhook_event
        5. Task sets PROCESSING, dispatches, then PROCESSED or FAILED

    Fields:
        gateway_event_id: Gateway's event id (evt_xxx)
        event_type: e.g. "charge.succeeded"
        payload: Full event JSON
        status: Processing status
        processed_at: When processing succeeded
        error_message: Why the last attempt failed
        retry_count: Number of processing attempts
    """

    MAX_RETRIES = 5

    gateway_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Gateway event id - unique for idempotency",
    )

    event_type = models.CharField(max_length=100, db_index=True)

    payload = models.JSONField()

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.gateway_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        return self.status == WebhookEventStatus.FAILED and self.retry_count < self.MAX_RETRIES

    # Helpers below do not save; the caller saves.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object(self) -> dict:
        """Return payload.data.object, or an empty dict when absent."""
        try:
            obj = self.payload.get("data", {}).get("object", {})
        except AttributeError:
            return {}
        return obj if isinstance(obj, dict) else {}
