"""
Notification models.

- Notification: In-app message delivered to one user after a settlement
  event (order placed, dispute opened, dispute resolved, payout updated)

Design Decisions:
    - Notifications are written after the triggering transaction commits;
      they never take part in it
    - related_id is a free-form string so it can hold order, escrow,
      dispute or payout UUIDs

Usage:
    from notifications.models import Notification

    unread = Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel


class NotificationCategory(models.TextChoices):
    """Categories for grouping notifications in the inbox."""

    TRANSACTIONAL = "transactional", "Transactional"
    SYSTEM = "system", "System"


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification
        title: Short title (e.g. "Dispute Resolved - Refunded")
        message: Body text
        related_id: Id of the record that triggered the notification
        category: Inbox grouping
        is_read / read_at: Read state
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )

    title = models.CharField(
        max_length=200,
        help_text="Notification title",
    )

    message = models.TextField(
        blank=True,
        default="",
        help_text="Notification body",
    )

    related_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        help_text="Id of the order, escrow, dispute or payout this refers to",
    )

    category = models.CharField(
        max_length=20,
        choices=NotificationCategory.choices,
        default=NotificationCategory.TRANSACTIONAL,
        help_text="Inbox category",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient read this notification",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self) -> str:
        return f"Notification({self.recipient_id}, {self.title!r})"

    def mark_as_read(self) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at", "updated_at"])
