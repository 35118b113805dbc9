"""
AuditLogEntry model: append-only record of admin settlement actions.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import AuditAction


class AuditLogEntry(UUIDPrimaryKeyMixin, BaseModel):
    """
    Who did what to which settlement record.

    Fields:
        actor: Admin user who performed the action
        action: AuditAction value
        target_type: Model name of the target ("Escrow", "Payout", ...)
        target_id: Primary key of the target
        details: Action-specific context (previous/new status, notes)
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_entries",
    )

    action = models.CharField(max_length=40, choices=AuditAction.choices)
    target_type = models.CharField(max_length=50)
    target_id = models.CharField(max_length=64)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"
        indexes = [
            models.Index(fields=["target_type", "target_id"], name="audit_target_idx"),
        ]

    def __str__(self) -> str:
        return f"AuditLogEntry({self.action}, {self.target_type}:{self.target_id})"

    @classmethod
    def record(cls, actor_id: int, action: str, target: models.Model, **details) -> AuditLogEntry:
        return cls.objects.create(
            actor_id=actor_id,
            action=action,
            target_type=target.__class__.__name__,
            target_id=str(target.pk),
            details=details,
        )
