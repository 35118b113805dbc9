"""
Notification sink for settlement events.

NotificationService.notify() is fire-and-forget: a failure to store a
notification is logged and reported as a failed ServiceResult, never raised.
Settlement services call notify_on_commit() so notifications are written
only after the state transition that triggered them has committed.

Usage:
    from notifications.services import NotificationService

    NotificationService.notify_on_commit(
        user_id=order.seller_id,
        title="New Order",
        message=f"You have a new order for {product.title}",
        related_id=order.id,
    )
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import DatabaseError, connection, transaction

from authentication.roles import Role
from core.exceptions import NotFoundError
from core.services import BaseService, ServiceResult
from notifications.models import Notification, NotificationCategory

if TYPE_CHECKING:
    from collections.abc import Iterable


class NotificationService(BaseService):
    """Create in-app notifications."""

    @classmethod
    def notify(
        cls,
        user_id: int,
        title: str,
        message: str,
        related_id: object = None,
        category: str = NotificationCategory.TRANSACTIONAL,
    ) -> ServiceResult[Notification]:
        """
        Store a notification for one user.

        Returns:
            ServiceResult with the Notification, or a failure with
            error_code NOTIFY_FAILED when it could not be stored
        """
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient_id=user_id,
                    title=title,
                    message=message,
                    related_id=str(related_id) if related_id is not None else "",
                    category=category,
                )
        except DatabaseError as e:
            cls.get_logger().error(
                "Failed to store notification",
                extra={"user_id": user_id, "title": title, "error": str(e)},
                exc_info=True,
            )
            return ServiceResult.failure(str(e), error_code="NOTIFY_FAILED")

        cls.get_logger().debug(
            "Notification stored",
            extra={"user_id": user_id, "notification_id": notification.id},
        )
        return ServiceResult.success(notification)

    @classmethod
    def notify_on_commit(
        cls,
        user_id: int,
        title: str,
        message: str,
        related_id: object = None,
    ) -> None:
        """Schedule notify() to run after the current transaction commits."""
        transaction.on_commit(
            partial(cls.notify, user_id, title, message, related_id),
            robust=True,
        )

    @classmethod
    def admin_user_ids(cls) -> list[int]:
        """
        Ids of active users holding the ADMIN role.

        Uses JSON containment where the backend supports it (PostgreSQL);
        elsewhere matches the quoted role inside the stored JSON array.
        """
        users = get_user_model().objects.filter(is_active=True)
        if connection.features.supports_json_field_contains:
            users = users.filter(roles__contains=[Role.ADMIN.value])
        else:
            users = users.filter(roles__icontains=f'"{Role.ADMIN.value}"')
        return list(users.order_by("id").values_list("id", flat=True))

    @classmethod
    def notify_many_on_commit(
        cls,
        user_ids: Iterable[int],
        title: str,
        message: str,
        related_id: object = None,
    ) -> None:
        for user_id in user_ids:
            cls.notify_on_commit(user_id, title, message, related_id)

    @classmethod
    def mark_as_read(cls, user, notification_id: int) -> Notification:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFoundError: The notification does not exist or belongs to
                another user
        """
        try:
            notification = Notification.objects.get(id=notification_id, recipient=user)
        except Notification.DoesNotExist:
            raise NotFoundError(
                "Notification not found",
                error_code="NOTIFICATION_NOT_FOUND",
                details={"notification_id": notification_id},
            )
        notification.mark_as_read()
        return notification
