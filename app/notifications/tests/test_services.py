"""
Tests for NotificationService.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError, connection
from django.test.utils import CaptureQueriesContext

from authentication.roles import Role
from authentication.tests.factories import UserFactory
from core.exceptions import NotFoundError
from notifications.models import Notification
from notifications.services import NotificationService


class TestNotify:
    """Tests for NotificationService.notify()."""

    def test_notify_stores_notification(self, buyer):
        """Should create an unread notification for the user."""
        result = NotificationService.notify(
            buyer.id, "Order Confirmed", "Thanks for confirming", related_id="abc"
        )

        assert result.success is True
        notification = Notification.objects.get(recipient=buyer)
        assert notification.title == "Order Confirmed"
        assert notification.related_id == "abc"
        assert notification.is_read is False

    def test_notify_failure_is_reported_not_raised(self, buyer):
        """A storage failure should come back as a failed result."""
        with patch.object(
            Notification.objects, "create", side_effect=DatabaseError("disk full")
        ):
            result = NotificationService.notify(buyer.id, "Title", "Body")

        assert result.success is False
        assert result.error_code == "NOTIFY_FAILED"

    def test_notify_on_commit_waits_for_commit(
        self, buyer, django_capture_on_commit_callbacks
    ):
        """Nothing should be stored until the transaction commits."""
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            NotificationService.notify_on_commit(buyer.id, "Title", "Body")

        assert len(callbacks) == 1
        assert Notification.objects.count() == 0

        callbacks[0]()
        assert Notification.objects.filter(recipient=buyer).count() == 1

    def test_admin_user_ids(self, admin_user, buyer):
        """Only ADMIN role holders should be returned."""
        assert NotificationService.admin_user_ids() == [admin_user.id]

    def test_admin_user_ids_matches_multi_role_admins_only(self, admin_user, buyer):
        """Admins holding other roles count; inactive admins do not."""
        artist_admin = UserFactory(roles=[Role.ARTIST.value, Role.ADMIN.value])
        UserFactory(roles=[Role.ADMIN.value], is_active=False)
        UserFactory(roles=[Role.ARTIST.value, Role.MARKETER.value])

        with CaptureQueriesContext(connection) as queries:
            admin_ids = NotificationService.admin_user_ids()

        assert sorted(admin_ids) == sorted([admin_user.id, artist_admin.id])
        assert len(queries) == 1


class TestMarkAsRead:
    """Tests for NotificationService.mark_as_read()."""

    def test_marks_read(self, buyer, unread_notification):
        notification = NotificationService.mark_as_read(buyer, unread_notification.id)

        assert notification.is_read is True
        assert notification.read_at is not None

    def test_other_users_notification_is_not_found(self, other_user, unread_notification):
        with pytest.raises(NotFoundError):
            NotificationService.mark_as_read(other_user, unread_notification.id)
