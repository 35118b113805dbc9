"""
Serializers for the notification inbox.
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Read-only notification representation."""

    class Meta:
        model = Notification
        fields = [
            "id",
            "title",
            "message",
            "related_id",
            "category",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields


class UnreadCountSerializer(serializers.Serializer):
    unread_count = serializers.IntegerField()
