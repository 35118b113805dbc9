"""
Django admin configuration for notifications.
"""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Read-only view of notifications for support."""

    list_display = ["recipient", "title", "category", "is_read", "created_at"]
    list_filter = ["category", "is_read", "created_at"]
    search_fields = ["recipient__email", "title", "related_id"]
    raw_id_fields = ["recipient"]
    readonly_fields = ["created_at", "updated_at", "read_at"]
    ordering = ["-created_at"]
