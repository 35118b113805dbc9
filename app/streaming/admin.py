"""
Django admin configuration for stream attribution models.

Both models are append-only from the admin's point of view.
"""

from django.contrib import admin

from streaming.models import RevenueEntry, StreamLog


@admin.register(StreamLog)
class StreamLogAdmin(admin.ModelAdmin):
    list_display = ["track", "user", "ip_address", "duration", "is_valid", "streamed_at"]
    list_filter = ["is_valid"]
    search_fields = ["track__title", "user__email", "ip_address"]
    raw_id_fields = ["track", "user"]
    readonly_fields = ["is_valid", "streamed_at"]
    date_hierarchy = "streamed_at"

    def has_add_permission(self, request):
        return False


@admin.register(RevenueEntry)
class RevenueEntryAdmin(admin.ModelAdmin):
    list_display = ["artist", "source", "amount", "currency", "track", "timestamp"]
    list_filter = ["source", "currency"]
    search_fields = ["artist__email", "track__title"]
    raw_id_fields = ["artist", "track"]
    readonly_fields = ["details"]
    date_hierarchy = "timestamp"
