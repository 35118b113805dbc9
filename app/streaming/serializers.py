"""
Serializers for stream logging and revenue reports.
"""

from __future__ import annotations

from rest_framework import serializers

from streaming.models import RevenueEntry, StreamLog
from streaming.services import ANALYTICS_PERIODS


class StreamLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = StreamLog
        fields = ["id", "track_id", "user_id", "streamed_at", "duration", "is_valid"]
        read_only_fields = fields


class RecordStreamSerializer(serializers.Serializer):
    track_id = serializers.UUIDField()
    duration = serializers.IntegerField(
        help_text="Seconds played; streams under the minimum are rejected",
    )


class StreamRecordSerializer(serializers.Serializer):
    stream = StreamLogSerializer(source="stream_log")
    earned = serializers.DecimalField(source="earned_amount", max_digits=12, decimal_places=4)
    message = serializers.CharField()


class AnalyticsQuerySerializer(serializers.Serializer):
    track_id = serializers.UUIDField(required=False)
    period = serializers.ChoiceField(choices=list(ANALYTICS_PERIODS), default="week")


class EarningsQuerySerializer(serializers.Serializer):
    artist_id = serializers.IntegerField(
        required=False,
        help_text="Another artist's summary (admins only)",
    )


class StreamAnalyticsSerializer(serializers.Serializer):
    track_id = serializers.CharField(allow_null=True)
    period = serializers.CharField()
    since = serializers.DateTimeField()
    total_streams = serializers.IntegerField()
    valid_streams = serializers.IntegerField()
    total_earnings = serializers.DecimalField(max_digits=14, decimal_places=4)


class RevenueEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = RevenueEntry
        fields = ["id", "source", "amount", "currency", "track_id", "timestamp"]
        read_only_fields = fields


class EarningsSummarySerializer(serializers.Serializer):
    artist_id = serializers.IntegerField()
    total = serializers.DecimalField(max_digits=14, decimal_places=4)
    by_source = serializers.DictField(
        child=serializers.DecimalField(max_digits=14, decimal_places=4),
    )
    recent = RevenueEntrySerializer(many=True)
