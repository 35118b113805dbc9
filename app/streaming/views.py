"""
Views for stream logging and revenue reports.

Endpoints (prefixed with /api/v1/):
    POST streams/log/        - Log a stream (anonymous allowed)
    GET  streams/analytics/  - Stream counts and earnings (?track_id, ?period)
    GET  streams/earnings/   - Own earnings summary (?artist_id for admins)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from authentication.roles import Principal
from core.helpers import get_client_ip
from streaming.serializers import (
    AnalyticsQuerySerializer,
    EarningsQuerySerializer,
    EarningsSummarySerializer,
    RecordStreamSerializer,
    StreamAnalyticsSerializer,
    StreamRecordSerializer,
)
from streaming.services import StreamAttributionService


class StreamViewSet(viewsets.GenericViewSet):
    """Stream logging is public; reports require authentication."""

    serializer_class = RecordStreamSerializer

    def get_permissions(self):
        if self.action == "log":
            return [AllowAny()]
        return [IsAuthenticated()]

    @extend_schema(
        operation_id="log_stream",
        summary="Log a stream",
        description=(
            "Records one playback. Valid streams credit the track's artist; "
            "throttled streams are stored but earn nothing."
        ),
        request=RecordStreamSerializer,
        responses={
            200: StreamRecordSerializer,
            400: OpenApiResponse(description="Duration missing or too short"),
            404: OpenApiResponse(description="Track not found"),
        },
        tags=["Streaming"],
    )
    @action(detail=False, methods=["post"])
    def log(self, request):
        serializer = RecordStreamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_id = request.user.pk if request.user.is_authenticated else None
        record = StreamAttributionService.record_stream(
            track_id=serializer.validated_data["track_id"],
            duration=serializer.validated_data["duration"],
            user_id=user_id,
            ip_address=get_client_ip(request),
        )
        return Response(StreamRecordSerializer(record).data)

    @extend_schema(
        operation_id="get_stream_analytics",
        summary="Stream analytics",
        parameters=[AnalyticsQuerySerializer],
        responses={200: StreamAnalyticsSerializer},
        tags=["Streaming"],
    )
    @action(detail=False, methods=["get"])
    def analytics(self, request):
        query = AnalyticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = StreamAttributionService.get_stream_analytics(
            Principal.from_user(request.user),
            track_id=query.validated_data.get("track_id"),
            period=query.validated_data["period"],
        )
        return Response(StreamAnalyticsSerializer(report).data)

    @extend_schema(
        operation_id="get_earnings_summary",
        summary="Earnings summary",
        parameters=[EarningsQuerySerializer],
        responses={200: EarningsSummarySerializer},
        tags=["Streaming"],
    )
    @action(detail=False, methods=["get"])
    def earnings(self, request):
        query = EarningsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        summary = StreamAttributionService.get_earnings_summary(
            Principal.from_user(request.user),
            artist_id=query.validated_data.get("artist_id"),
        )
        return Response(EarningsSummarySerializer(summary).data)
