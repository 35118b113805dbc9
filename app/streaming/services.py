"""
Stream attribution: turn playback events into artist revenue.

A stream earns STREAM_RATE for the track's artist unless the listener
(or their IP address) has already streamed the same track too often in
the trailing window. Throttled streams are still logged so they keep
counting against the window.

Usage:
    from streaming.services import StreamAttributionService

    record = StreamAttributionService.record_stream(
        track_id=track.id,
        duration=95,
        user_id=request.user.pk,
        ip_address="203.0.113.7",
    )
    record.earned_amount  # Decimal("0.002") or Decimal("0")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from authentication.roles import Capability
from catalog.models import Track
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService
from payments.locks import lock_for_update

from streaming.models import RevenueEntry, RevenueSource, StreamLog

if TYPE_CHECKING:
    from datetime import datetime

    from authentication.roles import Principal


ANALYTICS_PERIODS = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}

RECENT_ENTRIES_LIMIT = 10


@dataclass
class StreamRecord:
    """Outcome of logging one stream."""

    stream_log: StreamLog
    earned_amount: Decimal

    @property
    def message(self) -> str:
        if self.stream_log.is_valid:
            return "Stream logged and earnings recorded"
        return "Stream logged but marked invalid (rate limit exceeded)"


class StreamAttributionService(BaseService):
    """Stream logging, validity checks and revenue reporting."""

    @classmethod
    def record_stream(
        cls,
        track_id,
        duration,
        user_id: int | None = None,
        ip_address: str | None = None,
    ) -> StreamRecord:
        """
        Log a stream and credit the artist when it is valid.

        The window read and the inserts run under a row lock on the
        Track, so bursts for one track are serialized.

        Raises:
            ValidationError: Duration missing or under the minimum
            NotFoundError: Unknown track
        """
        minimum = settings.STREAM_MIN_DURATION_SECONDS
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < minimum:
            raise ValidationError(
                f"Track must play at least {minimum} seconds",
                error_code="STREAM_TOO_SHORT",
                details={"duration": duration, "minimum_seconds": minimum},
            )

        ip_address = ip_address or None
        with cls.atomic():
            track = lock_for_update(Track, track_id)
            now = timezone.now()
            is_valid = cls.is_valid_stream(track.id, user_id, ip_address, now=now)

            stream_log = StreamLog.objects.create(
                track=track,
                user_id=user_id,
                ip_address=ip_address,
                streamed_at=now,
                duration=duration,
                is_valid=is_valid,
            )

            earned = Decimal("0")
            if is_valid:
                earned = Decimal(str(settings.STREAM_RATE))
                RevenueEntry.objects.create(
                    artist_id=track.artist_id,
                    source=RevenueSource.STREAMS,
                    amount=earned,
                    currency=settings.MARKETPLACE_DEFAULT_CURRENCY,
                    track=track,
                    timestamp=now,
                    details={"stream_id": str(stream_log.id)},
                )
                Track.objects.filter(pk=track.pk).update(play_count=F("play_count") + 1)

        cls.get_logger().info(
            "Stream recorded",
            extra={
                "stream_id": str(stream_log.id),
                "track_id": str(track.id),
                "is_valid": is_valid,
            },
        )
        return StreamRecord(stream_log=stream_log, earned_amount=earned)

    @classmethod
    def is_valid_stream(
        cls,
        track_id,
        user_id: int | None,
        ip_address: str | None,
        now: datetime | None = None,
    ) -> bool:
        """
        Whether a new stream of the track should earn revenue.

        Invalid when there is no identity at all, when the user already
        has STREAM_MAX_PER_USER streams of the track in the trailing
        window, or when the IP already has STREAM_MAX_PER_IP. Invalid
        streams in the window count too.
        """
        if user_id is None and not ip_address:
            return False

        since = (now or timezone.now()) - timedelta(minutes=settings.STREAM_WINDOW_MINUTES)
        recent = StreamLog.objects.filter(track_id=track_id, streamed_at__gt=since)

        if user_id is not None:
            if recent.filter(user_id=user_id).count() >= settings.STREAM_MAX_PER_USER:
                return False

        if ip_address:
            if recent.filter(ip_address=ip_address).count() >= settings.STREAM_MAX_PER_IP:
                return False

        return True

    # =========================================================================
    # Reporting
    # =========================================================================

    @classmethod
    def get_stream_analytics(
        cls,
        actor: Principal,
        track_id=None,
        period: str = "week",
    ) -> dict:
        """
        Stream counts and stream earnings for a trailing period.

        Without track_id the report covers all of the actor's tracks
        (every track for admins).

        Raises:
            ValidationError: Unknown period
            NotFoundError: Unknown track
            PermissionDeniedError: Track belongs to another artist
        """
        if period not in ANALYTICS_PERIODS:
            raise ValidationError(
                "period must be one of: day, week, month",
                error_code="INVALID_PERIOD",
                details={"period": [f"'{period}' is not a valid choice."]},
            )
        since = timezone.now() - ANALYTICS_PERIODS[period]
        can_view_all = actor.can(Capability.VIEW_ALL_ANALYTICS)

        streams = StreamLog.objects.filter(streamed_at__gte=since)
        earnings = RevenueEntry.objects.filter(source=RevenueSource.STREAMS, timestamp__gte=since)

        if track_id is not None:
            track = cls._get_track(track_id)
            if track.artist_id != actor.user_id and not can_view_all:
                raise PermissionDeniedError(
                    "You can only view analytics for your own tracks",
                    error_code="NOT_TRACK_OWNER",
                    details={"track_id": str(track.id)},
                )
            streams = streams.filter(track=track)
            earnings = earnings.filter(track=track)
        elif not can_view_all:
            streams = streams.filter(track__artist_id=actor.user_id)
            earnings = earnings.filter(artist_id=actor.user_id)

        counts = streams.aggregate(
            total=Count("id"),
            valid=Count("id", filter=Q(is_valid=True)),
        )
        total_earnings = earnings.aggregate(total=Sum("amount"))["total"] or Decimal("0")

        return {
            "track_id": str(track_id) if track_id is not None else None,
            "period": period,
            "since": since,
            "total_streams": counts["total"],
            "valid_streams": counts["valid"],
            "total_earnings": total_earnings,
        }

    @classmethod
    def get_earnings_summary(cls, actor: Principal, artist_id: int | None = None) -> dict:
        """
        Lifetime earnings of an artist across all revenue sources.

        Returns:
            dict with total, by_source (every source, zero when absent)
            and the most recent entries

        Raises:
            PermissionDeniedError: Another artist's summary without
                VIEW_ALL_ANALYTICS
        """
        if artist_id is None:
            artist_id = actor.user_id
        if artist_id != actor.user_id and not actor.can(Capability.VIEW_ALL_ANALYTICS):
            raise PermissionDeniedError(
                "You can only view your own earnings",
                details={"artist_id": artist_id},
            )

        entries = RevenueEntry.objects.filter(artist_id=artist_id)
        by_source = {source.value: Decimal("0") for source in RevenueSource}
        for row in entries.order_by().values("source").annotate(total=Sum("amount")):
            by_source[row["source"]] = row["total"]

        return {
            "artist_id": artist_id,
            "total": sum(by_source.values(), Decimal("0")),
            "by_source": by_source,
            "recent": list(entries.select_related("track").order_by("-timestamp")[:RECENT_ENTRIES_LIMIT]),
        }

    @staticmethod
    def _get_track(track_id) -> Track:
        try:
            return Track.objects.get(pk=track_id)
        except (Track.DoesNotExist, DjangoValidationError, ValueError) as exc:
            raise NotFoundError(
                f"Track {track_id} not found",
                error_code="TRACK_NOT_FOUND",
                details={"id": str(track_id)},
            ) from exc
