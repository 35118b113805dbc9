"""
Tests for StreamAttributionService.

Tests cover:
- Stream validation and revenue attribution
- Per-user and per-IP rate windows
- StreamLog validity immutability
- Analytics and earnings reports
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import ArtistFactory
from catalog.models import Track
from catalog.tests.factories import TrackFactory
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from streaming.models import RevenueEntry, RevenueSource, StreamLog
from streaming.services import StreamAttributionService
from streaming.tests.factories import RevenueEntryFactory, StreamLogFactory


# =============================================================================
# record_stream
# =============================================================================


@pytest.mark.django_db
class TestRecordStream:
    def test_valid_stream_credits_artist(self, track, buyer, artist):
        record = StreamAttributionService.record_stream(track.id, 95, user_id=buyer.id)

        assert record.stream_log.is_valid is True
        assert record.earned_amount == Decimal("0.002")
        entry = RevenueEntry.objects.get()
        assert entry.artist_id == artist.id
        assert entry.source == RevenueSource.STREAMS
        assert entry.amount == Decimal("0.002")
        assert entry.track_id == track.id
        assert entry.details == {"stream_id": str(record.stream_log.id)}
        assert Track.objects.get(pk=track.pk).play_count == 1

    def test_anonymous_stream_with_ip_is_valid(self, track):
        record = StreamAttributionService.record_stream(track.id, 30, ip_address="203.0.113.7")

        assert record.stream_log.is_valid is True
        assert record.stream_log.user_id is None

    def test_stream_without_identity_is_logged_invalid(self, track):
        record = StreamAttributionService.record_stream(track.id, 60)

        assert record.stream_log.is_valid is False
        assert record.earned_amount == Decimal("0")
        assert StreamLog.objects.count() == 1
        assert not RevenueEntry.objects.exists()
        assert Track.objects.get(pk=track.pk).play_count == 0

    @pytest.mark.parametrize("duration", [None, 0, 29, "45", 12.5])
    def test_rejects_short_or_missing_duration(self, track, buyer, duration):
        with pytest.raises(ValidationError) as exc_info:
            StreamAttributionService.record_stream(track.id, duration, user_id=buyer.id)

        assert exc_info.value.error_code == "STREAM_TOO_SHORT"
        assert not StreamLog.objects.exists()

    def test_unknown_track(self, db, buyer):
        with pytest.raises(NotFoundError) as exc_info:
            StreamAttributionService.record_stream(uuid4(), 60, user_id=buyer.id)

        assert exc_info.value.error_code == "TRACK_NOT_FOUND"

    def test_sixth_user_stream_in_window_is_invalid(self, track, buyer):
        StreamLogFactory.create_batch(5, track=track, user=buyer, ip_address=None)

        record = StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)

        assert record.stream_log.is_valid is False
        assert not RevenueEntry.objects.exists()

    def test_invalid_streams_count_toward_window(self, track, buyer):
        StreamLogFactory.create_batch(5, track=track, user=buyer, ip_address=None, is_valid=False)

        record = StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)

        assert record.stream_log.is_valid is False

    def test_streams_outside_window_do_not_count(self, track, buyer):
        StreamLogFactory.create_batch(
            5,
            track=track,
            user=buyer,
            ip_address=None,
            streamed_at=timezone.now() - timedelta(minutes=6),
        )

        record = StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)

        assert record.stream_log.is_valid is True

    def test_window_reopens_after_it_passes(self, track, buyer):
        with freeze_time("2024-01-01 12:00:00"):
            for _ in range(5):
                StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)
            throttled = StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)

        with freeze_time("2024-01-01 12:05:01"):
            reopened = StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)

        assert throttled.stream_log.is_valid is False
        assert reopened.stream_log.is_valid is True

    def test_window_is_per_track(self, track, buyer, artist):
        StreamLogFactory.create_batch(5, track=track, user=buyer, ip_address=None)
        other_track = TrackFactory(artist=artist)

        record = StreamAttributionService.record_stream(other_track.id, 60, user_id=buyer.id)

        assert record.stream_log.is_valid is True

    def test_eleventh_ip_stream_in_window_is_invalid(self, track):
        StreamLogFactory.create_batch(10, track=track, ip_address="203.0.113.7")

        record = StreamAttributionService.record_stream(track.id, 60, ip_address="203.0.113.7")

        assert record.stream_log.is_valid is False

    def test_ip_limit_applies_to_logged_in_users(self, track, buyer):
        StreamLogFactory.create_batch(10, track=track, ip_address="203.0.113.7")

        record = StreamAttributionService.record_stream(
            track.id, 60, user_id=buyer.id, ip_address="203.0.113.7"
        )

        assert record.stream_log.is_valid is False

    def test_repeated_streams_are_throttled_not_deduplicated(self, track, buyer):
        results = [
            StreamAttributionService.record_stream(track.id, 60, user_id=buyer.id)
            for _ in range(7)
        ]

        assert [r.stream_log.is_valid for r in results] == [True] * 5 + [False] * 2
        assert StreamLog.objects.count() == 7
        assert RevenueEntry.objects.count() == 5
        assert Track.objects.get(pk=track.pk).play_count == 5


@pytest.mark.django_db
class TestStreamLogValidity:
    def test_validity_cannot_change(self, track):
        stream = StreamLogFactory(track=track, is_valid=False)
        stream.is_valid = True

        with pytest.raises(ValidationError) as exc_info:
            stream.save()

        assert exc_info.value.error_code == "STREAM_VALIDITY_IMMUTABLE"
        assert StreamLog.objects.get(pk=stream.pk).is_valid is False

    def test_other_fields_can_be_saved(self, track):
        stream = StreamLogFactory(track=track, is_valid=True)
        stream.duration = 200

        stream.save()

        assert StreamLog.objects.get(pk=stream.pk).duration == 200


# =============================================================================
# Reports
# =============================================================================


@pytest.mark.django_db
class TestStreamAnalytics:
    def test_counts_own_tracks_in_period(self, track, artist, artist_principal):
        StreamLogFactory.create_batch(3, track=track)
        StreamLogFactory(track=track, is_valid=False)
        StreamLogFactory(track=track, streamed_at=timezone.now() - timedelta(days=2))
        StreamLogFactory()
        RevenueEntryFactory.create_batch(3, artist=artist, track=track)

        report = StreamAttributionService.get_stream_analytics(artist_principal, period="day")

        assert report["total_streams"] == 4
        assert report["valid_streams"] == 3
        assert report["total_earnings"] == Decimal("0.006")
        assert report["period"] == "day"
        assert report["track_id"] is None

    def test_filters_by_track(self, track, artist, artist_principal):
        other_track = TrackFactory(artist=artist)
        StreamLogFactory.create_batch(2, track=track)
        StreamLogFactory(track=other_track)

        report = StreamAttributionService.get_stream_analytics(artist_principal, track_id=track.id)

        assert report["total_streams"] == 2
        assert report["track_id"] == str(track.id)

    def test_other_artists_track_is_denied(self, artist_principal):
        foreign_track = TrackFactory()

        with pytest.raises(PermissionDeniedError) as exc_info:
            StreamAttributionService.get_stream_analytics(artist_principal, track_id=foreign_track.id)

        assert exc_info.value.error_code == "NOT_TRACK_OWNER"

    def test_admin_sees_any_track(self, admin_principal):
        foreign_track = TrackFactory()
        StreamLogFactory(track=foreign_track)

        report = StreamAttributionService.get_stream_analytics(admin_principal, track_id=foreign_track.id)

        assert report["total_streams"] == 1

    def test_unknown_track(self, artist_principal):
        with pytest.raises(NotFoundError):
            StreamAttributionService.get_stream_analytics(artist_principal, track_id=uuid4())

    def test_unknown_period(self, artist_principal):
        with pytest.raises(ValidationError) as exc_info:
            StreamAttributionService.get_stream_analytics(artist_principal, period="year")

        assert exc_info.value.error_code == "INVALID_PERIOD"


@pytest.mark.django_db
class TestEarningsSummary:
    def test_totals_by_source(self, artist, artist_principal):
        RevenueEntryFactory.create_batch(2, artist=artist)
        RevenueEntryFactory(artist=artist, source=RevenueSource.BOOSTS, amount=Decimal("1.5"))
        RevenueEntryFactory(amount=Decimal("9"))

        summary = StreamAttributionService.get_earnings_summary(artist_principal)

        assert summary["artist_id"] == artist.id
        assert summary["total"] == Decimal("1.504")
        assert summary["by_source"] == {
            "streams": Decimal("0.004"),
            "ad_clicks": Decimal("0"),
            "subscriptions": Decimal("0"),
            "boosts": Decimal("1.5"),
        }

    def test_recent_entries_are_newest_first_and_capped(self, artist, artist_principal):
        now = timezone.now()
        for minutes in range(12):
            RevenueEntryFactory(artist=artist, timestamp=now - timedelta(minutes=minutes))

        recent = StreamAttributionService.get_earnings_summary(artist_principal)["recent"]

        assert len(recent) == 10
        assert recent[0].timestamp == now

    def test_other_artist_is_denied(self, artist_principal):
        other = ArtistFactory()

        with pytest.raises(PermissionDeniedError):
            StreamAttributionService.get_earnings_summary(artist_principal, artist_id=other.id)

    def test_admin_can_view_any_artist(self, admin_principal, artist):
        RevenueEntryFactory(artist=artist)

        summary = StreamAttributionService.get_earnings_summary(admin_principal, artist_id=artist.id)

        assert summary["total"] == Decimal("0.002")
