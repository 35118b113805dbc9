"""
Stream attribution models.

- StreamLog: One playback event, valid or throttled
- RevenueEntry: One earned amount credited to an artist

Stream revenue is stored as Decimal because the per-stream rate is a
fraction of a cent.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from core.exceptions import ValidationError
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class RevenueSource(models.TextChoices):
    STREAMS = "streams", "Streams"
    AD_CLICKS = "ad_clicks", "Ad Clicks"
    SUBSCRIPTIONS = "subscriptions", "Subscriptions"
    BOOSTS = "boosts", "Boosts"


class StreamLog(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single playback of a track.

    Throttled streams are stored with is_valid=False so the rate window
    keeps counting them. is_valid is decided once at creation.

    Fields:
        track: Track that was played
        user: Listener, when the request was authenticated
        ip_address: Client address, for anonymous throttling
        streamed_at: When the playback was logged
        duration: Seconds played (at least 30)
        is_valid: Whether the stream earned revenue
    """

    track = models.ForeignKey(
        "catalog.Track",
        on_delete=models.CASCADE,
        related_name="streams",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="streams",
    )

    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="Client IP address",
    )

    streamed_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
    )

    duration = models.PositiveIntegerField(
        validators=[MinValueValidator(30)],
        help_text="Playback length in seconds",
    )

    is_valid = models.BooleanField(
        default=False,
        help_text="Whether this stream passed the rate limits and earned revenue",
    )

    class Meta:
        ordering = ["-streamed_at"]
        indexes = [
            models.Index(fields=["track", "user", "streamed_at"], name="stream_track_user_idx"),
            models.Index(fields=["track", "ip_address", "streamed_at"], name="stream_track_ip_idx"),
        ]

    def __str__(self) -> str:
        state = "valid" if self.is_valid else "invalid"
        return f"StreamLog({self.track_id}, {state})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            stored = (
                StreamLog.objects.filter(pk=self.pk).values_list("is_valid", flat=True).first()
            )
            if stored is not None and stored != self.is_valid:
                raise ValidationError(
                    "Stream validity cannot be changed after creation",
                    error_code="STREAM_VALIDITY_IMMUTABLE",
                    details={"stream_id": str(self.pk)},
                )
        super().save(*args, **kwargs)


class RevenueEntry(UUIDPrimaryKeyMixin, BaseModel):
    """
    An amount earned by an artist.

    Streams are the only source recorded by this service; the other
    sources are written by their own flows.
    """

    artist = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="revenue_entries",
    )

    source = models.CharField(
        max_length=20,
        choices=RevenueSource.choices,
        db_index=True,
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text="Earned amount in currency units (not cents)",
    )

    currency = models.CharField(max_length=3, default="USD")

    track = models.ForeignKey(
        "catalog.Track",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="revenue_entries",
    )

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-timestamp"]
        verbose_name_plural = "Revenue entries"
        indexes = [
            models.Index(fields=["artist", "source"], name="revenue_artist_source_idx"),
        ]

    def __str__(self) -> str:
        return f"RevenueEntry({self.source}, {self.amount} {self.currency})"
