"""
Fixtures for stream attribution tests.
"""

import pytest

from catalog.tests.factories import TrackFactory


@pytest.fixture(autouse=True)
def stream_settings(settings):
    settings.STREAM_RATE = "0.002"
    settings.STREAM_MIN_DURATION_SECONDS = 30
    settings.STREAM_WINDOW_MINUTES = 5
    settings.STREAM_MAX_PER_USER = 5
    settings.STREAM_MAX_PER_IP = 10
    settings.MARKETPLACE_DEFAULT_CURRENCY = "USD"


@pytest.fixture
def track(artist):
    return TrackFactory(artist=artist, title="Lilongwe Nights")

