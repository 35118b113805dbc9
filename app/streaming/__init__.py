"""
Streaming app: stream logging and revenue attribution.

Usage:
    from streaming.services import StreamAttributionService

    record = StreamAttributionService.record_stream(track.id, duration=120, user_id=user.id)
"""
