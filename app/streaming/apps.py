"""Django app configuration for streaming."""

from django.apps import AppConfig


class StreamingConfig(AppConfig):
    """Configuration for the stream attribution app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "streaming"
    verbose_name = "Streaming"
