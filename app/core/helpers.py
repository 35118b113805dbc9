"""
Request helpers shared by the API apps.

Usage:
    from core.helpers import get_client_ip

    ip = get_client_ip(request)  # None when the server did not record one
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


def get_client_ip(request: HttpRequest) -> str | None:
    """
    Client address of a request, honouring X-Forwarded-For.

    The first address in a proxy chain is the original client.
    """
    forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    else:
        ip = request.META.get("REMOTE_ADDR", "")
    return ip or None
