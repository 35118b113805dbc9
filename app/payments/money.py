"""
Money display helpers. Amounts are stored as integer minor units.
"""

from __future__ import annotations

from decimal import Decimal


def format_money(amount_cents: int, currency: str) -> str:
    """
    Format minor units for people.

    Example:
        >>> format_money(5000, "USD")
        'USD 50.00'
    """
    return f"{currency} {Decimal(amount_cents) / 100:.2f}"
