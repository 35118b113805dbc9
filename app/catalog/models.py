"""
Catalog models.

- Product: A digital good listed on the marketplace by a seller
- Track: A streamable track owned by an artist

Usage:
    from catalog.models import Product, Track

    product = Product.objects.create(seller=artist, title="Beat Pack", price_cents=5000)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class Product(UUIDPrimaryKeyMixin, BaseModel):
    """
    A digital good sold through the marketplace.

    Orders copy price_cents and currency at creation time, so later price
    edits never change an existing escrow.
    """

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="products",
        help_text="User selling this product",
    )

    title = models.CharField(
        max_length=200,
        help_text="Product title",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Product description",
    )

    price_cents = models.PositiveBigIntegerField(
        help_text="Price in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Inactive products cannot be ordered",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["seller", "is_active"], name="product_seller_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.price_cents / 100:.2f} {self.currency})"


class Track(UUIDPrimaryKeyMixin, BaseModel):
    """
    A streamable track.

    play_count only counts valid streams and is always incremented with an
    F() expression.
    """

    artist = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="tracks",
        help_text="Artist credited with stream revenue",
    )

    title = models.CharField(
        max_length=200,
        help_text="Track title",
    )

    play_count = models.PositiveBigIntegerField(
        default=0,
        help_text="Number of valid streams",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title
