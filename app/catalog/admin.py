"""
Django admin configuration for catalog models.
"""

from django.contrib import admin

from catalog.models import Product, Track


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["title", "seller", "price_cents", "currency", "is_active", "created_at"]
    list_filter = ["is_active", "currency"]
    search_fields = ["title", "seller__email"]
    raw_id_fields = ["seller"]


@admin.register(Track)
class TrackAdmin(admin.ModelAdmin):
    list_display = ["title", "artist", "play_count", "created_at"]
    search_fields = ["title", "artist__email"]
    raw_id_fields = ["artist"]
    readonly_fields = ["play_count"]
