"""
Shared user fixtures.

Fixtures defined here are loaded for the whole test session through the
pytest_plugins declaration in the root conftest.py, so every app's tests can use
``buyer``, ``artist``, ``platform_admin`` and the principal fixtures.
"""

import pytest
from rest_framework.test import APIClient

from authentication.roles import Principal, Role
from authentication.tests.factories import (
    AdminUserFactory,
    ArtistFactory,
    UserFactory,
)


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def buyer(db):
    """A listener who buys products."""
    return UserFactory(email="buyer@example.com")


@pytest.fixture
def artist(db):
    """An artist who sells products and receives stream revenue."""
    return ArtistFactory(email="artist@example.com")


@pytest.fixture
def other_user(db):
    """A user unrelated to the order under test."""
    return UserFactory(email="bystander@example.com")


@pytest.fixture
def platform_admin(db):
    """A platform admin."""
    return AdminUserFactory(email="admin@example.com")


@pytest.fixture
def business_user(db):
    """A business seller (the original entrepreneur persona)."""
    return UserFactory(email="business@example.com", roles=[Role.BUSINESS.value])


# =============================================================================
# Principal Fixtures
# =============================================================================


@pytest.fixture
def buyer_principal(buyer):
    return Principal.from_user(buyer)


@pytest.fixture
def artist_principal(artist):
    return Principal.from_user(artist)


@pytest.fixture
def admin_principal(platform_admin):
    return Principal.from_user(platform_admin)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def make_client():
    """Build an APIClient force-authenticated as the given user."""

    def _make_client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _make_client
