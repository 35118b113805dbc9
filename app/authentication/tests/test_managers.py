"""
Tests for UserManager.
"""

import pytest

from authentication.models import User
from authentication.roles import Role


class TestUserManager:
    """Tests for user creation."""

    def test_create_user_defaults_to_listener(self, db):
        """New users without roles should be listeners."""
        user = User.objects.create_user(email="new@EXAMPLE.com", password="pw12345!")

        assert user.email == "new@example.com"
        assert user.roles == ["LISTENER"]
        assert user.check_password("pw12345!")
        assert user.is_admin is False

    def test_create_user_stores_role_values(self, db):
        """Role members should be stored as plain strings."""
        user = User.objects.create_user(
            email="artist@example.com", roles=[Role.ARTIST, Role.LISTENER]
        )

        user.refresh_from_db()
        assert user.roles == ["ARTIST", "LISTENER"]
        assert user.has_role(Role.ARTIST)
        assert not user.has_usable_password()

    def test_create_user_requires_email(self, db):
        with pytest.raises(ValueError):
            User.objects.create_user(email="", password="pw")

    def test_create_superuser_is_admin(self, db):
        """Superusers should carry the ADMIN role and staff flags."""
        admin = User.objects.create_superuser(email="root@example.com", password="pw")

        assert admin.is_staff and admin.is_superuser
        assert admin.is_admin is True
