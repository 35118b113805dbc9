"""
Authentication models.

- User: Custom user model with email-based authentication and a role set

Related files:
    - managers.py: Custom user manager for email-based creation
    - roles.py: Role/Capability enums and the capability check
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from authentication.roles import Role


def default_roles():
    return [Role.LISTENER.value]


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        display_name: Name shown to the other party of an order
        roles: List of Role values; a user may be artist and listener at once
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Note:
        The user row doubles as the per-seller lock for payout requests
        (select_for_update in PayoutService.request_payout).
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    display_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Public name shown on orders and notifications",
    )

    roles = models.JSONField(
        default=default_roles,
        blank=True,
        help_text="Role values held by this user (ARTIST, LISTENER, BUSINESS, MARKETER, ADMIN)",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.display_name or self.email

    def get_short_name(self):
        return self.display_name or self.email.split("@")[0]

    def has_role(self, role: Role) -> bool:
        return str(role) in (self.roles or [])

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)
