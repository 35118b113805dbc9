"""
Roles, capabilities and the single capability check.

Every state-mutating settlement operation starts with
``require_capability(actor, Capability.X)``. Roles are never compared as
strings at call sites; they map to capabilities here.

Key Components:
    Role: Personas a user can hold (a user may hold several)
    Capability: Named permissions consumed by the services
    ROLE_CAPABILITIES: Role -> capabilities table
    Principal: The acting identity (user id + roles) as the identity
        provider supplies it
    require_capability: Raise PermissionDeniedError unless granted

Error Codes:
    PERMISSION_DENIED: Principal lacks the capability

Usage:
    from authentication.roles import Capability, Principal, require_capability

    actor = Principal.from_user(request.user)
    require_capability(actor, Capability.RESOLVE_DISPUTE)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db import models

from core.exceptions import PermissionDeniedError

if TYPE_CHECKING:
    from authentication.models import User


class Role(models.TextChoices):
    """Personas of the platform."""

    ARTIST = "ARTIST", "Artist"
    LISTENER = "LISTENER", "Listener"
    BUSINESS = "BUSINESS", "Business"
    MARKETER = "MARKETER", "Marketer"
    ADMIN = "ADMIN", "Admin"


class Capability(models.TextChoices):
    """Permissions checked at the entry of settlement operations."""

    PLACE_ORDER = "place_order", "Place marketplace orders"
    REQUEST_PAYOUT = "request_payout", "Request payouts of released funds"
    RESOLVE_DISPUTE = "resolve_dispute", "Review and resolve disputes"
    ADMIN_SETTLE = "admin_settle", "Release or refund held escrows"
    MANAGE_PAYOUTS = "manage_payouts", "Move payouts through fulfillment"
    VIEW_ALL_ESCROWS = "view_all_escrows", "View every escrow and order"
    VIEW_ALL_ANALYTICS = "view_all_analytics", "View stream analytics for any track"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ARTIST: frozenset({Capability.PLACE_ORDER, Capability.REQUEST_PAYOUT}),
    Role.BUSINESS: frozenset({Capability.PLACE_ORDER, Capability.REQUEST_PAYOUT}),
    Role.LISTENER: frozenset({Capability.PLACE_ORDER}),
    Role.MARKETER: frozenset({Capability.PLACE_ORDER}),
    Role.ADMIN: frozenset(Capability),
}


@dataclass(frozen=True)
class Principal:
    """
    The caller of a settlement operation.

    Attributes:
        user_id: Primary key of the acting User
        roles: Roles the identity provider asserts for this caller
    """

    user_id: int
    roles: frozenset[Role] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user: User) -> Principal:
        """Build a principal from a User; unknown role strings are ignored."""
        known = {choice.value for choice in Role}
        return cls(
            user_id=user.pk,
            roles=frozenset(Role(value) for value in (user.roles or []) if value in known),
        )

    @property
    def capabilities(self) -> frozenset[Capability]:
        granted: set[Capability] = set()
        for role in self.roles:
            granted |= ROLE_CAPABILITIES.get(role, frozenset())
        return frozenset(granted)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities


def require_capability(principal: Principal, capability: Capability) -> None:
    """
    Raise PermissionDeniedError unless the principal holds the capability.

    Raises:
        PermissionDeniedError: With details naming the missing capability
    """
    if not principal.can(capability):
        raise PermissionDeniedError(
            f"This action requires the '{capability.label}' permission",
            details={"capability": capability.value},
        )
