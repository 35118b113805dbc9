"""
Authentication application.

Key components:
    - User model: Custom email-based user with a role set
    - roles: Role and Capability enums, Principal, require_capability()

Usage:
    from authentication.models import User
    from authentication.roles import Capability, Principal, require_capability
"""
