"""
Tests for authentication app.

- test_roles.py: Role/Capability mapping and require_capability()
- test_managers.py: UserManager creation rules
"""
