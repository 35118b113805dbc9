"""
Project-wide pytest hooks.

Settings overrides for the test session and automatic unit/integration/e2e
markers. App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest


def pytest_configure():
    """Adjust Django settings before tests run."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # Test client requests are plain HTTP
    settings.SECURE_SSL_REDIRECT = False

    # Redis is only reached through payments.locks, which tests mock
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py, test_settlement_workflows.py → e2e (full settlement workflows)
    - test_views.py, test_*_service.py, test_tasks.py, etc. → integration
    - test_state_transitions.py, test_locks.py, test_roles.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py", "test_settlement_workflows.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_order_service.py",
        "test_escrow_service.py",
        "test_dispute_service.py",
        "test_payout_service.py",
        "test_exception_handler.py",
        "test_admin.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_managers.py",
        "test_roles.py",
        "test_state_transitions.py",
        "test_locks.py",
        "test_stripe_adapter.py",
        "test_exceptions.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
