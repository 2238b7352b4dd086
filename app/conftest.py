"""
Pytest configuration for the apps.

Configures test-only settings and assigns unit/integration/e2e markers
from test file names.
"""

import pytest


def pytest_configure():
    """Adjust settings for fast, isolated tests."""
    from django.conf import settings

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]
    # Run Celery tasks inline
    settings.CELERY_TASK_ALWAYS_EAGER = True


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full request-to-database workflows)
    - test_views.py, test_tasks.py, test_handlers.py, etc. → integration
    - test_models.py, test_fees.py, test_events.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_connect_accounts.py",
        "test_account_teardown.py",
        "test_subscriptions.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_fees.py",
        "test_events.py",
        "test_config.py",
        "test_orchestrator.py",
        "test_stripe_adapter.py",
        "test_states.py",
        "test_exceptions.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
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
