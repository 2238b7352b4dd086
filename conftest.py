"""
Root pytest configuration for the Django project.

Provides project-wide fixtures shared by all apps. App-specific fixtures
are defined in each app's tests/conftest.py.
"""

import os

import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


STRIPE_TEST_SETTINGS = {
    "STRIPE_SECRET_KEY": "sk_test_platform",
    "STRIPE_SUBSCRIPTION_WEBHOOK_SECRET": "whsec_subscription_test",
    "STRIPE_CONNECT_WEBHOOK_SECRET": "whsec_connect_test",
    "STRIPE_PRICE_STARTER": "price_starter",
    "STRIPE_PRICE_PROFESSIONAL": "price_professional",
    "STRIPE_PRICE_PREMIUM": "price_premium",
    "FRONTEND_URL": "https://ebar.example.com",
    "PLATFORM_FEE_BASIS_POINTS": 300,
}


@pytest.fixture
def stripe_settings(settings):
    """Configure Stripe settings with test values."""
    for name, value in STRIPE_TEST_SETTINGS.items():
        setattr(settings, name, value)
    return settings


@pytest.fixture
def stripe_config(stripe_settings):
    """StripeConfig built from the test settings."""
    from payments.config import StripeConfig

    return StripeConfig.from_settings()


@pytest.fixture
def user(db, django_user_model):
    """A regular authenticated user (bar owner)."""
    return django_user_model.objects.create_user(
        username="owner",
        email="owner@example.com",
        password="testpass123",
    )


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user):
    """DRF API client authenticated as ``user``."""
    api_client.force_authenticate(user=user)
    return api_client
