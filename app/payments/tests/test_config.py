"""Tests for StripeConfig."""

import pytest

from payments.config import StripeConfig
from payments.exceptions import ConfigurationError


class TestStripeConfig:
    def test_from_settings(self, stripe_settings):
        config = StripeConfig.from_settings()

        assert config.secret_key == "sk_test_platform"
        assert config.frontend_url == "https://ebar.example.com"
        assert config.price_ids["professional"] == "price_professional"

    def test_frontend_url_trailing_slash_stripped(self, stripe_settings):
        stripe_settings.FRONTEND_URL = "https://ebar.example.com/"

        assert StripeConfig.from_settings().frontend_url == "https://ebar.example.com"

    def test_missing_required_values(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StripeConfig(secret_key="", frontend_url="")

        assert exc_info.value.details["missing"] == ["STRIPE_SECRET_KEY", "FRONTEND_URL"]

    def test_timeout_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="must be positive"):
            StripeConfig(secret_key="sk_test", frontend_url="https://x", timeout_seconds=0)

    @pytest.mark.parametrize(
        "endpoint,secret",
        [("subscription", "whsec_subscription_test"), ("connect", "whsec_connect_test")],
    )
    def test_webhook_secret_per_endpoint(self, stripe_config, endpoint, secret):
        assert stripe_config.webhook_secret(endpoint) == secret

    def test_webhook_secret_unconfigured(self):
        config = StripeConfig(secret_key="sk_test", frontend_url="https://x")

        with pytest.raises(ConfigurationError, match="connect"):
            config.webhook_secret("connect")

    def test_webhook_secret_unknown_endpoint(self, stripe_config):
        with pytest.raises(ConfigurationError):
            stripe_config.webhook_secret("billing")
