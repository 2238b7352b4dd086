"""
Stripe and platform configuration for the payments app.

StripeConfig is an immutable snapshot of the settings the payment services
need. It is built once (per request or task) with ``from_settings()`` and
handed to the components that need it; nothing reads the Stripe keys from
module-level state.

Usage:
    from payments.config import StripeConfig

    config = StripeConfig.from_settings()
    adapter = StripeAdapter(config)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from django.conf import settings

from payments.exceptions import ConfigurationError


@dataclass(frozen=True)
class StripeConfig:
    """
    Settings consumed by the Stripe adapter and payment services.

    Attributes:
        secret_key: Platform secret key (sk_test_... / sk_live_...)
        frontend_url: Public base URL for onboarding redirect links
        subscription_webhook_secret: Signing secret for billing events
        connect_webhook_secret: Signing secret for connect account events
        timeout_seconds: Client-visible timeout for each Stripe call
        max_network_retries: SDK-level retries (0: callers own retries)
        price_ids: Stripe price id per subscription tier
    """

    secret_key: str
    frontend_url: str
    subscription_webhook_secret: str = ""
    connect_webhook_secret: str = ""
    timeout_seconds: int = 15
    max_network_retries: int = 0
    price_ids: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        missing = []
        if not self.secret_key:
            missing.append("STRIPE_SECRET_KEY")
        if not self.frontend_url:
            missing.append("FRONTEND_URL")
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                details={"missing": missing},
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                "STRIPE_API_TIMEOUT_SECONDS must be positive",
                details={"timeout_seconds": self.timeout_seconds},
            )

    @classmethod
    def from_settings(cls) -> StripeConfig:
        """
        Build the config from Django settings.

        Raises:
            ConfigurationError: If the secret key or frontend URL is empty
        """
        return cls(
            secret_key=getattr(settings, "STRIPE_SECRET_KEY", ""),
            frontend_url=getattr(settings, "FRONTEND_URL", "").rstrip("/"),
            subscription_webhook_secret=getattr(
                settings, "STRIPE_SUBSCRIPTION_WEBHOOK_SECRET", ""
            ),
            connect_webhook_secret=getattr(settings, "STRIPE_CONNECT_WEBHOOK_SECRET", ""),
            timeout_seconds=getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 15),
            max_network_retries=getattr(settings, "STRIPE_MAX_RETRIES", 0),
            price_ids={
                "starter": getattr(settings, "STRIPE_PRICE_STARTER", ""),
                "professional": getattr(settings, "STRIPE_PRICE_PROFESSIONAL", ""),
                "premium": getattr(settings, "STRIPE_PRICE_PREMIUM", ""),
            },
        )

    def webhook_secret(self, endpoint: str) -> str:
        """
        Signing secret for a webhook endpoint ("subscription" or "connect").

        Raises:
            ConfigurationError: If the endpoint has no secret configured
        """
        secret = {
            "subscription": self.subscription_webhook_secret,
            "connect": self.connect_webhook_secret,
        }.get(endpoint, "")
        if not secret:
            raise ConfigurationError(
                f"Webhook signing secret not configured for '{endpoint}' endpoint",
                details={"endpoint": endpoint},
            )
        return secret
