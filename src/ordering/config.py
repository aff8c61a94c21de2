"""Runtime settings for the Ordering service, read from the environment.

PROTEAN_ENV selects the Protean config overlay exactly as the other
entrypoints do. Everything else here configures the outbound collaborators
(catalog service, payment processor) and the token verifier.
"""

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    log_level: str = "INFO"

    # Catalog service
    catalog_base_url: str | None = None
    catalog_timeout_seconds: float = 5.0
    catalog_lookup_attempts: int = 3

    # Payment processor
    payment_currency: str = "usd"
    payment_return_url: str = "http://localhost:3000/payment/return"
    checkout_success_url: str = "http://localhost:3000/checkout/success"
    checkout_cancel_url: str = "http://localhost:3000/checkout/cancel"
    stripe_secret_key: str | None = None
    payment_lookup_attempts: int = 3

    # Identity
    token_public_key_pem: str | None = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.environ.get("PROTEAN_ENV", "development"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            catalog_base_url=os.environ.get("CATALOG_BASE_URL") or None,
            catalog_timeout_seconds=_env_float("CATALOG_TIMEOUT_SECONDS", 5.0),
            catalog_lookup_attempts=_env_int("CATALOG_LOOKUP_ATTEMPTS", 3),
            payment_currency=os.environ.get("PAYMENT_CURRENCY", "usd").lower(),
            payment_return_url=os.environ.get("PAYMENT_RETURN_URL", cls.payment_return_url),
            checkout_success_url=os.environ.get("CHECKOUT_SUCCESS_URL", cls.checkout_success_url),
            checkout_cancel_url=os.environ.get("CHECKOUT_CANCEL_URL", cls.checkout_cancel_url),
            stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY") or None,
            payment_lookup_attempts=_env_int("PAYMENT_LOOKUP_ATTEMPTS", 3),
            token_public_key_pem=os.environ.get("TOKEN_PUBLIC_KEY_PEM") or None,
        )


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment once."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings.from_env()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    global _current_settings
    _current_settings = None
