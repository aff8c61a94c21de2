"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakePaymentGateway for development and testing
- StripePaymentGateway when STRIPE_SECRET_KEY is configured
"""

from ordering.config import get_settings
from ordering.payment.gateway.fake_adapter import FakePaymentGateway
from ordering.payment.gateway.port import PaymentGateway
from ordering.payment.gateway.stripe_adapter import StripePaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakePaymentGateway."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.stripe_secret_key:
            _current_gateway = StripePaymentGateway(settings.stripe_secret_key)
        else:
            _current_gateway = FakePaymentGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
