"""Payment gateway port (abstract interface).

Defines the contract that all payment processor adapters must implement.
This enables swapping between FakePaymentGateway (dev/test) and
StripePaymentGateway (production) without changing the payment orchestrator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentIntent:
    """A processor-side payment intent as last reported."""

    id: str
    status: str
    client_secret: str | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class CheckoutLineItem:
    """One line of a hosted checkout page. ``unit_amount`` is in minor units."""

    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class PaymentGatewayError(Exception):
    """The processor rejected a request or could not be reached."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_and_confirm_intent(
        self,
        amount: int,
        currency: str,
        payment_method_token: str,
        return_url: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        """Create a payment intent for ``amount`` minor units and confirm it at once."""
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Read the current state of an existing intent."""
        ...

    @abstractmethod
    def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """Open a hosted checkout page and return its redirect URL."""
        ...
