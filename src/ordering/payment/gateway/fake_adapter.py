"""Configurable fake payment gateway for development and testing.

This adapter simulates a payment processor without any external calls.
The outcome of the next confirmation is set with ``configure``; intents it
has created are remembered so later retrievals see the same state, and
``set_intent_status`` simulates the processor moving an intent on its own.
"""

from uuid import uuid4

from ordering.payment.gateway.port import (
    CheckoutLineItem,
    CheckoutSession,
    PaymentGateway,
    PaymentGatewayError,
    PaymentIntent,
)


class FakePaymentGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.next_status: str = "succeeded"
        self.last_error: str | None = None
        self.error: str | None = None
        self.retrieve_error: str | None = None
        self.intents: dict[str, PaymentIntent] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        next_status: str = "succeeded",
        last_error: str | None = None,
        error: str | None = None,
        retrieve_error: str | None = None,
    ) -> None:
        """Configure gateway behavior at runtime.

        ``error`` makes intent creation raise; ``retrieve_error`` makes every
        retrieval raise.
        """
        self.next_status = next_status
        self.last_error = last_error
        self.error = error
        self.retrieve_error = retrieve_error

    def set_intent_status(self, intent_id: str, status: str, last_error: str | None = None) -> None:
        intent = self.intents[intent_id]
        self.intents[intent_id] = PaymentIntent(
            id=intent.id,
            status=status,
            client_secret=intent.client_secret,
            last_error=last_error,
        )

    def create_and_confirm_intent(
        self,
        amount: int,
        currency: str,
        payment_method_token: str,
        return_url: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_and_confirm_intent",
                "amount": amount,
                "currency": currency,
                "payment_method_token": payment_method_token,
                "return_url": return_url,
                "metadata": dict(metadata),
            }
        )

        if self.error:
            raise PaymentGatewayError(self.error, code="card_declined")

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        intent = PaymentIntent(
            id=intent_id,
            status=self.next_status,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:12]}",
            last_error=self.last_error,
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        self.calls.append({"method": "retrieve_intent", "intent_id": intent_id})

        if self.retrieve_error:
            raise PaymentGatewayError(self.retrieve_error)
        if intent_id not in self.intents:
            raise PaymentGatewayError(f"No such payment_intent: '{intent_id}'", code="resource_missing")
        return self.intents[intent_id]

    def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "line_items": list(line_items),
                "currency": currency,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": dict(metadata),
            }
        )

        if self.error:
            raise PaymentGatewayError(self.error)

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        return CheckoutSession(id=session_id, url=f"https://checkout.fake.local/pay/{session_id}")
