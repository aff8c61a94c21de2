"""Stripe payment gateway adapter.

Built on stripe-python. Each call passes the secret key per request so the
adapter never touches the SDK's module-wide ``stripe.api_key``. SDK errors
and responses missing the fields we rely on are raised as
PaymentGatewayError carrying Stripe's message and code.
"""

import stripe
import structlog

from ordering.payment.gateway.port import (
    CheckoutLineItem,
    CheckoutSession,
    PaymentGateway,
    PaymentGatewayError,
    PaymentIntent,
)

logger = structlog.get_logger(__name__)

MALFORMED_RESPONSE = "Malformed payment processor response"


def _gateway_error(exc: stripe.StripeError) -> PaymentGatewayError:
    message = exc.user_message or str(exc) or "Payment processor error"
    return PaymentGatewayError(message, code=exc.code)


def _intent_from(obj) -> PaymentIntent:
    try:
        last_error = obj.get("last_payment_error") or {}
        intent = PaymentIntent(
            id=obj["id"],
            status=obj["status"],
            client_secret=obj.get("client_secret"),
            last_error=last_error.get("message"),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        logger.error("Unexpected payment intent payload", error=str(exc))
        raise PaymentGatewayError(MALFORMED_RESPONSE) from exc

    if not intent.id or not intent.status:
        raise PaymentGatewayError(MALFORMED_RESPONSE)
    return intent


class StripePaymentGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key

    def create_and_confirm_intent(
        self,
        amount: int,
        currency: str,
        payment_method_token: str,
        return_url: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._secret_key,
                amount=amount,
                currency=currency,
                payment_method=payment_method_token,
                confirmation_method="manual",
                confirm=True,
                return_url=return_url,
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe rejected payment intent", error=str(exc), code=exc.code)
            raise _gateway_error(exc) from exc
        return _intent_from(intent)

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self._secret_key)
        except stripe.StripeError as exc:
            logger.warning("Stripe intent lookup failed", payment_intent_id=intent_id, error=str(exc))
            raise _gateway_error(exc) from exc
        return _intent_from(intent)

    def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                mode="payment",
                payment_method_types=["card"],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {"name": item.name},
                            "unit_amount": item.unit_amount,
                        },
                        "quantity": item.quantity,
                    }
                    for item in line_items
                ],
            )
        except stripe.StripeError as exc:
            logger.error("Stripe rejected checkout session", error=str(exc), code=exc.code)
            raise _gateway_error(exc) from exc

        try:
            session_id, url = session["id"], session["url"]
        except (KeyError, TypeError) as exc:
            raise PaymentGatewayError(MALFORMED_RESPONSE) from exc
        if not session_id or not url:
            raise PaymentGatewayError(MALFORMED_RESPONSE)
        return CheckoutSession(id=session_id, url=url)
