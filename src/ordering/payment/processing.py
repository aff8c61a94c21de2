"""Payment processing for placed orders.

PaymentProcessingService charges an order through the payment gateway and
reconciles the local order with whatever the processor reports. An order
that already carries an intent is re-read first so a retried request never
charges twice for an intent that already succeeded or is still in flight.
Local writes go through RecordPaymentReconciliation / RecordPaymentFailure
and happen only when something actually changed.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.auth.identity import Identity
from ordering.config import get_settings
from ordering.errors import InvalidOrderStatus, OrderNotFound, PaymentNotAuthorized, PaymentProcessingFailed
from ordering.order.order import Order
from ordering.order.state_machine import IntentStatus, OrderStatus, reconcile
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import CheckoutLineItem, PaymentGateway, PaymentGatewayError, PaymentIntent
from ordering.payment.recording import MAX_REASON_LENGTH, RecordPaymentFailure, RecordPaymentReconciliation
from ordering.utils.retry import retry_with_backoff

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    order_id: str
    payment_intent_id: str
    status: str
    message: str
    client_secret: str | None = None


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def _failure_reason(message: str | None) -> str:
    """Fit a processor error message into the recorded failure reason."""
    return (message or "Payment processor error")[:MAX_REASON_LENGTH]


class PaymentProcessingService:
    def __init__(self, gateway: PaymentGateway | None = None, sleep=None) -> None:
        self._gateway = gateway
        self._sleep = sleep

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_gateway()

    def _load_payable_order(self, identity: Identity, order_id: str) -> Order:
        try:
            order = current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError as exc:
            logger.warning("Payment requested for unknown order", order_id=order_id)
            raise OrderNotFound(order_id) from exc

        if not order.is_owned_by(identity.subject_id):
            logger.warning(
                "Payment requested by non-owner",
                order_id=order_id,
                order_user_id=str(order.user_id),
                user_id=identity.subject_id,
            )
            raise PaymentNotAuthorized(order_id)

        if order.order_status != OrderStatus.PENDING_PAYMENT:
            logger.warning("Payment requested for order not awaiting payment", order_id=order_id, status=order.status)
            raise InvalidOrderStatus(order_id, order.status)
        return order

    def _retrieve_existing_intent(self, order: Order) -> PaymentIntent | None:
        retry_kwargs = {"sleep": self._sleep} if self._sleep else {}
        try:
            return retry_with_backoff(
                lambda: self.gateway.retrieve_intent(order.payment_intent_id),
                attempts=get_settings().payment_lookup_attempts,
                retry_on=(PaymentGatewayError,),
                description="payment.retrieve_intent",
                **retry_kwargs,
            )
        except PaymentGatewayError as exc:
            logger.error(
                "Could not retrieve existing payment intent; creating a new one",
                order_id=str(order.id),
                payment_intent_id=order.payment_intent_id,
                error=exc.message,
            )
            return None

    # -------------------------------------------------------------------
    # Charging
    # -------------------------------------------------------------------
    def process_payment(self, identity: Identity, order_id: str, payment_method_token: str) -> PaymentResult:
        logger.info("Processing payment", order_id=order_id, user_id=identity.subject_id)
        order = self._load_payable_order(identity, order_id)

        if order.payment_intent_id:
            existing = self._retrieve_existing_intent(order)
            if existing is not None:
                logger.info(
                    "Existing payment intent found",
                    order_id=order_id,
                    payment_intent_id=existing.id,
                    intent_status=existing.status,
                )
                if existing.status in (IntentStatus.SUCCEEDED, IntentStatus.PROCESSING):
                    return self._apply_intent(order, existing)
                if (
                    existing.status in (IntentStatus.REQUIRES_ACTION, IntentStatus.REQUIRES_PAYMENT_METHOD)
                    and existing.client_secret
                ):
                    return self._apply_intent(order, existing)

        settings = get_settings()
        try:
            intent = self.gateway.create_and_confirm_intent(
                amount=to_minor_units(order.total_amount),
                currency=settings.payment_currency,
                payment_method_token=payment_method_token,
                return_url=f"{settings.payment_return_url}?order_id={order.id}",
                metadata={"order_id": str(order.id), "user_id": str(order.user_id)},
            )
        except PaymentGatewayError as exc:
            logger.error("Payment processor rejected the payment", order_id=order_id, error=exc.message, code=exc.code)
            reason = _failure_reason(exc.message)
            current_domain.process(RecordPaymentFailure(order_id=order_id, reason=reason), asynchronous=False)
            raise PaymentProcessingFailed(order_id, exc.message or reason) from exc

        logger.info("Payment intent created", order_id=order_id, payment_intent_id=intent.id, intent_status=intent.status)
        return self._apply_intent(order, intent)

    def _apply_intent(self, order: Order, intent: PaymentIntent) -> PaymentResult:
        outcome = reconcile(order.order_status, intent.status)

        message = outcome.message
        if intent.status == IntentStatus.REQUIRES_PAYMENT_METHOD and intent.last_error:
            message = f"{message} {intent.last_error}"
        if intent.status not in (
            IntentStatus.SUCCEEDED,
            IntentStatus.PROCESSING,
            IntentStatus.REQUIRES_ACTION,
            IntentStatus.REQUIRES_SOURCE_ACTION,
        ):
            logger.warning(
                "Payment did not go through",
                order_id=str(order.id),
                payment_intent_id=intent.id,
                intent_status=intent.status,
            )

        changed = (
            outcome.status != order.order_status
            or intent.id != order.payment_intent_id
            or (intent.client_secret is not None and intent.client_secret != order.payment_client_secret)
        )
        if changed:
            current_domain.process(
                RecordPaymentReconciliation(
                    order_id=str(order.id),
                    payment_intent_id=intent.id,
                    intent_status=intent.status,
                    client_secret=intent.client_secret,
                    target_status=outcome.status.value,
                    message=outcome.message,
                    clear_client_secret=outcome.clear_client_secret,
                    record_external_payment=outcome.record_external_payment,
                ),
                asynchronous=False,
            )
            logger.info(
                "Order reconciled with payment intent",
                order_id=str(order.id),
                intent_status=intent.status,
                order_status=outcome.status.value,
            )

        return PaymentResult(
            order_id=str(order.id),
            payment_intent_id=intent.id,
            status=intent.status,
            message=message,
            client_secret=intent.client_secret if outcome.surface_client_secret else None,
        )

    # -------------------------------------------------------------------
    # Hosted checkout
    # -------------------------------------------------------------------
    def create_checkout_session(self, identity: Identity, order_id: str) -> str:
        """Open a hosted checkout page for the order and return its URL.

        The order's status is left untouched; the outcome arrives later
        through the processor.
        """
        order = self._load_payable_order(identity, order_id)
        settings = get_settings()

        line_items = [
            CheckoutLineItem(
                name=item.product_name,
                unit_amount=to_minor_units(item.unit_price_at_order_time),
                quantity=item.quantity,
            )
            for item in order.items
        ]
        try:
            session = self.gateway.create_checkout_session(
                line_items=line_items,
                currency=settings.payment_currency,
                success_url=f"{settings.checkout_success_url}?order_id={order.id}",
                cancel_url=f"{settings.checkout_cancel_url}?order_id={order.id}",
                metadata={"order_id": str(order.id), "user_id": str(order.user_id)},
            )
        except PaymentGatewayError as exc:
            logger.error("Could not open checkout session", order_id=order_id, error=exc.message)
            raise PaymentProcessingFailed(order_id, exc.message) from exc

        logger.info("Checkout session created", order_id=order_id, session_id=session.id)
        return session.url
