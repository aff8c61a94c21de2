"""Payment reconciliation — commands and handler.

Persists the outcome of reconciling an order against its payment intent, and
the failure path when the processor rejects the attempt outright.
"""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.state_machine import OrderStatus, Reconciliation

MAX_REASON_LENGTH = 500


@ordering.command(part_of="Order")
class RecordPaymentReconciliation:
    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=100)
    intent_status = String(required=True, max_length=50)
    client_secret = String(max_length=255)
    target_status = String(required=True, max_length=50, choices=OrderStatus)
    message = String(max_length=500)
    clear_client_secret = Boolean(default=False)
    record_external_payment = Boolean(default=False)


@ordering.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=MAX_REASON_LENGTH)


@ordering.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPaymentReconciliation)
    def record_payment_reconciliation(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_reconciliation(
            Reconciliation(
                status=OrderStatus(command.target_status),
                message=command.message or "",
                clear_client_secret=bool(command.clear_client_secret),
                record_external_payment=bool(command.record_external_payment),
            ),
            payment_intent_id=command.payment_intent_id,
            intent_status=command.intent_status,
            client_secret=command.client_secret,
        )
        repo.add(order)
        return str(order.id)

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_payment_failed(reason=command.reason)
        repo.add(order)
        return str(order.id)
