"""Order status state machine.

One table holds transition legality and one function maps a payment
processor's intent status onto the local order status. Both are pure and are
used by the aggregate, the payment orchestrator and the tests alike.

    PENDING_PAYMENT → PAYMENT_FAILED | PENDING_CONFIRMATION | CONFIRMED
    PENDING_CONFIRMATION → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    DELIVERED → RETURN_REQUESTED → RETURN_APPROVED → RETURNED → REFUNDED
    PENDING_PAYMENT | PENDING_CONFIRMATION | CONFIRMED → CANCELLED_BY_USER
    any non-terminal → CANCELLED_BY_ADMIN
"""

from dataclasses import dataclass
from enum import Enum


class OrderStatus(Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED_BY_USER = "CANCELLED_BY_USER"
    CANCELLED_BY_ADMIN = "CANCELLED_BY_ADMIN"
    RETURN_REQUESTED = "RETURN_REQUESTED"
    RETURN_APPROVED = "RETURN_APPROVED"
    RETURNED = "RETURNED"
    REFUNDED = "REFUNDED"


class IntentStatus:
    """Payment-intent statuses reported by the processor."""

    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_ACTION = "requires_action"
    REQUIRES_SOURCE_ACTION = "requires_source_action"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    CANCELED = "canceled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING_PAYMENT: {
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.PENDING_CONFIRMATION,
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED_BY_USER,
        OrderStatus.CANCELLED_BY_ADMIN,
    },
    OrderStatus.PENDING_CONFIRMATION: {
        OrderStatus.CONFIRMED,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED_BY_USER,
        OrderStatus.CANCELLED_BY_ADMIN,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED_BY_USER,
        OrderStatus.CANCELLED_BY_ADMIN,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED_BY_ADMIN},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURN_REQUESTED},
    OrderStatus.RETURN_REQUESTED: {OrderStatus.RETURN_APPROVED},
    OrderStatus.RETURN_APPROVED: {OrderStatus.RETURNED},
    OrderStatus.RETURNED: {OrderStatus.REFUNDED},
    OrderStatus.PAYMENT_FAILED: set(),  # Terminal, but re-payable via a new intent
    OrderStatus.CANCELLED_BY_USER: set(),  # Terminal
    OrderStatus.CANCELLED_BY_ADMIN: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

_TERMINAL_STATES = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED_BY_USER,
    OrderStatus.CANCELLED_BY_ADMIN,
    OrderStatus.REFUNDED,
    OrderStatus.PAYMENT_FAILED,
}

_USER_CANCELLABLE_STATES = {
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.PENDING_CONFIRMATION,
    OrderStatus.CONFIRMED,
}

_CANCELLED_OR_FAILED = {
    OrderStatus.PAYMENT_FAILED,
    OrderStatus.CANCELLED_BY_USER,
    OrderStatus.CANCELLED_BY_ADMIN,
}


def _as_status(status) -> OrderStatus:
    return status if isinstance(status, OrderStatus) else OrderStatus(status)


def can_transition(current, target) -> bool:
    return _as_status(target) in _VALID_TRANSITIONS[_as_status(current)]


def is_terminal(status) -> bool:
    return _as_status(status) in _TERMINAL_STATES


def can_be_cancelled_by_user(status) -> bool:
    return _as_status(status) in _USER_CANCELLABLE_STATES


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of applying one remote intent status to a local order.

    ``status`` is the order status after reconciliation (possibly unchanged).
    ``clear_client_secret`` and ``record_external_payment`` are only set when
    the payment succeeded and the order was moved to CONFIRMED.
    ``surface_client_secret`` tells the caller to hand the secret back to the
    client so it can complete an additional authentication step.
    """

    status: OrderStatus
    message: str
    clear_client_secret: bool = False
    record_external_payment: bool = False
    surface_client_secret: bool = False


def reconcile(current, remote_status: str | None) -> Reconciliation:
    """Map a remote payment-intent status onto the local order status."""
    current = _as_status(current)

    if remote_status == IntentStatus.SUCCEEDED:
        if current in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING):
            return Reconciliation(status=current, message="Payment successful.")
        return Reconciliation(
            status=OrderStatus.CONFIRMED,
            message="Payment successful.",
            clear_client_secret=True,
            record_external_payment=True,
        )

    if remote_status in (IntentStatus.REQUIRES_ACTION, IntentStatus.REQUIRES_SOURCE_ACTION):
        return Reconciliation(
            status=current,
            message="Payment requires further action from the user.",
            surface_client_secret=True,
        )

    if remote_status == IntentStatus.REQUIRES_PAYMENT_METHOD:
        return Reconciliation(
            status=OrderStatus.PAYMENT_FAILED,
            message="Payment failed. Please try a different payment method.",
        )

    if remote_status == IntentStatus.PROCESSING:
        return Reconciliation(status=current, message="Payment is currently processing.")

    if remote_status == IntentStatus.CANCELED:
        if current in _CANCELLED_OR_FAILED:
            return Reconciliation(status=current, message="Payment was cancelled.")
        return Reconciliation(status=OrderStatus.PAYMENT_FAILED, message="Payment was cancelled.")

    # Unknown statuses (e.g. requires_capture) fail safe
    return Reconciliation(status=OrderStatus.PAYMENT_FAILED, message=f"Payment status: {remote_status}")
