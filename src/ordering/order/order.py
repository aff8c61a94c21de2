"""Order aggregate — a priced, immutable-after-placement customer order.

The aggregate is placed once from catalog-priced lines and never gains or
loses line items afterwards. Unit prices are frozen at placement time.
After placement only the payment fields and the status change: through
payment reconciliation, or through an explicit admin override.

Status values and transition legality live in ordering.order.state_machine.
"""

import json
from datetime import UTC, datetime

import structlog
from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import OrderPlaced, OrderStatusChanged, PaymentIntentRecorded
from ordering.order.state_machine import OrderStatus, Reconciliation, can_transition

logger = structlog.get_logger(__name__)


def _money(amount):
    return round(float(amount), 2)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Delivery address captured at checkout.

    Once recorded on an Order the address is immutable; it represents where
    the order ships regardless of later changes to the customer's profile.
    """

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    apartment = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLineItem:
    """A product and quantity, priced from the catalog snapshot at order time."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price_at_order_time = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier(required=True)
    items = HasMany(OrderLineItem)
    total_amount = Float(required=True, min_value=0.0)
    status = String(
        max_length=50,
        choices=OrderStatus,
        default=OrderStatus.PENDING_PAYMENT.value,
    )
    shipping_address = ValueObject(ShippingAddress)
    order_notes = String(max_length=1000)
    external_payment_id = String(max_length=100)
    payment_intent_id = String(max_length=100)
    payment_client_secret = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_line_totals(self):
        if self.items and abs(self.total_amount - sum(item.line_total for item in self.items)) > 0.005:
            raise ValidationError({"total_amount": ["Order total must equal the sum of its line totals"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, lines, shipping_address, order_notes=None):
        """Place a new order awaiting payment.

        Args:
            user_id: The subject id of the customer placing the order.
            lines: List of dicts with product_id, product_name, quantity and
                unit_price, where unit_price comes from a catalog snapshot.
            shipping_address: Dict with street, city, state, postal_code,
                country and optionally apartment.
            order_notes: Optional free text from the customer.
        """
        if not lines:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        items = []
        for line in lines:
            unit_price = _money(line["unit_price"])
            items.append(
                OrderLineItem(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    quantity=line["quantity"],
                    unit_price_at_order_time=unit_price,
                    line_total=_money(unit_price * line["quantity"]),
                )
            )
        total_amount = _money(sum(item.line_total for item in items))

        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            items=items,
            total_amount=total_amount,
            status=OrderStatus.PENDING_PAYMENT.value,
            shipping_address=ShippingAddress(**shipping_address),
            order_notes=order_notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "product_name": item.product_name,
                            "quantity": item.quantity,
                            "unit_price": item.unit_price_at_order_time,
                            "line_total": item.line_total,
                        }
                        for item in items
                    ]
                ),
                total_amount=total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def order_status(self):
        return OrderStatus(self.status)

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    def is_owned_by(self, user_id):
        return str(self.user_id) == str(user_id)

    # -------------------------------------------------------------------
    # Payment reconciliation
    # -------------------------------------------------------------------
    def _change_status(self, new_status, reason):
        previous = self.status
        self.status = new_status.value
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=new_status.value,
                reason=reason,
                changed_at=datetime.now(UTC),
            )
        )

    def record_payment_reconciliation(
        self,
        reconciliation: Reconciliation,
        payment_intent_id,
        intent_status,
        client_secret=None,
    ):
        """Apply a reconciliation outcome and the intent it was derived from."""
        now = datetime.now(UTC)

        if payment_intent_id and self.payment_intent_id != payment_intent_id:
            self.payment_intent_id = payment_intent_id
            self.raise_(
                PaymentIntentRecorded(
                    order_id=str(self.id),
                    payment_intent_id=payment_intent_id,
                    intent_status=intent_status,
                    recorded_at=now,
                )
            )
        if client_secret and self.payment_client_secret != client_secret:
            self.payment_client_secret = client_secret

        if reconciliation.status != self.order_status:
            self._change_status(reconciliation.status, reason=f"Payment intent {intent_status}")
        if reconciliation.record_external_payment:
            self.external_payment_id = payment_intent_id
        if reconciliation.clear_client_secret:
            self.payment_client_secret = None

        self.updated_at = now

    def mark_payment_failed(self, reason):
        """Record that the processor rejected the payment attempt outright."""
        if self.order_status != OrderStatus.PAYMENT_FAILED:
            self._change_status(OrderStatus.PAYMENT_FAILED, reason=reason)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Admin override
    # -------------------------------------------------------------------
    def override_status(self, new_status: OrderStatus):
        """Set the status without checking transition legality.

        Admins may move an order anywhere; moves the state machine would not
        allow are still applied but logged so they can be audited.
        """
        if not can_transition(self.order_status, new_status):
            logger.warning(
                "Admin status override outside the state machine",
                order_id=str(self.id),
                from_status=self.status,
                to_status=new_status.value,
            )
        self._change_status(new_status, reason="Admin status update")
        self.updated_at = datetime.now(UTC)
