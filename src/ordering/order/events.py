"""Domain events for the Order aggregate.

Events are immutable facts raised alongside each state change and committed
with the same unit of work as the aggregate. Downstream consumers
(projections, notifications, reconciliation jobs) subscribe to them.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was placed from a priced cart and awaits payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line item dicts
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status, by reconciliation or admin override."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String(max_length=500)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentIntentRecorded:
    """A payment intent was attached to the order (created or re-read)."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    intent_status = String(required=True)
    recorded_at = DateTime(required=True)
