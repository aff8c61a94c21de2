"""Order creation — command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of priced line dicts
    shipping_address = Text(required=True)  # JSON: address dict
    order_notes = String(max_length=1000)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )

        order = Order.place(
            user_id=command.user_id,
            lines=lines,
            shipping_address=shipping_address,
            order_notes=command.order_notes,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
