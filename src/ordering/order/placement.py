"""Order placement and order queries.

OrderPlacementService prices a cart against the catalog, persists the order
through the PlaceOrder command, and then decrements catalog stock. The local
commit happens first; stock decrements run afterwards, one product at a time.
A decrement failure leaves a valid PENDING_PAYMENT order behind and is raised
as OrderPartiallyFailed so it can be reconciled by hand. Nothing is rolled back.

The read side (history, lookup by id, admin listing) and the admin status
override live here too, all taking the caller's Identity explicitly.
"""

import json
import math
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.auth.identity import Identity
from ordering.catalog import get_catalog
from ordering.catalog.port import CatalogGateway, ProductSnapshot
from ordering.errors import (
    AccessDenied,
    InsufficientStock,
    InvalidPrice,
    OrderNotFound,
    OrderPartiallyFailed,
    StockDecrementFailed,
)
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order, ShippingAddress
from ordering.order.state_machine import OrderStatus
from ordering.order.status import UpdateOrderStatus

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class CartItem:
    """One requested line. ``name`` and ``unit_price`` are informational only."""

    product_id: str
    quantity: int
    name: str | None = None
    unit_price: float | None = None


@dataclass(frozen=True)
class Page:
    """One page of orders, numbered from 1."""

    content: list
    page_number: int
    page_size: int
    total_element_count: int

    @property
    def total_page_count(self) -> int:
        return math.ceil(self.total_element_count / self.page_size) if self.total_element_count else 0

    @property
    def is_first_page(self) -> bool:
        return self.page_number == 1

    @property
    def is_last_page(self) -> bool:
        return self.page_number >= self.total_page_count

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_page_count

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1


def _validate_cart(cart_items: list[CartItem]) -> None:
    if not cart_items:
        raise ValidationError({"items": ["Order must contain at least one item"]})

    errors: dict[str, list[str]] = {}
    for index, item in enumerate(cart_items):
        if not item.product_id or not str(item.product_id).strip():
            errors.setdefault(f"items[{index}].product_id", []).append("Product id must not be blank")
        if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity < 1:
            errors.setdefault(f"items[{index}].quantity", []).append("Quantity must be at least 1")
    if errors:
        raise ValidationError(errors)


class OrderPlacementService:
    def __init__(self, catalog: CatalogGateway | None = None) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogGateway:
        return self._catalog or get_catalog()

    # -------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------
    def create_order(
        self,
        identity: Identity,
        cart_items: list[CartItem],
        shipping_address: dict,
        order_notes: str | None = None,
    ) -> Order:
        _validate_cart(cart_items)
        # Fails fast on an incomplete address before any catalog traffic
        ShippingAddress(**shipping_address)

        logger.info("Placing order", user_id=identity.subject_id, line_count=len(cart_items))

        requested: dict[str, int] = {}
        for item in cart_items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

        snapshots: dict[str, ProductSnapshot] = {}
        for product_id, quantity in requested.items():
            snapshot = self.catalog.fetch_snapshot(product_id)
            if snapshot.available_stock < quantity:
                logger.warning(
                    "Insufficient stock",
                    product_id=product_id,
                    available=snapshot.available_stock,
                    requested=quantity,
                )
                raise InsufficientStock(product_id, snapshot.name, snapshot.available_stock, quantity)
            if snapshot.unit_price is None or snapshot.unit_price <= 0:
                logger.error("Invalid price from catalog", product_id=product_id, unit_price=snapshot.unit_price)
                raise InvalidPrice(product_id, snapshot.name)
            snapshots[product_id] = snapshot

        lines = [
            {
                "product_id": item.product_id,
                "product_name": snapshots[item.product_id].name,
                "quantity": item.quantity,
                "unit_price": snapshots[item.product_id].unit_price,
            }
            for item in cart_items
        ]

        order_id = current_domain.process(
            PlaceOrder(
                user_id=identity.subject_id,
                items=json.dumps(lines),
                shipping_address=json.dumps(shipping_address),
                order_notes=order_notes,
            ),
            asynchronous=False,
        )
        order = current_domain.repository_for(Order).get(order_id)
        logger.info(
            "Order persisted",
            order_id=order_id,
            item_count=len(order.items),
            total_amount=order.total_amount,
        )

        self._decrement_stock(order, [(item.product_id, item.quantity) for item in cart_items])
        return order

    def _decrement_stock(self, order: Order, lines: list[tuple[str, int]]) -> None:
        decremented: list[str] = []
        for product_id, quantity in lines:
            try:
                self.catalog.decrement_stock(product_id, quantity)
            except StockDecrementFailed as exc:
                logger.critical(
                    "Order created but stock decrement failed; manual reconciliation required",
                    order_id=str(order.id),
                    product_id=product_id,
                    decremented=decremented,
                    error=exc.message,
                )
                raise OrderPartiallyFailed(str(order.id), product_id, decremented) from exc
            decremented.append(product_id)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order_history(self, identity: Identity) -> list[Order]:
        logger.info("Fetching order history", user_id=identity.subject_id)
        return current_domain.repository_for(Order).find_for_user(identity.subject_id)

    def _load(self, order_id: str) -> Order:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(order_id) from exc

    def get_order_by_id(self, identity: Identity, order_id: str) -> Order:
        order = self._load(order_id)
        if identity.is_admin or order.is_owned_by(identity.subject_id):
            return order

        logger.warning("Order lookup by non-owner", order_id=order_id, user_id=identity.subject_id)
        raise OrderNotFound(order_id, "Order not found or you do not have permission to view it.")

    # -------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------
    def update_order_status(self, identity: Identity, order_id: str, new_status) -> Order:
        if not identity.is_admin:
            raise AccessDenied("Only administrators may change an order's status.")

        target = new_status if isinstance(new_status, OrderStatus) else OrderStatus(new_status)
        order = self._load(order_id)
        if order.order_status == target:
            logger.info("Order already in requested status; nothing to do", order_id=order_id, status=target.value)
            return order

        logger.info(
            "Updating order status",
            order_id=order_id,
            from_status=order.status,
            to_status=target.value,
            admin_id=identity.subject_id,
        )
        current_domain.process(UpdateOrderStatus(order_id=order_id, new_status=target.value), asynchronous=False)
        return self._load(order_id)

    def list_all_orders(self, identity: Identity, page: int = 1, size: int = DEFAULT_PAGE_SIZE) -> Page:
        if not identity.is_admin:
            raise AccessDenied("Only administrators may list all orders.")
        if page < 1:
            raise ValidationError({"page": ["Page numbers start at 1"]})
        if size < 1:
            raise ValidationError({"size": ["Page size must be at least 1"]})
        size = min(size, MAX_PAGE_SIZE)

        results = current_domain.repository_for(Order).page(page - 1, size)
        return Page(
            content=list(results.items),
            page_number=page,
            page_size=size,
            total_element_count=results.total,
        )
