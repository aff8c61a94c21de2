"""Application tests for OrderPlacementService — pricing, stock and access rules."""

import pytest
from ordering.errors import (
    AccessDenied,
    InsufficientStock,
    InvalidPrice,
    OrderNotFound,
    OrderPartiallyFailed,
    ProductLookupFailed,
    ProductNotFound,
)
from ordering.order.order import Order
from ordering.order.placement import CartItem, OrderPlacementService
from ordering.order.state_machine import OrderStatus
from protean import current_domain
from protean.exceptions import ValidationError


@pytest.fixture()
def stocked_catalog(catalog):
    catalog.add_product("prod-001", "Widget", 5.0, stock=10)
    catalog.add_product("prod-002", "Gadget", 10.0, stock=3)
    return catalog


@pytest.fixture()
def service(stocked_catalog):
    return OrderPlacementService(catalog=stocked_catalog)


def _all_orders():
    return current_domain.repository_for(Order)._dao.query.all().items


class TestCreateOrder:
    def test_total_comes_from_catalog_prices(self, service, customer, shipping_address):
        order = service.create_order(
            customer,
            [
                CartItem(product_id="prod-001", quantity=2, unit_price=0.01),
                CartItem(product_id="prod-002", quantity=1, unit_price=0.01),
            ],
            shipping_address,
        )

        assert order.total_amount == 20.0
        assert order.total_amount == sum(item.line_total for item in order.items)
        assert sorted(item.unit_price_at_order_time for item in order.items) == [5.0, 10.0]
        assert order.status == OrderStatus.PENDING_PAYMENT.value
        assert str(order.user_id) == customer.subject_id

    def test_order_is_persisted_with_items(self, service, customer, shipping_address):
        order = service.create_order(customer, [CartItem(product_id="prod-001", quantity=2)], shipping_address)

        stored = current_domain.repository_for(Order).get(order.id)
        assert len(stored.items) == 1
        assert stored.items[0].product_name == "Widget"

    def test_notes_are_kept(self, service, customer, shipping_address):
        order = service.create_order(
            customer, [CartItem(product_id="prod-001", quantity=1)], shipping_address, order_notes="Gift wrap"
        )

        assert order.order_notes == "Gift wrap"

    def test_stock_is_decremented_after_commit(self, service, stocked_catalog, customer, shipping_address):
        service.create_order(
            customer,
            [CartItem(product_id="prod-001", quantity=2), CartItem(product_id="prod-002", quantity=3)],
            shipping_address,
        )

        assert stocked_catalog.stock_of("prod-001") == 8
        assert stocked_catalog.stock_of("prod-002") == 0

    def test_insufficient_stock_persists_nothing(self, service, stocked_catalog, customer, shipping_address):
        with pytest.raises(InsufficientStock) as exc:
            service.create_order(
                customer,
                [CartItem(product_id="prod-001", quantity=1), CartItem(product_id="prod-002", quantity=5)],
                shipping_address,
            )

        assert exc.value.context["available"] == 3
        assert exc.value.context["requested"] == 5
        assert _all_orders() == []
        assert stocked_catalog.stock_of("prod-001") == 10

    def test_duplicate_lines_are_checked_against_combined_quantity(self, service, customer, shipping_address):
        with pytest.raises(InsufficientStock):
            service.create_order(
                customer,
                [CartItem(product_id="prod-002", quantity=2), CartItem(product_id="prod-002", quantity=2)],
                shipping_address,
            )

    def test_unknown_product(self, service, customer, shipping_address):
        with pytest.raises(ProductNotFound):
            service.create_order(customer, [CartItem(product_id="missing", quantity=1)], shipping_address)

        assert _all_orders() == []

    def test_catalog_unavailable(self, service, stocked_catalog, customer, shipping_address):
        stocked_catalog.fail_lookup("prod-001")

        with pytest.raises(ProductLookupFailed):
            service.create_order(customer, [CartItem(product_id="prod-001", quantity=1)], shipping_address)

    def test_non_positive_price_is_rejected(self, service, stocked_catalog, customer, shipping_address):
        stocked_catalog.add_product("prod-free", "Freebie", 0.0, stock=5)

        with pytest.raises(InvalidPrice):
            service.create_order(customer, [CartItem(product_id="prod-free", quantity=1)], shipping_address)

    @pytest.mark.parametrize(
        "items",
        [
            [],
            [CartItem(product_id="prod-001", quantity=0)],
            [CartItem(product_id="  ", quantity=1)],
        ],
    )
    def test_invalid_cart(self, service, customer, shipping_address, items):
        with pytest.raises(ValidationError):
            service.create_order(customer, items, shipping_address)

    def test_invalid_address_fails_before_catalog_lookup(self, service, stocked_catalog, customer):
        with pytest.raises(ValidationError):
            service.create_order(customer, [CartItem(product_id="prod-001", quantity=1)], {"street": "1 St"})

        assert stocked_catalog.calls == []


class TestPartialFailure:
    def test_decrement_failure_keeps_order_and_reports_it(self, service, stocked_catalog, customer, shipping_address):
        stocked_catalog.fail_decrement("prod-002")

        with pytest.raises(OrderPartiallyFailed) as exc:
            service.create_order(
                customer,
                [CartItem(product_id="prod-001", quantity=1), CartItem(product_id="prod-002", quantity=1)],
                shipping_address,
            )

        orders = _all_orders()
        assert len(orders) == 1
        assert exc.value.order_id == str(orders[0].id)
        assert exc.value.product_id == "prod-002"
        assert exc.value.context["decremented"] == ["prod-001"]
        assert orders[0].status == OrderStatus.PENDING_PAYMENT.value
        assert stocked_catalog.stock_of("prod-001") == 9

    def test_decrement_stops_at_first_failure(self, service, stocked_catalog, customer, shipping_address):
        stocked_catalog.fail_decrement("prod-001")

        with pytest.raises(OrderPartiallyFailed):
            service.create_order(
                customer,
                [CartItem(product_id="prod-001", quantity=1), CartItem(product_id="prod-002", quantity=1)],
                shipping_address,
            )

        decrements = [call for call in stocked_catalog.calls if call["method"] == "decrement_stock"]
        assert [call["product_id"] for call in decrements] == ["prod-001"]
        assert stocked_catalog.stock_of("prod-002") == 3


class TestOrderQueries:
    def _place(self, service, identity, shipping_address, quantity=1):
        return service.create_order(identity, [CartItem(product_id="prod-001", quantity=quantity)], shipping_address)

    def test_history_is_own_orders_newest_first(self, service, customer, other_customer, shipping_address):
        first = self._place(service, customer, shipping_address)
        self._place(service, other_customer, shipping_address)
        second = self._place(service, customer, shipping_address, quantity=2)

        history = service.get_order_history(customer)

        assert [str(order.id) for order in history] == [str(second.id), str(first.id)]

    def test_owner_can_read_order(self, service, customer, shipping_address):
        order = self._place(service, customer, shipping_address)

        assert str(service.get_order_by_id(customer, str(order.id)).id) == str(order.id)

    def test_non_owner_gets_not_found(self, service, customer, other_customer, shipping_address):
        order = self._place(service, customer, shipping_address)

        with pytest.raises(OrderNotFound):
            service.get_order_by_id(other_customer, str(order.id))

    def test_admin_can_read_any_order(self, service, customer, admin, shipping_address):
        order = self._place(service, customer, shipping_address)

        assert str(service.get_order_by_id(admin, str(order.id)).id) == str(order.id)

    def test_unknown_order(self, service, customer):
        with pytest.raises(OrderNotFound):
            service.get_order_by_id(customer, "does-not-exist")


class TestAdminOperations:
    def test_update_status(self, service, customer, admin, shipping_address):
        order = service.create_order(customer, [CartItem(product_id="prod-001", quantity=1)], shipping_address)

        updated = service.update_order_status(admin, str(order.id), OrderStatus.CONFIRMED)

        assert updated.status == OrderStatus.CONFIRMED.value
        assert current_domain.repository_for(Order).get(order.id).status == OrderStatus.CONFIRMED.value

    def test_update_to_current_status_writes_nothing(self, service, customer, admin, shipping_address):
        order = service.create_order(customer, [CartItem(product_id="prod-001", quantity=1)], shipping_address)
        before = current_domain.repository_for(Order).get(order.id).updated_at

        unchanged = service.update_order_status(admin, str(order.id), "PENDING_PAYMENT")

        assert unchanged.status == OrderStatus.PENDING_PAYMENT.value
        assert current_domain.repository_for(Order).get(order.id).updated_at == before

    def test_override_skips_transition_rules(self, service, customer, admin, shipping_address):
        order = service.create_order(customer, [CartItem(product_id="prod-001", quantity=1)], shipping_address)

        updated = service.update_order_status(admin, str(order.id), OrderStatus.SHIPPED)

        assert updated.status == OrderStatus.SHIPPED.value

    def test_update_requires_admin(self, service, customer, shipping_address):
        order = service.create_order(customer, [CartItem(product_id="prod-001", quantity=1)], shipping_address)

        with pytest.raises(AccessDenied):
            service.update_order_status(customer, str(order.id), OrderStatus.CONFIRMED)

    def test_update_unknown_order(self, service, admin):
        with pytest.raises(OrderNotFound):
            service.update_order_status(admin, "does-not-exist", OrderStatus.CONFIRMED)

    def test_list_all_orders_pages_newest_first(self, service, stocked_catalog, customer, admin, shipping_address):
        stocked_catalog.add_product("prod-bulk", "Bulk", 1.0, stock=100)
        placed = [
            service.create_order(customer, [CartItem(product_id="prod-bulk", quantity=1)], shipping_address)
            for _ in range(5)
        ]

        first = service.list_all_orders(admin, page=1, size=2)
        last = service.list_all_orders(admin, page=3, size=2)

        assert first.total_element_count == 5
        assert first.total_page_count == 3
        assert [str(order.id) for order in first.content] == [str(placed[4].id), str(placed[3].id)]
        assert first.is_first_page and first.has_next_page and not first.has_previous_page
        assert [str(order.id) for order in last.content] == [str(placed[0].id)]
        assert last.is_last_page and not last.has_next_page and last.has_previous_page

    def test_list_all_orders_caps_page_size(self, service, admin):
        page = service.list_all_orders(admin, page=1, size=500)

        assert page.page_size == 100
        assert page.content == []
        assert page.total_page_count == 0

    def test_list_all_orders_rejects_page_zero(self, service, admin):
        with pytest.raises(ValidationError):
            service.list_all_orders(admin, page=0)

    def test_list_all_orders_requires_admin(self, service, customer):
        with pytest.raises(AccessDenied):
            service.list_all_orders(customer)
