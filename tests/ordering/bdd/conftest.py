"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.order.order import Order
from ordering.order.placement import CartItem, OrderPlacementService
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def outcome():
    """Container for the result or error of the When step."""
    return {"result": None, "exc": None}


@pytest.fixture()
def placement():
    return OrderPlacementService()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        'the catalog has product "{product_id}" named "{name}" priced {price:f} with stock {stock:d}'
    )
)
def _(catalog, product_id, name, price, stock):
    catalog.add_product(product_id, name, price, stock=stock)


@given(
    parsers.cfparse('the customer has placed an order for {quantity:d} of "{product_id}"'),
    target_fixture="order",
)
def _(placement, customer, shipping_address, quantity, product_id):
    return placement.create_order(customer, [CartItem(product_id=product_id, quantity=quantity)], shipping_address)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the catalog stock of "{product_id}" is {stock:d}'))
def _(catalog, product_id, stock):
    assert catalog.stock_of(product_id) == stock


@then(parsers.cfparse('the stored order status is "{status}"'))
def _(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status
