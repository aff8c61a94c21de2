"""BDD tests for order placement."""

from ordering.errors import InsufficientStock, OrderPartiallyFailed
from ordering.order.order import Order
from ordering.order.placement import CartItem
from ordering.order.state_machine import OrderStatus
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/order_placement.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalog rejects stock decrements for "{product_id}"'))
def _(catalog, product_id):
    catalog.fail_decrement(product_id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer orders {first_qty:d} of "{first_id}" and {second_qty:d} of "{second_id}"'))
def _(placement, customer, shipping_address, outcome, first_qty, first_id, second_qty, second_id):
    cart = [
        CartItem(product_id=first_id, quantity=first_qty),
        CartItem(product_id=second_id, quantity=second_qty),
    ]
    try:
        outcome["result"] = placement.create_order(customer, cart, shipping_address)
    except (InsufficientStock, OrderPartiallyFailed) as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is pending payment")
def _(outcome):
    assert outcome["result"].status == OrderStatus.PENDING_PAYMENT.value


@then(parsers.cfparse("the order total is {amount:f}"))
def _(outcome, amount):
    assert outcome["result"].total_amount == amount


@then(parsers.cfparse("the order has {count:d} line items"))
def _(outcome, count):
    assert len(outcome["result"].items) == count


@then(parsers.cfparse('the order is rejected for insufficient stock of "{product_id}"'))
def _(outcome, product_id):
    assert isinstance(outcome["exc"], InsufficientStock)
    assert outcome["exc"].context["product_id"] == product_id


@then("no order was stored")
def _():
    assert current_domain.repository_for(Order)._dao.query.all().items == []


@then("the order is reported as partially failed")
def _(outcome):
    assert isinstance(outcome["exc"], OrderPartiallyFailed)


@then("the stored order is pending payment")
def _(outcome):
    stored = current_domain.repository_for(Order).get(outcome["exc"].order_id)
    assert stored.status == OrderStatus.PENDING_PAYMENT.value
