"""BDD tests for payment reconciliation."""

from ordering.order.order import Order
from ordering.payment.processing import PaymentProcessingService
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/payment_reconciliation.feature")


def _stored(order):
    return current_domain.repository_for(Order).get(order.id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the processor will report the intent as "{status:w}" with error "{error}"'))
def _(payment_gateway, status, error):
    payment_gateway.configure(next_status=status, last_error=error)


@given(parsers.cfparse('the processor will report the intent as "{status:w}"'))
def _(payment_gateway, status):
    payment_gateway.configure(next_status=status)


@given(parsers.cfparse('the customer has paid with "{token}"'), target_fixture="payment")
def _(customer, order, token):
    return PaymentProcessingService().process_payment(customer, str(order.id), token)


@given("the customer completed authentication")
def _(payment_gateway, payment):
    payment_gateway.set_intent_status(payment.payment_intent_id, "succeeded")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer pays with "{token}"'), target_fixture="payment")
def _(customer, order, token):
    return PaymentProcessingService().process_payment(customer, str(order.id), token)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the payment status is "{status}"'))
def _(payment, status):
    assert payment.status == status


@then(parsers.cfparse('the payment message mentions "{text}"'))
def _(payment, text):
    assert text in payment.message


@then("the payment result carries a client secret")
def _(payment):
    assert payment.client_secret


@then("the stored order has an external payment id")
def _(order):
    assert _stored(order).external_payment_id


@then("the stored order has no client secret")
def _(order):
    assert _stored(order).payment_client_secret is None


@then("only one intent was created")
def _(payment_gateway):
    created = [call for call in payment_gateway.calls if call["method"] == "create_and_confirm_intent"]
    assert len(created) == 1
