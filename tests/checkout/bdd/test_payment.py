"""BDD tests for the payment lifecycle."""

from checkout.payment.lifecycle import NO_INTENT
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/payment.feature")


@given("the gateway declines cards")
def gateway_declines(gateway):
    gateway.configure(should_succeed=False)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the gateway accepts cards")
def gateway_accepts(gateway):
    gateway.configure(should_succeed=True)


@when("a payment is started")
def start_payment(lifecycle, run, outcome):
    outcome["result"] = run(lifecycle.create_intent())


@when(parsers.cfparse('the customer pays with "{payment_method}"'))
def pay_with(lifecycle, run, outcome, payment_method):
    outcome["result"] = run(lifecycle.confirm_payment(payment_method))


@when("the order is created")
def create_order(store, lifecycle, run, outcome):
    outcome["result"] = run(store.create_order())
    if outcome["result"].success:
        lifecycle.attach_order(outcome["result"]["order"]["id"])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("no payment intent exists")
def no_intent(lifecycle):
    assert lifecycle.status == NO_INTENT


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status(lifecycle, store, status):
    assert lifecycle.status == status
    assert store.payment_info["status"] == status


@then(parsers.cfparse("{amount:d} pence were requested from the gateway"))
def pence_requested(gateway, amount):
    assert [call["amount_minor"] for call in gateway.calls_to("create_intent")] == [amount]


@then("only one payment intent was created")
def one_intent(gateway):
    assert len(gateway.calls_to("create_intent")) == 1


@then("the order is marked as paid")
def order_paid(outcome):
    order = outcome["result"]["order"]
    assert order["status"] == "paid"
    assert order["payment_status"] == 2


@then("the cart is empty")
def cart_empty(store):
    assert store.is_empty
