"""Shared BDD fixtures and step definitions for the checkout."""

import asyncio

import pytest
from checkout.steps.machine import CheckoutStepMachine
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Event loop plumbing
# ---------------------------------------------------------------------------
@pytest.fixture()
def loop():
    event_loop = asyncio.new_event_loop()
    yield event_loop
    event_loop.close()


@pytest.fixture()
def run(loop):
    """Run a store or payment coroutine to completion from a sync step."""
    return loop.run_until_complete


@pytest.fixture()
def outcome():
    """Container for the last operation result."""
    return {"result": None}


@pytest.fixture()
def machine():
    return CheckoutStepMachine()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an empty cart")
def empty_cart(store):
    assert store.is_empty


@given(parsers.cfparse('the cart contains a {service_type} service "{item_id}" priced {price:f}'))
def cart_contains_service(store, run, service_type, item_id, price):
    result = run(store.add_item({"id": item_id, "title": item_id, "service_type": service_type, "price": price}))
    assert result.success


@given("the customer has entered valid details")
def customer_entered_details(store, run, customer_details):
    assert run(store.update_customer_info(customer_details)).success


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the operation succeeds")
def operation_succeeds(outcome):
    assert outcome["result"].success, outcome["result"].error


@then(parsers.cfparse('the operation fails with a {kind} error'))
def operation_fails(outcome, kind):
    result = outcome["result"]
    assert not result.success
    assert result.error_kind.value == kind


@then(parsers.cfparse("the cart total is {total:f}"))
def cart_total_is(store, total):
    assert store.total_amount == pytest.approx(total)


@then(parsers.cfparse("the checkout is on step {step:d}"))
def checkout_on_step(machine, step):
    assert machine.active_step == step
