"""BDD tests for service configuration."""

from checkout.cart.configuration import completion_percentage, missing_fields
from checkout.steps.machine import CheckoutStep
from checkout.steps.validation import submit_configuration_step
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/service_configuration.feature")


@given("the checkout is at the service configuration step")
def at_configuration_step(machine):
    machine.jump_to(CheckoutStep.SERVICE_CONFIGURATION)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer enters "{field_name}" as "{value}" for "{item_id}"'))
def enter_detail(store, run, outcome, field_name, value, item_id):
    outcome["result"] = run(store.merge_configurations({item_id: {"test_details": {field_name: value}}}))


@when("the customer submits the configuration step", target_fixture="step_result")
def submit_step(machine, store, run):
    return run(submit_configuration_step(machine, store))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('item "{item_id}" is {percentage:d} percent configured'))
def item_completion(store, item_id, percentage):
    assert completion_percentage(store.get_item(item_id)) == percentage


@then(parsers.cfparse('item "{item_id}" is missing "{labels}"'))
def item_missing(store, item_id, labels):
    assert missing_fields(store.get_item(item_id)) == labels.split(", ")


@then("the step is rejected")
def step_rejected(step_result):
    assert not step_result.ok


@then("the step is accepted")
def step_accepted(step_result):
    assert step_result.ok
