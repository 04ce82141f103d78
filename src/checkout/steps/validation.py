"""Pre-submit handlers for the checkout steps that collect data.

A step only advances when its data validates; a failed submission leaves
the machine where it was and reports what is missing.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from checkout.cart.configuration import missing_fields, validation_message
from checkout.cart.store import CartStore
from checkout.customer.details import validate_customer_details
from checkout.steps.machine import CheckoutStep, CheckoutStepMachine, StepMove

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StepValidation:
    ok: bool
    errors: dict[str, list[str]] = field(default_factory=dict)
    move: StepMove = StepMove.STAYED

    @property
    def messages(self) -> list[str]:
        return [message for messages in self.errors.values() for message in messages]


def validate_configuration_step(store: CartStore) -> StepValidation:
    """Check every cart item is fully configured; errors are keyed by item id."""
    errors = {}
    for item in store.items:
        missing = missing_fields(item)
        if missing:
            errors[item["id"]] = [validation_message(missing)]
    return StepValidation(ok=not errors, errors=errors)


async def submit_configuration_step(
    machine: CheckoutStepMachine,
    store: CartStore,
    configurations: Mapping | None = None,
) -> StepValidation:
    """Merge pending configurations, validate them, and advance when complete."""
    if machine.active_step != CheckoutStep.SERVICE_CONFIGURATION:
        return StepValidation(ok=False, errors={"step": ["Not on the service configuration step"]})

    if configurations:
        merged = await store.merge_configurations(configurations)
        if not merged.success:
            return StepValidation(ok=False, errors={"configuration": [merged.error]})

    validation = validate_configuration_step(store)
    if not validation.ok:
        logger.info("Service configuration incomplete", items=sorted(validation.errors))
        return validation
    return StepValidation(ok=True, move=machine.next())


async def submit_customer_details_step(
    machine: CheckoutStepMachine,
    store: CartStore,
    details: Mapping,
    save_details: bool = False,
) -> StepValidation:
    """Validate and store customer details; persist them only when opted in."""
    if machine.active_step != CheckoutStep.CUSTOMER_DETAILS:
        return StepValidation(ok=False, errors={"step": ["Not on the customer details step"]})

    errors = validate_customer_details(details)
    if errors:
        return StepValidation(ok=False, errors=errors)

    updated = await store.update_customer_info(details)
    if not updated.success:
        return StepValidation(ok=False, errors={"customer": [updated.error]})

    if save_details:
        saved = await store.save_customer_info()
        if not saved.success:
            # Saving is a convenience; the checkout goes on without it
            logger.warning("Could not save customer details", error=saved.error)

    return StepValidation(ok=True, move=machine.next())
