"""Checkout step machine.

The checkout is a short wizard: review the cart, configure each service,
enter customer details, review the order, pay. The machine only tracks
where the customer is; it never touches cart data.
"""

import re
from collections.abc import Callable
from enum import Enum, IntEnum

import structlog

logger = structlog.get_logger(__name__)


class CheckoutStep(IntEnum):
    CART_REVIEW = 0
    SERVICE_CONFIGURATION = 1
    CUSTOMER_DETAILS = 2
    ORDER_SUMMARY = 3
    PAYMENT = 4
    COMPLETE = 5


class StepMove(Enum):
    MOVED = "moved"
    STAYED = "stayed"
    LEFT_CHECKOUT = "left_checkout"
    COMPLETED = "completed"


STEP_COUNT = 5

StepListener = Callable[[int, int], None]


def step_from_query(value) -> int | None:
    """Parse a deep-link step (``"2"``, ``"customer-details"``); None when invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        step = value
    else:
        text = str(value).strip()
        if re.fullmatch(r"\d+", text):
            step = int(text)
        else:
            name = re.sub(r"[\s\-]+", "_", text).upper()
            if name not in CheckoutStep.__members__:
                return None
            step = CheckoutStep[name].value
    if 0 <= step < STEP_COUNT:
        return step
    return None


class CheckoutStepMachine:
    def __init__(
        self,
        step_count: int = STEP_COUNT,
        initial_step: int = CheckoutStep.CART_REVIEW,
        on_leave: Callable[[], None] | None = None,
    ) -> None:
        self.step_count = step_count
        self.on_leave = on_leave
        self._active_step = min(max(int(initial_step), 0), step_count - 1)
        self.order_id: str | None = None
        self._listeners: list[StepListener] = []

    @property
    def active_step(self) -> int:
        return self._active_step

    @property
    def last_step(self) -> int:
        return self.step_count - 1

    @property
    def is_complete(self) -> bool:
        return self._active_step >= self.step_count

    def subscribe(self, listener: StepListener) -> Callable[[], None]:
        """Register ``listener(previous_step, new_step)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _move_to(self, step: int) -> None:
        previous = self._active_step
        if step < self.step_count:
            self.order_id = None
        self._active_step = step
        if previous == step:
            return
        logger.debug("Checkout step changed", previous_step=previous, step=step)
        for listener in list(self._listeners):
            try:
                listener(previous, step)
            except Exception:
                logger.exception(
                    "Checkout step listener failed", listener=getattr(listener, "__name__", repr(listener))
                )

    def next(self) -> StepMove:
        """Advance one step.

        Leaving the payment step needs an order id; use ``complete``.
        """
        if self.is_complete:
            return StepMove.STAYED
        if self._active_step == self.last_step:
            if not self.order_id:
                logger.warning("Cannot complete checkout without an order id")
                return StepMove.STAYED
            self._move_to(self.step_count)
            return StepMove.COMPLETED
        self._move_to(self._active_step + 1)
        return StepMove.MOVED

    def complete(self, order_id) -> StepMove:
        """Record the created order and leave the payment step."""
        if not order_id:
            logger.warning("Cannot complete checkout without an order id")
            return StepMove.STAYED
        if self._active_step != self.last_step:
            logger.warning("Checkout can only complete from the payment step", step=self._active_step)
            return StepMove.STAYED
        self.order_id = str(order_id)
        return self.next()

    def back(self) -> StepMove:
        """Go back one step; at the first step this leaves the checkout."""
        if self._active_step == 0:
            if self.on_leave is not None:
                self.on_leave()
            return StepMove.LEFT_CHECKOUT
        target = min(self._active_step, self.step_count) - 1
        self._move_to(target)
        return StepMove.MOVED

    def jump_to(self, step) -> StepMove:
        """Go straight to ``step``; out-of-range steps are ignored."""
        try:
            target = int(step)
        except (TypeError, ValueError):
            target = -1
        if not 0 <= target < self.step_count:
            logger.warning("Ignoring jump to invalid checkout step", step=step)
            return StepMove.STAYED
        self._move_to(target)
        return StepMove.MOVED

    def reset(self) -> None:
        self._move_to(CheckoutStep.CART_REVIEW)
