"""Payment lifecycle manager.

Drives one ``PaymentIntent`` from creation through confirmation, and on to
cancellation or refund, against the configured payment gateway. Every state
change is written back into the cart store's payment slice, and every
operation returns an ``OperationResult``.

Each gateway call runs under the configured deadline; a call that misses
it counts as a failure of kind ``timeout``.
"""

import asyncio
from collections.abc import Awaitable

import structlog

from checkout.cart.store import CartStore
from checkout.config import CheckoutSettings
from checkout.errors import (
    ERROR_MESSAGES,
    ErrorKind,
    OperationResult,
    categorize_error,
    describe_error,
    user_message,
)
from checkout.money.amounts import MAX_CHARGE_MINOR, MIN_CHARGE_MINOR, Amount, format_amount, is_chargeable
from checkout.payment.gateway import get_gateway
from checkout.payment.gateway.port import GatewayStatus, IntentState, PaymentGateway
from checkout.payment.intent import IntentStatus, PaymentIntent

logger = structlog.get_logger(__name__)

NO_INTENT = "none"


class PaymentLifecycleManager:
    def __init__(
        self,
        store: CartStore,
        gateway: PaymentGateway | None = None,
        settings: CheckoutSettings | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway or get_gateway()
        self.settings = settings or store.settings
        self.intent: PaymentIntent | None = None
        # The intent retired when its cart draft was cleared or turned into an order
        self.previous_intent: PaymentIntent | None = None
        self.last_error: OperationResult | None = None
        # Bumped whenever a finished intent is replaced, so its idempotency key is never reused
        self._generation = 0
        self._draft_id: str | None = None
        self._lock = asyncio.Lock()
        store.subscribe(self._on_cart_change)

    # -------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------
    @property
    def status(self) -> str:
        return self.intent.status if self.intent is not None else NO_INTENT

    @property
    def client_secret(self) -> str | None:
        return self.intent.client_secret if self.intent is not None else None

    def _intent_payload(self, **extra) -> dict:
        intent = self.intent
        return {
            "intent_id": intent.intent_id,
            "client_secret": intent.client_secret,
            "amount_minor": intent.amount_minor,
            "currency": intent.currency,
            "status": intent.status,
            **extra,
        }

    # -------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------
    async def _call(self, awaitable: Awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.settings.gateway_timeout_seconds)

    def _publish(self) -> None:
        intent = self.intent
        if intent is None:
            self.store.record_payment_state(status=NO_INTENT)
            return
        self.store.record_payment_state(
            intent_id=intent.intent_id,
            status=intent.status,
            amount_minor=intent.amount_minor,
            currency=intent.currency,
            attempt_count=intent.attempt_count,
            order_id=intent.order_id,
            error=intent.failure_message,
            error_kind=intent.failure_kind,
        )

    def _failed(self, error: str, kind: ErrorKind, **payload) -> OperationResult:
        result = OperationResult.failed(error, kind, **payload)
        self.last_error = result
        logger.warning("Payment operation failed", error=error, error_kind=kind.value, status=self.status)
        return result

    def _on_cart_change(self, state: dict) -> None:
        if self.intent is not None and state.get("draft_id") != self._draft_id:
            self._retire()

    def _retire(self) -> None:
        """Drop the intent of a draft that no longer exists; the store has already reset its payment slice."""
        logger.info(
            "Payment intent retired with its cart draft", intent_id=self.intent.intent_id, status=self.intent.status
        )
        self.previous_intent = self.intent
        self.intent = None
        self.last_error = None
        self._generation += 1

    def _tag_amount(self, amount) -> Amount:
        if amount is None:
            return Amount.major(self.store.total_amount, self.settings.currency)
        if isinstance(amount, Amount):
            return amount
        return Amount.major(amount, self.settings.currency)

    def _precondition_errors(self, amount: Amount) -> list[str]:
        errors = []
        if not self.store.customer.get("email"):
            errors.append("Customer email is required before payment")
        if self.store.is_empty:
            errors.append("Cart is empty")
        if not amount.is_positive:
            errors.append("Payment amount must be greater than zero")
        elif not is_chargeable(amount.minor_units):
            errors.append(
                f"Payment amount must be between {format_amount(MIN_CHARGE_MINOR / 100, amount.currency)} "
                f"and {format_amount(MAX_CHARGE_MINOR / 100, amount.currency)}"
            )
        return errors

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    async def create_intent(self, amount=None) -> OperationResult:
        """Create (or reuse) the payment intent for ``amount``.

        ``amount`` is in major units unless it is a tagged ``Amount``; it
        defaults to the cart total. An unfinished intent for the same
        amount is returned as-is instead of creating another, as is an intent
        that is still processing whatever the amount.
        """
        async with self._lock:
            tagged = self._tag_amount(amount)
            errors = self._precondition_errors(tagged)
            if errors:
                return self._failed("; ".join(errors), ErrorKind.VALIDATION)

            if self.intent is not None and self._draft_id != self.store.draft_id:
                self._retire()

            amount_minor = tagged.minor_units
            if self.intent is not None and not self.intent.is_terminal:
                processing = self.intent.status == IntentStatus.PROCESSING.value
                if processing or self.intent.amount_minor == amount_minor:
                    logger.debug("Reusing payment intent", intent_id=self.intent.intent_id)
                    return OperationResult.ok(**self._intent_payload(reused=True))
                return self._failed(
                    "A payment for a different amount is already in progress",
                    ErrorKind.VALIDATION,
                    intent_id=self.intent.intent_id,
                )

            if self.intent is not None:
                self._generation += 1
            idempotency_key = f"checkout-{self.store.draft_id}-{amount_minor}"
            if self._generation:
                idempotency_key = f"{idempotency_key}-{self._generation}"
            customer = self.store.customer
            try:
                handle = await self._call(
                    self.gateway.create_intent(
                        amount_minor=amount_minor,
                        currency=tagged.currency,
                        customer_ref=customer.get("email"),
                        metadata={
                            "draft_id": self.store.draft_id,
                            "customer_email": customer.get("email"),
                            "item_count": self.store.item_count,
                        },
                        idempotency_key=idempotency_key,
                    )
                )
            except Exception as exc:
                return self._failed(user_message(exc), categorize_error(exc))

            self.intent = PaymentIntent.create(
                intent_id=handle.intent_id,
                client_secret=handle.client_secret,
                amount_minor=handle.amount_minor,
                currency=tagged.currency,
                idempotency_key=idempotency_key,
            )
            self._draft_id = self.store.draft_id
            self._publish()
            logger.info("Payment intent created", intent_id=handle.intent_id, amount_minor=amount_minor)
            return OperationResult.ok(**self._intent_payload(reused=False))

    # -------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------
    async def confirm_payment(self, payment_method_ref: str, save_card: bool = False) -> OperationResult:
        """Confirm the current intent with a tokenized payment method.

        Retries after a failure confirm the same intent with the same
        client secret.
        """
        async with self._lock:
            if self.intent is None:
                return self._failed("No payment has been started", ErrorKind.VALIDATION)
            if not payment_method_ref:
                return self._failed("A payment method is required", ErrorKind.VALIDATION)
            if self.intent.status == IntentStatus.SUCCEEDED.value:
                return OperationResult.ok(**self._intent_payload())
            if not self.intent.can_transition_to(IntentStatus.PROCESSING):
                return self._failed(f"Payment is {self.intent.status} and cannot be confirmed", ErrorKind.VALIDATION)

            self.intent.start_confirmation(payment_method_ref, save_card=save_card)
            self._publish()

            try:
                state = await self._call(
                    self.gateway.confirm_intent(self.intent.client_secret, payment_method_ref, save_card=save_card)
                )
            except Exception as exc:
                kind = categorize_error(exc)
                message = user_message(exc)
                self.intent.mark_failed(kind.value, message)
                self._publish()
                return self._failed(message, kind, **self._intent_payload(code=getattr(exc, "code", None)))

            return self._apply(state)

    def _apply(self, state: IntentState) -> OperationResult:
        """Move the intent to match what the gateway reports."""
        intent = self.intent
        gateway_status = state.gateway_status

        if gateway_status == GatewayStatus.SUCCEEDED:
            if intent.can_transition_to(IntentStatus.SUCCEEDED):
                intent.mark_succeeded()
        elif gateway_status == GatewayStatus.CANCELED:
            if intent.can_transition_to(IntentStatus.CANCELLED):
                intent.cancel()
        elif gateway_status == GatewayStatus.REFUNDED:
            if intent.can_transition_to(IntentStatus.REFUNDED):
                intent.refund()
        elif gateway_status == GatewayStatus.REQUIRES_ACTION:
            if intent.can_transition_to(IntentStatus.FAILED):
                intent.mark_failed(ErrorKind.AUTHENTICATION.value, ERROR_MESSAGES[ErrorKind.AUTHENTICATION])
        elif gateway_status == GatewayStatus.REQUIRES_PAYMENT_METHOD:
            if intent.status == IntentStatus.PROCESSING.value:
                intent.mark_failed(
                    ErrorKind.DECLINED.value, state.failure_message or ERROR_MESSAGES[ErrorKind.DECLINED]
                )

        self._publish()
        if intent.status == IntentStatus.FAILED.value:
            kind = ErrorKind(intent.failure_kind)
            return self._failed(intent.failure_message or ERROR_MESSAGES[kind], kind, **self._intent_payload())

        logger.info("Payment intent updated", intent_id=intent.intent_id, status=intent.status)
        return OperationResult.ok(**self._intent_payload())

    async def refresh_status(self) -> OperationResult:
        """Pull the intent's status from the gateway and apply it."""
        async with self._lock:
            if self.intent is None:
                return self._failed("No payment has been started", ErrorKind.VALIDATION)
            try:
                state = await self._call(self.gateway.retrieve_intent(self.intent.client_secret))
            except Exception as exc:
                return self._failed(user_message(exc), categorize_error(exc), **self._intent_payload())
            return self._apply(state)

    # -------------------------------------------------------------------
    # Cancellation and refunds
    # -------------------------------------------------------------------
    async def cancel_payment(self) -> OperationResult:
        """Cancel the intent locally, then tell the gateway (best effort)."""
        async with self._lock:
            if self.intent is None:
                return self._failed("No payment has been started", ErrorKind.VALIDATION)
            if not self.intent.can_transition_to(IntentStatus.CANCELLED):
                return self._failed(f"Payment is {self.intent.status} and cannot be cancelled", ErrorKind.VALIDATION)

            self.intent.cancel()
            self._publish()
            try:
                await self._call(self.gateway.cancel_intent(self.intent.intent_id))
            except Exception as exc:
                logger.warning(
                    "Gateway cancellation failed; intent cancelled locally",
                    intent_id=self.intent.intent_id,
                    error=describe_error(exc),
                )
            return OperationResult.ok(**self._intent_payload())

    async def refund_payment(self) -> OperationResult:
        """Refund a succeeded intent locally, then tell the gateway (best effort)."""
        async with self._lock:
            if self.intent is None:
                return self._failed("No payment has been started", ErrorKind.VALIDATION)
            if not self.intent.can_transition_to(IntentStatus.REFUNDED):
                return self._failed(f"Payment is {self.intent.status} and cannot be refunded", ErrorKind.VALIDATION)

            self.intent.refund()
            self._publish()
            try:
                await self._call(self.gateway.refund_intent(self.intent.intent_id))
            except Exception as exc:
                logger.warning(
                    "Gateway refund failed; intent refunded locally",
                    intent_id=self.intent.intent_id,
                    error=describe_error(exc),
                )
            return OperationResult.ok(**self._intent_payload())

    def attach_order(self, order_id: str) -> None:
        """Record the order on the current intent, or on the one retired when the order emptied the cart."""
        if self.intent is not None:
            self.intent.attach_order(order_id)
            self._publish()
        elif self.previous_intent is not None:
            self.previous_intent.attach_order(order_id)

    def reset(self) -> None:
        """Forget the current intent, e.g. after the cart was cleared."""
        if self.intent is not None:
            self._generation += 1
        self.intent = None
        self.last_error = None
        self._publish()
