"""Configurable fake payment gateway for development and testing.

This adapter simulates a real payment gateway without any external calls.
It can be configured at runtime to succeed or fail, making it useful for:
- Automated tests with predictable outcomes
- Development without real gateway credentials

Follows Stripe's test mode closely enough for the lifecycle: intents are
deduplicated by idempotency key, client secrets look like
``pi_..._secret_...``, and failures carry Stripe's error codes.
"""

import asyncio
from uuid import uuid4

from checkout.errors import ERROR_CODE_KINDS, ErrorKind
from checkout.payment.gateway.port import (
    GatewayError,
    GatewayStatus,
    IntentHandle,
    IntentState,
    PaymentGateway,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_code: str = "card_declined"
        self.failure_message: str = "Your card was declined."
        self.requires_action: bool = False
        self.pending: bool = False
        self.delay: float = 0.0
        self.calls: list[dict] = []
        self._by_idempotency_key: dict[str, IntentHandle] = {}
        self._intents: dict[str, dict] = {}

    def configure(
        self,
        should_succeed: bool,
        failure_code: str = "card_declined",
        failure_message: str = "Your card was declined.",
        requires_action: bool = False,
        delay: float = 0.0,
        pending: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_code = failure_code
        self.failure_message = failure_message
        self.requires_action = requires_action
        self.delay = delay
        self.pending = pending

    async def _maybe_wait(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)

    def _error(self) -> GatewayError:
        kind = ERROR_CODE_KINDS.get(self.failure_code, ErrorKind.UNKNOWN)
        error_type = "card_error" if kind in (ErrorKind.DECLINED, ErrorKind.VALIDATION) else "api_error"
        return GatewayError(self.failure_message, kind=kind, code=self.failure_code, error_type=error_type)

    def _intent_for_secret(self, client_secret: str) -> dict:
        intent_id = client_secret.split("_secret_")[0]
        intent = self._intents.get(intent_id)
        if intent is None:
            raise GatewayError("No such payment intent", kind=ErrorKind.VALIDATION, code="resource_missing")
        return intent

    def _intent(self, intent_id: str) -> dict:
        intent = self._intents.get(intent_id)
        if intent is None:
            raise GatewayError("No such payment intent", kind=ErrorKind.VALIDATION, code="resource_missing")
        return intent

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_ref: str | None,
        metadata: dict,
        idempotency_key: str,
    ) -> IntentHandle:
        self.calls.append(
            {
                "method": "create_intent",
                "amount_minor": amount_minor,
                "currency": currency,
                "customer_ref": customer_ref,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
        )
        await self._maybe_wait()

        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        handle = IntentHandle(
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:16]}",
            amount_minor=amount_minor,
            currency=currency.lower(),
        )
        self._by_idempotency_key[idempotency_key] = handle
        self._intents[intent_id] = {"status": handle.gateway_status, "amount_minor": amount_minor}
        return handle

    async def confirm_intent(self, client_secret: str, payment_method: str, save_card: bool = False) -> IntentState:
        self.calls.append(
            {
                "method": "confirm_intent",
                "client_secret": client_secret,
                "payment_method": payment_method,
                "save_card": save_card,
            }
        )
        await self._maybe_wait()
        intent = self._intent_for_secret(client_secret)
        intent_id = client_secret.split("_secret_")[0]

        if self.requires_action:
            intent["status"] = GatewayStatus.REQUIRES_ACTION
            return IntentState(intent_id=intent_id, gateway_status=GatewayStatus.REQUIRES_ACTION)
        if not self.should_succeed:
            intent["status"] = GatewayStatus.REQUIRES_PAYMENT_METHOD
            raise self._error()
        if self.pending:
            intent["status"] = GatewayStatus.PROCESSING
            return IntentState(intent_id=intent_id, gateway_status=GatewayStatus.PROCESSING)

        intent["status"] = GatewayStatus.SUCCEEDED
        return IntentState(intent_id=intent_id, gateway_status=GatewayStatus.SUCCEEDED)

    async def retrieve_intent(self, client_secret: str) -> IntentState:
        self.calls.append({"method": "retrieve_intent", "client_secret": client_secret})
        await self._maybe_wait()
        intent = self._intent_for_secret(client_secret)
        return IntentState(intent_id=client_secret.split("_secret_")[0], gateway_status=intent["status"])

    async def cancel_intent(self, intent_id: str) -> IntentState:
        self.calls.append({"method": "cancel_intent", "intent_id": intent_id})
        await self._maybe_wait()
        if not self.should_succeed:
            raise self._error()
        self._intent(intent_id)["status"] = GatewayStatus.CANCELED
        return IntentState(intent_id=intent_id, gateway_status=GatewayStatus.CANCELED)

    async def refund_intent(self, intent_id: str) -> IntentState:
        self.calls.append({"method": "refund_intent", "intent_id": intent_id})
        await self._maybe_wait()
        if not self.should_succeed:
            raise self._error()
        self._intent(intent_id)["status"] = GatewayStatus.REFUNDED
        return IntentState(intent_id=intent_id, gateway_status=GatewayStatus.REFUNDED)

    def settle(self, intent_id: str, status: str) -> None:
        """Move an intent to ``status`` out of band, as a webhook-driven change would."""
        self._intent(intent_id)["status"] = status

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]
