"""Stripe payment gateway adapter.

Uses the stripe-python SDK to drive PaymentIntents. The SDK is synchronous,
so every call runs in a worker thread to keep the event loop free.
"""

import asyncio

import stripe
import structlog

from checkout.errors import ERROR_CODE_KINDS, ErrorKind
from checkout.payment.gateway.port import (
    GatewayError,
    IntentHandle,
    IntentState,
    PaymentGateway,
)

logger = structlog.get_logger(__name__)


def intent_id_from_secret(client_secret: str) -> str:
    """Stripe client secrets are ``<intent id>_secret_<token>``."""
    return client_secret.split("_secret_")[0]


def _translate(exc: stripe.StripeError) -> GatewayError:
    code = getattr(exc, "code", None)
    message = getattr(exc, "user_message", None) or str(exc) or exc.__class__.__name__

    if isinstance(exc, stripe.CardError):
        kind = ERROR_CODE_KINDS.get(code, ErrorKind.DECLINED)
        return GatewayError(message, kind=kind, code=code, error_type="card_error")
    if isinstance(exc, stripe.APIConnectionError):
        return GatewayError(message, kind=ErrorKind.NETWORK, code=code or "api_connection_error")
    if isinstance(exc, stripe.RateLimitError):
        return GatewayError(message, kind=ErrorKind.SERVER, code=code or "rate_limit_error")
    if isinstance(exc, stripe.AuthenticationError):
        return GatewayError(message, kind=ErrorKind.SERVER, code=code or "authentication_error")
    if isinstance(exc, stripe.InvalidRequestError):
        return GatewayError(message, kind=ERROR_CODE_KINDS.get(code, ErrorKind.VALIDATION), code=code)
    return GatewayError(message, kind=ERROR_CODE_KINDS.get(code, ErrorKind.SERVER), code=code or "api_error")


def _state(intent) -> IntentState:
    last_error = intent.get("last_payment_error") or {}
    return IntentState(
        intent_id=intent["id"],
        gateway_status=intent["status"],
        failure_code=last_error.get("code") or last_error.get("decline_code"),
        failure_message=last_error.get("message"),
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str) -> None:
        if not api_key:
            raise GatewayError("Stripe API key is not configured", kind=ErrorKind.SERVER, code="authentication_error")
        self.api_key = api_key

    async def _call(self, operation: str, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, api_key=self.api_key, **kwargs)
        except stripe.StripeError as exc:
            error = _translate(exc)
            logger.warning(
                "Stripe request failed",
                operation=operation,
                code=error.code,
                error_kind=error.kind.value,
            )
            raise error from exc

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_ref: str | None,
        metadata: dict,
        idempotency_key: str,
    ) -> IntentHandle:
        params = {
            "amount": amount_minor,
            "currency": currency.lower(),
            "metadata": {key: str(value) for key, value in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
            "idempotency_key": idempotency_key,
        }
        if customer_ref:
            params["receipt_email"] = customer_ref

        intent = await self._call("create_intent", stripe.PaymentIntent.create, **params)
        logger.info("Stripe payment intent created", intent_id=intent["id"], amount_minor=amount_minor)
        return IntentHandle(
            intent_id=intent["id"],
            client_secret=intent["client_secret"],
            amount_minor=intent["amount"],
            currency=intent["currency"],
            gateway_status=intent["status"],
        )

    async def confirm_intent(self, client_secret: str, payment_method: str, save_card: bool = False) -> IntentState:
        params = {"payment_method": payment_method}
        if save_card:
            params["setup_future_usage"] = "off_session"
        intent = await self._call(
            "confirm_intent", stripe.PaymentIntent.confirm, intent_id_from_secret(client_secret), **params
        )
        return _state(intent)

    async def retrieve_intent(self, client_secret: str) -> IntentState:
        intent = await self._call("retrieve_intent", stripe.PaymentIntent.retrieve, intent_id_from_secret(client_secret))
        return _state(intent)

    async def cancel_intent(self, intent_id: str) -> IntentState:
        intent = await self._call("cancel_intent", stripe.PaymentIntent.cancel, intent_id)
        return _state(intent)

    async def refund_intent(self, intent_id: str) -> IntentState:
        await self._call("refund_intent", stripe.Refund.create, payment_intent=intent_id)
        return IntentState(intent_id=intent_id, gateway_status="refunded")
