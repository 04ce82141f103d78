"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing the payment lifecycle.

Amounts are always in minor units. Failures are raised as ``GatewayError``
carrying an ``ErrorKind`` and, where the gateway supplied one, its code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from checkout.errors import CheckoutError, ErrorKind


class GatewayStatus:
    """Intent statuses as reported by the gateway."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class GatewayError(CheckoutError):
    """The gateway rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        code: str | None = None,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message, kind=kind, code=code)
        self.error_type = error_type


@dataclass(frozen=True)
class IntentHandle:
    """A freshly created payment intent."""

    intent_id: str
    client_secret: str
    amount_minor: int
    currency: str
    gateway_status: str = GatewayStatus.REQUIRES_PAYMENT_METHOD


@dataclass(frozen=True)
class IntentState:
    """The gateway's view of an existing intent."""

    intent_id: str
    gateway_status: str
    failure_code: str | None = None
    failure_message: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_ref: str | None,
        metadata: dict,
        idempotency_key: str,
    ) -> IntentHandle:
        """Create a payment intent; the same idempotency key yields the same intent."""
        ...

    @abstractmethod
    async def confirm_intent(
        self,
        client_secret: str,
        payment_method: str,
        save_card: bool = False,
    ) -> IntentState:
        """Confirm an intent with a tokenized payment method."""
        ...

    @abstractmethod
    async def retrieve_intent(self, client_secret: str) -> IntentState:
        ...

    @abstractmethod
    async def cancel_intent(self, intent_id: str) -> IntentState:
        ...

    @abstractmethod
    async def refund_intent(self, intent_id: str) -> IntentState:
        """Refund the full amount of a succeeded intent."""
        ...
