"""PaymentIntent aggregate: one attempt to collect the cart total.

The intent mirrors the gateway's payment intent. It is created once per
order draft and amount, and confirmation retries reuse it (and its client
secret) rather than creating a new one.

State Machine:
    CREATED → PROCESSING → SUCCEEDED → REFUNDED
    PROCESSING → FAILED → PROCESSING (retry)
    FAILED → SUCCEEDED (gateway reports a charge that finished after a local failure)
    CREATED/PROCESSING/FAILED → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String

from checkout.domain import checkout
from checkout.payment.events import (
    PaymentConfirmationStarted,
    PaymentIntentCancelled,
    PaymentIntentCreated,
    PaymentIntentFailed,
    PaymentIntentRefunded,
    PaymentIntentSucceeded,
)


class IntentStatus(Enum):
    CREATED = "created"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    IntentStatus.CREATED: {IntentStatus.PROCESSING, IntentStatus.FAILED, IntentStatus.CANCELLED},
    IntentStatus.PROCESSING: {IntentStatus.SUCCEEDED, IntentStatus.FAILED, IntentStatus.CANCELLED},
    IntentStatus.FAILED: {IntentStatus.PROCESSING, IntentStatus.SUCCEEDED, IntentStatus.CANCELLED},  # retry or reconcile
    IntentStatus.SUCCEEDED: {IntentStatus.REFUNDED},
    IntentStatus.CANCELLED: set(),  # Terminal
    IntentStatus.REFUNDED: set(),  # Terminal
}

# An intent in one of these states is finished and never reused
TERMINAL_STATUSES = frozenset({IntentStatus.SUCCEEDED, IntentStatus.CANCELLED, IntentStatus.REFUNDED})


@checkout.aggregate
class PaymentIntent:
    intent_id = String(required=True, max_length=255)
    client_secret = String(required=True, max_length=500)
    amount_minor = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="GBP")
    status = String(choices=IntentStatus, default=IntentStatus.CREATED.value)
    order_id = String(max_length=255)
    idempotency_key = String(max_length=255)
    payment_method_ref = String(max_length=255)
    save_card = Boolean(default=False)
    failure_kind = String(max_length=50)
    failure_message = String(max_length=1000)
    attempt_count = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def failed_intent_must_record_why(self):
        if self.status == IntentStatus.FAILED.value and not self.failure_kind:
            raise ValidationError({"failure_kind": ["A failed payment intent must record the failure kind"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, intent_id, client_secret, amount_minor, currency="GBP", idempotency_key=None, order_id=None):
        now = datetime.now(UTC)
        intent = cls(
            intent_id=intent_id,
            client_secret=client_secret,
            amount_minor=amount_minor,
            currency=currency.upper(),
            status=IntentStatus.CREATED.value,
            idempotency_key=idempotency_key,
            order_id=order_id,
            attempt_count=0,
            created_at=now,
            updated_at=now,
        )
        intent.raise_(
            PaymentIntentCreated(
                payment_intent_id=str(intent.id),
                intent_id=intent_id,
                amount_minor=amount_minor,
                currency=intent.currency,
            )
        )
        return intent

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return IntentStatus(self.status) in TERMINAL_STATUSES

    def can_transition_to(self, target_status: IntentStatus) -> bool:
        return target_status in _VALID_TRANSITIONS.get(IntentStatus(self.status), set())

    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = IntentStatus(self.status)
        if not self.can_transition_to(target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def start_confirmation(self, payment_method_ref, save_card=False):
        self._assert_can_transition(IntentStatus.PROCESSING)

        self.status = IntentStatus.PROCESSING.value
        self.failure_kind = None
        self.failure_message = None
        self.payment_method_ref = payment_method_ref
        self.save_card = bool(save_card)
        self.attempt_count = (self.attempt_count or 0) + 1
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentConfirmationStarted(
                payment_intent_id=str(self.id),
                intent_id=self.intent_id,
                attempt_number=self.attempt_count,
            )
        )

    def mark_succeeded(self):
        self._assert_can_transition(IntentStatus.SUCCEEDED)

        self.status = IntentStatus.SUCCEEDED.value
        self.failure_kind = None
        self.failure_message = None
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentIntentSucceeded(
                payment_intent_id=str(self.id),
                intent_id=self.intent_id,
                amount_minor=self.amount_minor,
            )
        )

    def mark_failed(self, failure_kind, failure_message=None):
        self._assert_can_transition(IntentStatus.FAILED)

        # Failure details first: the status change is checked against them
        self.failure_kind = failure_kind
        self.failure_message = failure_message
        self.status = IntentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentIntentFailed(
                payment_intent_id=str(self.id),
                intent_id=self.intent_id,
                failure_kind=failure_kind,
                failure_message=failure_message,
                attempt_number=self.attempt_count or 0,
            )
        )

    def cancel(self):
        self._assert_can_transition(IntentStatus.CANCELLED)

        self.status = IntentStatus.CANCELLED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(PaymentIntentCancelled(payment_intent_id=str(self.id), intent_id=self.intent_id))

    def refund(self):
        self._assert_can_transition(IntentStatus.REFUNDED)

        self.status = IntentStatus.REFUNDED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentIntentRefunded(
                payment_intent_id=str(self.id),
                intent_id=self.intent_id,
                amount_minor=self.amount_minor,
            )
        )

    def attach_order(self, order_id):
        self.order_id = str(order_id)
        self.updated_at = datetime.now(UTC)
