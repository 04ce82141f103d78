"""Domain events for the PaymentIntent aggregate."""

from protean.fields import Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="PaymentIntent")
class PaymentIntentCreated:
    """The gateway issued a payment intent for the cart total."""

    __version__ = 1

    payment_intent_id = Identifier(required=True)
    intent_id = String(required=True)
    amount_minor = Integer(required=True)
    currency = String(required=True)


@checkout.event(part_of="PaymentIntent")
class PaymentConfirmationStarted:
    __version__ = 1

    payment_intent_id = Identifier(required=True)
    intent_id = String(required=True)
    attempt_number = Integer(required=True)


@checkout.event(part_of="PaymentIntent")
class PaymentIntentSucceeded:
    __version__ = 1

    payment_intent_id = Identifier(required=True)
    intent_id = String(required=True)
    amount_minor = Integer(required=True)


@checkout.event(part_of="PaymentIntent")
class PaymentIntentFailed:
    """A confirmation attempt failed; the intent can be retried."""

    __version__ = 1

    payment_intent_id = Identifier(required=True)
    intent_id = String(required=True)
    failure_kind = String(required=True)
    failure_message = String(max_length=1000)
    attempt_number = Integer(required=True)


@checkout.event(part_of="PaymentIntent")
class PaymentIntentCancelled:
    __version__ = 1

    payment_intent_id = Identifier(required=True)
    intent_id = String(required=True)


@checkout.event(part_of="PaymentIntent")
class PaymentIntentRefunded:
    __version__ = 1

    payment_intent_id = Identifier(required=True)
    intent_id = String(required=True)
    amount_minor = Integer(required=True)
