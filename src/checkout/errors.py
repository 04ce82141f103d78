"""Error taxonomy shared by the cart store and the payment lifecycle.

Collaborator adapters raise ``CheckoutError`` subclasses. The store and the
payment manager never let exceptions escape; they categorize them and hand
back an ``OperationResult`` instead.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from protean.exceptions import ValidationError


class ErrorKind(Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    DECLINED = "declined"
    PROCESSING = "processing"
    NETWORK = "network"
    SERVER = "server"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Gateway error codes (Stripe vocabulary) and the kind each belongs to
ERROR_CODE_KINDS = {
    "invalid_number": ErrorKind.VALIDATION,
    "invalid_expiry_month": ErrorKind.VALIDATION,
    "invalid_expiry_year": ErrorKind.VALIDATION,
    "invalid_cvc": ErrorKind.VALIDATION,
    "incorrect_cvc": ErrorKind.VALIDATION,
    "incorrect_number": ErrorKind.VALIDATION,
    "authentication_required": ErrorKind.AUTHENTICATION,
    "card_declined": ErrorKind.DECLINED,
    "expired_card": ErrorKind.DECLINED,
    "insufficient_funds": ErrorKind.DECLINED,
    "invalid_account": ErrorKind.DECLINED,
    "processing_error": ErrorKind.PROCESSING,
    "network_error": ErrorKind.NETWORK,
    "api_connection_error": ErrorKind.NETWORK,
    "server_error": ErrorKind.SERVER,
    "api_error": ErrorKind.SERVER,
    "rate_limit_error": ErrorKind.SERVER,
    "timeout": ErrorKind.TIMEOUT,
}

ERROR_MESSAGES = {
    ErrorKind.VALIDATION: "Please check your payment details and try again.",
    ErrorKind.AUTHENTICATION: "Your bank requires additional verification. Please complete the authentication.",
    ErrorKind.DECLINED: "Your card was declined. Please use a different card or contact your bank.",
    ErrorKind.PROCESSING: "We couldn't process your payment. Please try again.",
    ErrorKind.NETWORK: "Network connection issue. Please check your internet connection and try again.",
    ErrorKind.SERVER: "Our payment system is temporarily unavailable. Please try again in a few minutes.",
    ErrorKind.TIMEOUT: "The payment service took too long to respond. Please try again.",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again or contact support.",
}

CUSTOMER_ACTION_CODES = frozenset(
    {
        "authentication_required",
        "card_declined",
        "expired_card",
        "incorrect_cvc",
        "insufficient_funds",
        "invalid_account",
    }
)


class CheckoutError(Exception):
    """Base error raised by checkout collaborators."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code


class CollaboratorError(CheckoutError):
    """An order, cart or customer storage collaborator failed."""


def categorize_error(exc: BaseException) -> ErrorKind:
    """Map any exception onto an ``ErrorKind``."""
    if isinstance(exc, CheckoutError):
        if exc.kind is ErrorKind.UNKNOWN and exc.code in ERROR_CODE_KINDS:
            return ERROR_CODE_KINDS[exc.code]
        return exc.kind
    if isinstance(exc, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorKind.NETWORK

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in ERROR_CODE_KINDS:
        return ERROR_CODE_KINDS[code]
    return ErrorKind.UNKNOWN


def describe_error(exc: BaseException) -> str:
    """Flatten an exception into a single human-readable line."""
    if isinstance(exc, ValidationError):
        parts = []
        for field_name, messages in exc.messages.items():
            if isinstance(messages, (list, tuple)):
                parts.extend(str(m) for m in messages)
            else:
                parts.append(str(messages))
            if not messages:
                parts.append(field_name)
        return "; ".join(parts) or "Invalid request"
    if isinstance(exc, CheckoutError):
        return exc.message
    return str(exc) or exc.__class__.__name__


def user_message(exc: BaseException) -> str:
    """Actionable text for an error, suitable to show to the customer.

    Card errors coming from the gateway keep their own wording, which is
    already written for cardholders.
    """
    if getattr(exc, "error_type", None) == "card_error" and getattr(exc, "message", None):
        return exc.message
    if isinstance(exc, ValidationError):
        return describe_error(exc)
    return ERROR_MESSAGES[categorize_error(exc)]


def requires_customer_action(code: str | None) -> bool:
    return code in CUSTOMER_ACTION_CODES


def is_retryable(kind: ErrorKind) -> bool:
    return kind in (ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.TIMEOUT, ErrorKind.PROCESSING)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a cart or payment operation."""

    success: bool
    error: str | None = None
    error_kind: ErrorKind | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **payload: Any) -> "OperationResult":
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, error: str, kind: ErrorKind = ErrorKind.UNKNOWN, **payload: Any) -> "OperationResult":
        return cls(success=False, error=error, error_kind=kind, payload=payload)

    @classmethod
    def from_exception(cls, exc: BaseException, **payload: Any) -> "OperationResult":
        return cls.failed(describe_error(exc), categorize_error(exc), **payload)

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)
