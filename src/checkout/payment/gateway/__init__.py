"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- StripeGateway for production (``CHECKOUT_GATEWAY=stripe``)
"""

from checkout.config import get_settings
from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _default_gateway() -> PaymentGateway:
    settings = get_settings()
    if settings.gateway == "stripe":
        from checkout.payment.gateway.stripe_adapter import StripeGateway

        return StripeGateway(api_key=settings.stripe_secret_key)
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to the configured adapter."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _default_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
