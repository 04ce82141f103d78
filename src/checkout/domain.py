"""Checkout bounded context: cart, configuration, customer details and payment.

Holds the shopping cart that collects services for purchase, evaluates
whether each item is configured, gathers customer details, and drives a
payment intent through its lifecycle before the order is submitted.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
checkout = Domain(name="checkout")
