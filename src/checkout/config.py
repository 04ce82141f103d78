"""Environment-driven settings for the checkout context."""

import os
from dataclasses import dataclass
from functools import lru_cache


def _clean_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip().strip("'\"").strip()
    return value or default


def _int_env(name: str, default: int) -> int:
    raw = _clean_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = _clean_env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Lookups fire no sooner than this after the last keystroke
MIN_ADDRESS_DEBOUNCE_MS = 500


@dataclass(frozen=True)
class CheckoutSettings:
    currency: str = "GBP"
    gateway: str = "fake"
    gateway_timeout_seconds: float = 15.0
    address_debounce_ms: int = MIN_ADDRESS_DEBOUNCE_MS
    postcode_min_length: int = 5
    cart_storage_key: str = "cart"
    customer_storage_key: str = "billingUser"
    stripe_secret_key: str | None = None

    @property
    def address_debounce_seconds(self) -> float:
        return max(self.address_debounce_ms, MIN_ADDRESS_DEBOUNCE_MS) / 1000

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        return cls(
            currency=(_clean_env("CHECKOUT_CURRENCY", "GBP") or "GBP").upper(),
            gateway=(_clean_env("CHECKOUT_GATEWAY", "fake") or "fake").lower(),
            gateway_timeout_seconds=_float_env("CHECKOUT_GATEWAY_TIMEOUT_SECONDS", 15.0),
            address_debounce_ms=max(
                _int_env("CHECKOUT_ADDRESS_DEBOUNCE_MS", MIN_ADDRESS_DEBOUNCE_MS),
                MIN_ADDRESS_DEBOUNCE_MS,
            ),
            postcode_min_length=_int_env("CHECKOUT_POSTCODE_MIN_LENGTH", 5),
            cart_storage_key=_clean_env("CHECKOUT_CART_STORAGE_KEY", "cart"),
            customer_storage_key=_clean_env("CHECKOUT_CUSTOMER_STORAGE_KEY", "billingUser"),
            stripe_secret_key=_clean_env("STRIPE_SECRET_KEY"),
        )


@lru_cache(maxsize=1)
def get_settings() -> CheckoutSettings:
    """Return the process-wide settings, read once from the environment."""
    return CheckoutSettings.from_env()


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
