"""Currency amounts in major units (pounds) and minor units (pence).

The cart works in major units; the payment gateway works in minor units.
Every function here is total: malformed input degrades to zero instead of
raising.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

# Gateway limits for a single charge, in minor units
MIN_CHARGE_MINOR = 50
MAX_CHARGE_MINOR = 99_999_999

_CURRENCY_SYMBOLS = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
}

_CENT = Decimal("0.01")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


class AmountUnit(Enum):
    MAJOR = "major"
    MINOR = "minor"


def parse_decimal(value) -> Decimal | None:
    """Leniently parse a number, returning None when it is not a finite number.

    Accepts ints, floats, Decimals and strings such as ``"12.50"``,
    ``"£1,200"`` or ``" 3 "``. Booleans are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        # str() keeps the shortest repr, so 0.29 stays 0.29 rather than 0.28999...
        parsed = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        for symbol in _CURRENCY_SYMBOLS.values():
            cleaned = cleaned.replace(symbol, "")
        if not cleaned:
            return None
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None

    if not parsed.is_finite():
        return None
    return parsed


def to_minor_units(amount) -> int:
    """Convert a major-unit amount to minor units, rounding half-up."""
    parsed = parse_decimal(amount)
    if parsed is None:
        return 0
    return int((parsed * _HUNDRED).quantize(_ONE, rounding=ROUND_HALF_UP))


def to_major_units(amount) -> float:
    """Convert a minor-unit amount to major units, with two decimal places."""
    parsed = parse_decimal(amount)
    if parsed is None:
        return 0.0
    return float((parsed / _HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP))


def detect_unit(amount) -> AmountUnit:
    """Guess the unit of an amount whose unit is unknown.

    Non-integers and integers below 100 are read as major units; anything
    else as minor units. Only use this for values arriving from outside the
    system; internally every amount carries its unit.
    """
    parsed = parse_decimal(amount)
    if parsed is None:
        return AmountUnit.MAJOR
    if parsed != parsed.to_integral_value() or parsed < _HUNDRED:
        return AmountUnit.MAJOR
    return AmountUnit.MINOR


def format_amount(amount, currency_code: str = "GBP") -> str:
    """Render a major-unit amount for display, e.g. ``£1,234.50``."""
    parsed = parse_decimal(amount)
    if parsed is None:
        parsed = Decimal(0)

    code = (currency_code or "GBP").upper()
    quantized = parsed.quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    digits = f"{abs(quantized):,.2f}"

    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {digits}"
    return f"{sign}{symbol}{digits}"


def is_chargeable(amount_minor) -> bool:
    """Whether a minor-unit amount is within the gateway's charge limits."""
    parsed = parse_decimal(amount_minor)
    if parsed is None:
        return False
    return MIN_CHARGE_MINOR <= parsed <= MAX_CHARGE_MINOR


@dataclass(frozen=True)
class Amount:
    """A monetary amount tagged with its unit.

    Converting an amount that is already in the requested unit returns it
    unchanged, so an amount cannot be converted twice by mistake.
    """

    value: Decimal
    unit: AmountUnit
    currency: str = "GBP"

    @classmethod
    def major(cls, value, currency: str = "GBP") -> "Amount":
        parsed = parse_decimal(value) or Decimal(0)
        return cls(parsed.quantize(_CENT, rounding=ROUND_HALF_UP), AmountUnit.MAJOR, currency.upper())

    @classmethod
    def minor(cls, value, currency: str = "GBP") -> "Amount":
        parsed = parse_decimal(value) or Decimal(0)
        return cls(parsed.quantize(_ONE, rounding=ROUND_HALF_UP), AmountUnit.MINOR, currency.upper())

    def to_minor(self) -> "Amount":
        if self.unit is AmountUnit.MINOR:
            return self
        return Amount.minor(to_minor_units(self.value), self.currency)

    def to_major(self) -> "Amount":
        if self.unit is AmountUnit.MAJOR:
            return self
        return Amount.major(to_major_units(self.value), self.currency)

    @property
    def minor_units(self) -> int:
        return int(self.to_minor().value)

    @property
    def major_value(self) -> float:
        return float(self.to_major().value)

    @property
    def is_positive(self) -> bool:
        return self.value > 0

    def format(self) -> str:
        return format_amount(self.major_value, self.currency)

    def __str__(self) -> str:
        return self.format()


def coerce_external_amount(value, unit: AmountUnit | None = None, currency: str = "GBP") -> Amount:
    """Tag an amount received from outside with a unit.

    When the caller knows the unit it is used as-is; otherwise the unit is
    inferred with ``detect_unit``.
    """
    resolved = unit or detect_unit(value)
    if resolved is AmountUnit.MINOR:
        return Amount.minor(value, currency)
    return Amount.major(value, currency)
