"""Tests for amount conversion, formatting and unit tagging."""

from decimal import Decimal

import pytest
from checkout.money.amounts import (
    Amount,
    AmountUnit,
    coerce_external_amount,
    detect_unit,
    format_amount,
    is_chargeable,
    parse_decimal,
    to_major_units,
    to_minor_units,
)


class TestToMinorUnits:
    def test_whole_pounds(self):
        assert to_minor_units(12) == 1200

    def test_pence_survive_float_representation(self):
        assert to_minor_units(0.29) == 29
        assert to_minor_units(19.99) == 1999

    def test_rounds_half_up(self):
        assert to_minor_units(10.005) == 1001
        assert to_minor_units("0.125") == 13

    def test_parses_strings(self):
        assert to_minor_units("£1,234.50") == 123450

    @pytest.mark.parametrize("bad", [None, "abc", "", float("nan"), float("inf"), True, [], {}])
    def test_invalid_input_is_zero(self, bad):
        assert to_minor_units(bad) == 0


class TestToMajorUnits:
    def test_converts_pence(self):
        assert to_major_units(1999) == 19.99

    def test_two_decimal_places(self):
        assert to_major_units(1) == 0.01

    def test_invalid_input_is_zero(self):
        assert to_major_units("n/a") == 0.0

    def test_round_trip_keeps_two_decimal_value(self):
        for value in (0.01, 0.1, 0.29, 1.15, 19.99, 36.0, 1234.56):
            assert to_major_units(to_minor_units(value)) == round(value, 2)


class TestDetectUnit:
    def test_fraction_is_major(self):
        assert detect_unit(12.5) is AmountUnit.MAJOR

    def test_small_integer_is_major(self):
        assert detect_unit(99) is AmountUnit.MAJOR

    def test_large_integer_is_minor(self):
        assert detect_unit(4375) is AmountUnit.MINOR

    def test_garbage_defaults_to_major(self):
        assert detect_unit("oops") is AmountUnit.MAJOR


class TestFormatAmount:
    def test_gbp(self):
        assert format_amount(1234.5) == "£1,234.50"

    def test_negative(self):
        assert format_amount(-5) == "-£5.00"

    def test_other_known_currency(self):
        assert format_amount(10, "eur") == "€10.00"

    def test_unknown_currency_uses_code(self):
        assert format_amount(10, "CHF") == "CHF 10.00"

    def test_invalid_amount(self):
        assert format_amount(None) == "£0.00"


class TestIsChargeable:
    def test_limits(self):
        assert is_chargeable(50)
        assert is_chargeable(99_999_999)
        assert not is_chargeable(49)
        assert not is_chargeable(100_000_000)
        assert not is_chargeable("abc")


class TestParseDecimal:
    def test_rejects_bool(self):
        assert parse_decimal(False) is None

    def test_strips_whitespace(self):
        assert parse_decimal(" 3 ") == Decimal("3")


class TestAmount:
    def test_major_to_minor(self):
        amount = Amount.major(43.75)
        assert amount.to_minor() == Amount.minor(4375)
        assert amount.minor_units == 4375

    def test_converting_to_same_unit_is_a_no_op(self):
        minor = Amount.minor(4375)
        assert minor.to_minor() is minor
        assert minor.to_minor().to_minor().minor_units == 4375

    def test_major_value(self):
        assert Amount.minor(1999).major_value == 19.99

    def test_str_formats(self):
        assert str(Amount.minor(123450)) == "£1,234.50"

    def test_is_positive(self):
        assert Amount.major(0.01).is_positive
        assert not Amount.major(0).is_positive
        assert not Amount.major("garbage").is_positive


class TestCoerceExternalAmount:
    def test_known_unit_wins_over_detection(self):
        assert coerce_external_amount(150, unit=AmountUnit.MAJOR).minor_units == 15000

    def test_detects_unit_when_unknown(self):
        assert coerce_external_amount(4375).major_value == 43.75
        assert coerce_external_amount(43.75).minor_units == 4375
