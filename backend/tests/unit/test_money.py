"""Unit tests for BHD money helpers."""

import datetime as dt
from decimal import Decimal

import pytest

from mukhymat.utils.money import (
    hours_between,
    percentage_of,
    quantize_amount,
    to_decimal,
    to_minor_units,
)


class TestToDecimal:
    def test_float_goes_through_str(self) -> None:
        assert to_decimal(33.333) == Decimal("33.333")

    def test_decimal_returned_unchanged(self) -> None:
        value = Decimal("1.5")
        assert to_decimal(value) is value

    def test_int_and_str(self) -> None:
        assert to_decimal(7) == Decimal(7)
        assert to_decimal("12.345") == Decimal("12.345")


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("0.0005", "0.001"), ("0.0004", "0.000"), ("2.3455", "2.346"), ("-0.0005", "-0.001")],
    )
    def test_quantize_half_up(self, value: str, expected: str) -> None:
        assert quantize_amount(Decimal(value)) == Decimal(expected)

    def test_percentage_of(self) -> None:
        assert percentage_of(Decimal("33.333"), 50) == Decimal("16.667")
        assert percentage_of(Decimal("100"), Decimal("12.5")) == Decimal("12.500")


class TestMinorUnits:
    def test_fils(self) -> None:
        """1 BD is 1000 fils."""
        assert to_minor_units(Decimal("12.345")) == 12345
        assert to_minor_units(Decimal("90")) == 90000

    def test_two_decimal_currency(self) -> None:
        assert to_minor_units(Decimal("10.005"), exponent=2) == 1001
        assert percentage_of(Decimal("10.01"), 50, exponent=2) == Decimal("5.01")


class TestHoursBetween:
    def test_exact_hours(self) -> None:
        start = dt.datetime(2026, 11, 1, tzinfo=dt.UTC)

        assert hours_between(start, start + dt.timedelta(hours=48)) == Decimal(48)

    def test_fractional_and_negative(self) -> None:
        start = dt.datetime(2026, 11, 1, tzinfo=dt.UTC)

        assert hours_between(start, start + dt.timedelta(minutes=90)) == Decimal("1.5")
        assert hours_between(start, start - dt.timedelta(hours=3)) == Decimal(-3)
