"""Decimal helpers for Bahraini Dinar amounts.

BHD uses three decimal places (1 BD = 1000 fils). All monetary values are
carried as ``Decimal`` and rounded half-up to the currency precision.
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal

CURRENCY = "BHD"
CURRENCY_EXPONENT = 3

ZERO = Decimal("0")
HUNDRED = Decimal("100")
SECONDS_PER_HOUR = Decimal("3600")

Amount = Decimal | int | float | str


def to_decimal(value: Amount) -> Decimal:
    """Coerce a numeric value to Decimal without float artefacts.

    Floats go through ``str`` so that ``33.333`` stays ``33.333``.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_amount(value: Decimal, exponent: int = CURRENCY_EXPONENT) -> Decimal:
    """Round to the currency precision using round-half-up."""
    return value.quantize(Decimal(1).scaleb(-exponent), rounding=ROUND_HALF_UP)


def percentage_of(
    amount: Decimal, percentage: Decimal | int, exponent: int = CURRENCY_EXPONENT
) -> Decimal:
    """Return ``amount * percentage / 100`` rounded to currency precision."""
    return quantize_amount(amount * to_decimal(percentage) / HUNDRED, exponent)


def to_minor_units(amount: Amount, exponent: int = CURRENCY_EXPONENT) -> int:
    """Convert an amount to the gateway's integer minor unit.

    Args:
        amount: Amount in major units (e.g. 12.345 BD)
        exponent: Number of minor-unit digits (3 for BHD fils)

    Returns:
        Integer minor units, rounded half-up (12.345 BD -> 12345 fils)
    """
    scaled = to_decimal(amount).scaleb(exponent)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def hours_between(start: dt.datetime, end: dt.datetime) -> Decimal:
    """Exact number of hours from ``start`` to ``end`` (negative if end is earlier)."""
    delta = end - start
    seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds).scaleb(-6)
    return seconds / SECONDS_PER_HOUR
