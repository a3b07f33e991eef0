"""Decimal helpers for hours and money.

Rounding:
- Hours are kept at full precision through tiering
- Money is rounded to cents, half-up, once at the final multiplication
- Export precision is a presentation concern (hours 1 decimal, cost 2)
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
HOURS_EXPORT_PRECISION = Decimal("0.1")

# Storage precision for hours derived from clock times
HOURS_PRECISION = Decimal("0.000001")

# Tolerance for tier sum vs total hours
HOURS_TOLERANCE = Decimal("0.000001")

ZERO = Decimal("0")

# Largest values the payroll_entry hours and money columns hold
MAX_HOURS = Decimal("999999")
MAX_COST = Decimal("999999999999.99")


def to_decimal(value: Any) -> Decimal:
    """Convert an int/float/str/Decimal to Decimal without binary drift.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not
    Decimal("0.1000000000000000055511151231257827...").
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents), half-up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_hours(hours: Decimal) -> str:
    """Render hours with one decimal place, half-up."""
    return str(hours.quantize(HOURS_EXPORT_PRECISION, rounding=ROUND_HALF_UP))


def format_money(amount: Decimal) -> str:
    """Render money with two decimal places, half-up."""
    return str(round_to_cents(amount))


def within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal = HOURS_TOLERANCE) -> bool:
    return abs(a - b) <= tolerance
