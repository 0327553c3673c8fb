"""Decimal money utilities.

All prices, fees and payouts are Decimal dollars with 2-decimal precision.
Intermediate values keep full precision; rounding happens once, at the edge.
"""

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """Convert without inheriting binary float noise: 2.1 -> Decimal('2.1')."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round half-up to cents: Decimal('12.345') -> Decimal('12.35')."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def money_to_display(value: Decimal) -> str:
    """Display string: Decimal('1234.5') -> '$1,234.50', negatives as '-$12.00'."""
    rounded = round_money(value)
    if rounded < 0:
        return f"-${-rounded:,.2f}"
    return f"${rounded:,.2f}"
