from __future__ import annotations

from decimal import Decimal
from typing import Optional


ZERO = Decimal("0")


def dec(value) -> Decimal:
    """Coerce a stored numeric (Decimal, int, None) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_decimal_str(value: Optional[Decimal]) -> Optional[str]:
    """
    Serialize a Decimal for JSON without exponent notation.

    Trailing zeros from Numeric(18, 4) columns are dropped ("70.0000" -> "70").
    """
    if value is None:
        return None
    d = dec(value)
    if d == d.to_integral_value():
        return format(d.quantize(Decimal(1)), "f")
    return format(d.normalize(), "f")
