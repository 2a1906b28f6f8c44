# Overview: Shared column types and quantity helpers for ingredient amounts.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..extensions import db

# Ingredient quantities: three decimal places (grams of a kilo, ml of a litre)
QUANTITY = db.Numeric(14, 3, asdecimal=True)
QUANTITY_STEP = Decimal("0.001")


def to_quantity(value) -> Decimal:
    """Coerce int/float/str/Decimal to a 3-dp Decimal. Raises ValueError."""
    if isinstance(value, bool) or value is None:
        raise ValueError("quantity must be a number")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError("quantity must be a number")
    if not dec.is_finite():
        raise ValueError("quantity must be finite")
    return dec.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def quantity_str(value) -> str | None:
    if value is None:
        return None
    return str(to_quantity(value))
