# Overview: Integer-cents input parsing shared by every service that accepts money.

from __future__ import annotations

from ..errors import ValidationFailedError


def parse_cents(value, field: str, *, minimum: int = 0, default: int | None = None) -> int:
    """
    Coerce a money input to integer cents.

    Accepts ints, integral floats/Decimals and digit strings. Fractional
    cents, booleans and values below ``minimum`` raise ValidationFailedError.
    ``None`` returns ``default`` when one is given.
    """
    if value is None:
        if default is not None:
            return default
        raise ValidationFailedError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationFailedError(f"{field} must be an integer number of cents", {field: value})
    try:
        cents = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationFailedError(f"{field} must be an integer number of cents", {field: value})
    if cents != value and not isinstance(value, str):
        raise ValidationFailedError(f"{field} must be an integer number of cents", {field: str(value)})
    if cents < minimum:
        if minimum == 0:
            raise ValidationFailedError(f"{field} cannot be negative", {field: cents})
        raise ValidationFailedError(f"{field} must be positive", {field: cents})
    return cents
