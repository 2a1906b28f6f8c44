# Overview: Pure order total calculator (subtotal, discount, tax, grand total) in integer cents.

"""
Order total calculator.

All money is integer cents and all rates are basis points (1000 = 10%).
Percentage math rounds half-up to the nearest cent.

    subtotal     = sum(line totals)
    discount     = manual override if given
                   else PERCENTAGE: subtotal * bps / 10000, capped at max_discount_cents
                   else FLAT:       amount_cents
                   (never more than the subtotal)
    tax          = (subtotal - discount) * tax_bps / 10000, 0 with no active tax
    grand total  = subtotal - discount + tax + service charge

The calculator reads nothing from the database; order_service feeds it the
order's lines, the attached discount and the active tax setting.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ..models.menu import DISCOUNT_FLAT, DISCOUNT_PERCENTAGE

BPS_DENOMINATOR = 10000


def apply_bps(amount_cents: int, rate_bps: int) -> int:
    """amount * rate, rounded half-up to the nearest cent."""
    value = Decimal(int(amount_cents)) * Decimal(int(rate_bps)) / Decimal(BPS_DENOMINATOR)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    service_charge_cents: int
    grand_total_cents: int

    def as_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "service_charge_cents": self.service_charge_cents,
            "grand_total_cents": self.grand_total_cents,
        }


def discount_amount(subtotal_cents: int, discount=None, manual_discount_cents: int | None = None) -> int:
    """
    Discount in cents for a subtotal.

    ``discount`` is anything with discount_type / percent_bps / amount_cents /
    max_discount_cents attributes (a Discount row in practice).
    """
    if manual_discount_cents is not None:
        amount = int(manual_discount_cents)
    elif discount is None:
        amount = 0
    elif discount.discount_type == DISCOUNT_PERCENTAGE:
        amount = apply_bps(subtotal_cents, discount.percent_bps or 0)
        if discount.max_discount_cents is not None:
            amount = min(amount, int(discount.max_discount_cents))
    elif discount.discount_type == DISCOUNT_FLAT:
        amount = int(discount.amount_cents or 0)
    else:
        raise ValueError(f"unknown discount type: {discount.discount_type}")

    return max(0, min(amount, subtotal_cents))


def calculate_totals(
    line_totals_cents: Iterable[int],
    *,
    discount=None,
    manual_discount_cents: int | None = None,
    tax_rate_bps: int | None = None,
    service_charge_cents: int = 0,
) -> OrderTotals:
    subtotal = sum(int(v) for v in line_totals_cents)
    disc = discount_amount(subtotal, discount, manual_discount_cents)
    taxable = subtotal - disc
    tax = apply_bps(taxable, tax_rate_bps) if tax_rate_bps else 0
    service = int(service_charge_cents or 0)

    return OrderTotals(
        subtotal_cents=subtotal,
        discount_cents=disc,
        tax_cents=tax,
        service_charge_cents=service,
        grand_total_cents=subtotal - disc + tax + service,
    )
