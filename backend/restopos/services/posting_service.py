# Overview: Automatic general-ledger postings for order fulfilment and purchase receiving.

from __future__ import annotations

from flask import current_app

from ..errors import StateConflictError
from ..models import Order, PaymentMethod, Purchase
from .accounting_service import get_account_by_code, post_entries

"""
Posting rules (all amounts integer cents)

SALES voucher on order completion:
    Dr bank            card and QR tenders
    Dr cash            the rest of the grand total not on credit
    Dr receivable      credit tendered
    Cr sales           subtotal - discount
    Cr taxes payable   tax
    Cr service income  service charge
JOURNAL voucher for cost of goods sold:
    Dr cost of goods sold / Cr inventory at cost_per_unit_cents x consumed quantity
PURCHASE voucher on receive:
    Dr inventory / Cr accounts payable for the net amount
RECEIPT voucher on credit settlement:
    Dr cash (CASH) or bank (CARD, QR, FONEPAY) / Cr receivable

A negative leg moves to the opposite side; zero legs are skipped.
"""


# Tenders that settle into the bank account rather than the drawer
BANK_METHODS = {
    PaymentMethod.CARD.value,
    PaymentMethod.QR.value,
    PaymentMethod.FONEPAY.value,
}


def settlement_role(method: str) -> str:
    return "bank" if (method or "").upper() in BANK_METHODS else "cash"


def auto_post_enabled() -> bool:
    return bool(current_app.config.get("AUTO_POST_LEDGER"))


def account_for(role: str):
    codes = current_app.config.get("LEDGER_ACCOUNT_CODES", {})
    code = codes.get(role)
    account = get_account_by_code(code) if code else None
    if account is None or not account.is_active:
        raise StateConflictError(
            f"Ledger account for '{role}' is not configured",
            {"role": role, "code": code},
        )
    return account


def _leg(role: str, *, debit: int = 0, credit: int = 0, narration: str | None = None) -> dict | None:
    amount = debit - credit
    if amount == 0:
        return None
    account = account_for(role)
    if amount > 0:
        return {"account_id": account.id, "debit_cents": amount, "credit_cents": 0, "narration": narration}
    return {"account_id": account.id, "debit_cents": 0, "credit_cents": -amount, "narration": narration}


def _legs(*legs) -> list[dict]:
    return [leg for leg in legs if leg is not None]


def post_order_sale(order: Order, *, credit_tendered_cents: int, actor_id: str):
    """Revenue voucher for a completed order, in the caller's transaction."""
    credit_part = min(max(int(credit_tendered_cents or 0), 0), order.grand_total_cents)
    bank_tendered = sum(
        p.amount_cents for p in order.payments
        if p.customer_id is None and p.method in BANK_METHODS
    )
    bank_part = min(bank_tendered, order.grand_total_cents - credit_part)
    cash_part = order.grand_total_cents - credit_part - bank_part

    entries = _legs(
        _leg("bank", debit=bank_part, narration="Sale settlement"),
        _leg("cash", debit=cash_part, narration="Sale settlement"),
        _leg("receivable", debit=credit_part, narration="Sale on credit"),
        _leg("sales", credit=order.subtotal_cents - order.discount_cents, narration="Net sales"),
        _leg("tax", credit=order.tax_cents, narration="Tax collected"),
        _leg("service", credit=order.service_charge_cents, narration="Service charge"),
    )
    if not entries:
        return None
    return post_entries(
        voucher_type="SALES",
        description=f"Sales {order.order_number}",
        entries=entries,
        actor_id=actor_id,
        transaction_date=order.completed_at,
        reference_type="order",
        reference_id=order.id,
    )


def post_order_cogs(order: Order, *, cost_cents: int, actor_id: str):
    entries = _legs(
        _leg("cogs", debit=int(cost_cents), narration="Ingredients consumed"),
        _leg("inventory", credit=int(cost_cents), narration="Ingredients consumed"),
    )
    if not entries:
        return None
    return post_entries(
        voucher_type="JOURNAL",
        description=f"Cost of goods sold {order.order_number}",
        entries=entries,
        actor_id=actor_id,
        transaction_date=order.completed_at,
        reference_type="order",
        reference_id=order.id,
    )


def post_purchase_receipt(purchase: Purchase, *, actor_id: str):
    entries = _legs(
        _leg("inventory", debit=purchase.net_cents, narration=f"Invoice {purchase.invoice_no}"),
        _leg("payable", credit=purchase.net_cents, narration=f"Invoice {purchase.invoice_no}"),
    )
    if not entries:
        return None
    return post_entries(
        voucher_type="PURCHASE",
        description=f"Purchase {purchase.invoice_no}",
        entries=entries,
        actor_id=actor_id,
        transaction_date=purchase.received_at,
        reference_type="purchase",
        reference_id=purchase.id,
    )


def post_credit_settlement(customer, *, amount_cents: int, method: str, actor_id: str):
    """RECEIPT voucher when a customer pays down credit: Dr cash or bank / Cr receivable."""
    entries = _legs(
        _leg(settlement_role(method), debit=int(amount_cents), narration=f"Credit settlement {customer.name}"),
        _leg("receivable", credit=int(amount_cents), narration=f"Credit settlement {customer.name}"),
    )
    if not entries:
        return None
    return post_entries(
        voucher_type="RECEIPT",
        description=f"Credit payment from {customer.name}",
        entries=entries,
        actor_id=actor_id,
        reference_type="customer",
        reference_id=customer.id,
    )
