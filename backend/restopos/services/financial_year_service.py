# Overview: Service-layer operations for financial years; create, repoint current, close with carry forward.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, StateConflictError, ValidationFailedError
from ..models import ChartOfAccount, FinancialYear
from ..models.accounting import (
    ACCOUNT_EXPENSE,
    ACCOUNT_INCOME,
    BALANCE_SHEET_TYPES,
    FY_ACTIVE,
    FY_CLOSED,
)
from ..time_utils import normalize_datetime, utcnow
from .accounting_service import get_account_by_code, get_current_financial_year, post_entries
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_in_transaction
from .selection_service import KEY_FINANCIAL_YEAR, point_current


def _get_year_locked(fy_id: int) -> FinancialYear:
    fy = lock_for_update(db.session.query(FinancialYear).filter_by(id=fy_id)).first()
    if fy is None:
        raise NotFoundError("Financial year not found", {"financial_year_id": fy_id})
    return fy


def _insert_year(name: str, start, end) -> FinancialYear:
    if start >= end:
        raise ValidationFailedError("Start date must be before end date")
    if db.session.query(FinancialYear.id).filter_by(name=name).first():
        raise ValidationFailedError("Financial year name already exists", {"name": name})
    overlap = (
        db.session.query(FinancialYear.id)
        .filter(FinancialYear.start_date <= end, FinancialYear.end_date >= start)
        .first()
    )
    if overlap:
        raise ValidationFailedError("Financial year overlaps with existing year")

    fy = FinancialYear(name=name, start_date=start, end_date=end, status=FY_ACTIVE)
    db.session.add(fy)
    db.session.flush()
    return fy


def create_financial_year(
    *,
    name: str,
    start_date,
    end_date,
    set_current: bool = False,
    actor_id: str | None = None,
) -> FinancialYear:
    if not name or not name.strip():
        raise ValidationFailedError("name is required")
    try:
        start = normalize_datetime(start_date)
        end = normalize_datetime(end_date)
    except ValueError:
        raise ValidationFailedError("Invalid start_date or end_date")
    if start is None or end is None:
        raise ValidationFailedError("start_date and end_date are required")

    def _op():
        fy = _insert_year(name.strip(), start, end)
        if set_current:
            point_current(KEY_FINANCIAL_YEAR, fy.id, actor_id)
        append_audit_event(
            event_type="FINANCIAL_YEAR_CREATED",
            event_category="ACCOUNTING",
            entity_type="financial_year",
            entity_id=fy.id,
            actor_id=actor_id,
            payload={"name": fy.name, "set_current": bool(set_current)},
        )
        return fy

    return run_in_transaction(_op)


def set_current_financial_year(fy_id: int, *, actor_id: str | None = None) -> FinancialYear:
    def _op():
        fy = _get_year_locked(fy_id)
        if fy.status == FY_CLOSED:
            raise StateConflictError("Cannot make a closed financial year current")
        point_current(KEY_FINANCIAL_YEAR, fy.id, actor_id)
        append_audit_event(
            event_type="FINANCIAL_YEAR_SET_CURRENT",
            event_category="ACCOUNTING",
            entity_type="financial_year",
            entity_id=fy.id,
            actor_id=actor_id,
        )
        return fy

    return run_in_transaction(_op)


def _post_closing_entry(fy: FinancialYear, actor_id: str):
    """
    Zero income and expense accounts into retained earnings with one JOURNAL
    voucher, so balances keep moving only through entries.
    """
    accounts = (
        db.session.query(ChartOfAccount)
        .filter(
            ChartOfAccount.account_type.in_([ACCOUNT_INCOME, ACCOUNT_EXPENSE]),
            ChartOfAccount.current_balance_cents != 0,
        )
        .order_by(ChartOfAccount.code.asc())
        .all()
    )
    if not accounts:
        return None

    code = current_app.config.get("LEDGER_ACCOUNT_CODES", {}).get("retained_earnings", "4200")
    retained = get_account_by_code(code)
    if retained is None or not retained.is_active:
        raise StateConflictError("Retained earnings account is not configured", {"code": code})

    entries = []
    net_profit = 0
    for account in accounts:
        balance = account.current_balance_cents
        if account.account_type == ACCOUNT_INCOME:
            net_profit += balance
            debit, credit = (balance, 0) if balance > 0 else (0, -balance)
        else:
            net_profit -= balance
            debit, credit = (0, balance) if balance > 0 else (-balance, 0)
        entries.append({"account_id": account.id, "debit_cents": debit, "credit_cents": credit})

    if net_profit > 0:
        entries.append({"account_id": retained.id, "debit_cents": 0, "credit_cents": net_profit})
    elif net_profit < 0:
        entries.append({"account_id": retained.id, "debit_cents": -net_profit, "credit_cents": 0})

    return post_entries(
        voucher_type="JOURNAL",
        description=f"Year-end closing {fy.name}",
        entries=entries,
        actor_id=actor_id,
        transaction_date=fy.end_date,
        reference_type="financial_year",
        reference_id=fy.id,
    )


def close_financial_year(fy_id: int, *, actor_id: str, carry_forward: bool = True) -> dict:
    """
    Close a year.

    With carry_forward the profit and loss accounts are closed into retained
    earnings, balance-sheet accounts take their closing balance as opening
    balance, and the following year is created and made current.
    """
    def _op():
        fy = _get_year_locked(fy_id)
        if fy.status == FY_CLOSED:
            raise StateConflictError("Financial year already closed")

        next_year = None
        closing = None
        if carry_forward:
            current = get_current_financial_year()
            if current is None or current.id != fy.id:
                # closing vouchers are always posted into the year being closed
                point_current(KEY_FINANCIAL_YEAR, fy.id, actor_id)
            closing = _post_closing_entry(fy, actor_id)

            for account in db.session.query(ChartOfAccount).filter(
                ChartOfAccount.account_type.in_(list(BALANCE_SHEET_TYPES))
            ):
                account.opening_balance_cents = account.current_balance_cents

            next_start = fy.end_date + timedelta(seconds=1)
            next_end = next_start + timedelta(days=365) - timedelta(seconds=1)
            next_year = _insert_year(f"FY {next_start.year}-{next_end.year}", next_start, next_end)
            point_current(KEY_FINANCIAL_YEAR, next_year.id, actor_id)
        else:
            current = get_current_financial_year()
            if current is not None and current.id == fy.id:
                point_current(KEY_FINANCIAL_YEAR, None, actor_id)

        fy.status = FY_CLOSED
        fy.closed_by = actor_id
        fy.closed_at = utcnow()

        append_audit_event(
            event_type="FINANCIAL_YEAR_CLOSED",
            event_category="ACCOUNTING",
            entity_type="financial_year",
            entity_id=fy.id,
            actor_id=actor_id,
            payload={
                "carry_forward": bool(carry_forward),
                "closing_voucher": closing.voucher_number if closing else None,
                "next_financial_year_id": next_year.id if next_year else None,
            },
        )
        return {
            "success": True,
            "closing_transaction_id": closing.id if closing else None,
            "next_financial_year_id": next_year.id if next_year else None,
        }

    return run_in_transaction(_op)


def get_financial_year(fy_id: int) -> FinancialYear:
    fy = db.session.get(FinancialYear, fy_id)
    if fy is None:
        raise NotFoundError("Financial year not found", {"financial_year_id": fy_id})
    return fy


def list_financial_years() -> list[FinancialYear]:
    return db.session.query(FinancialYear).order_by(FinancialYear.start_date.desc()).all()
