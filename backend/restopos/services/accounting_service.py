# Overview: Service-layer operations for the general ledger; chart of accounts, voucher posting and statements.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundError, StateConflictError, ValidationFailedError
from ..models import (
    AccountingEntry,
    AccountingTransaction,
    ChartOfAccount,
    FinancialYear,
    Order,
    OrderStatus,
    Purchase,
)
from ..models.accounting import (
    ACCOUNT_ASSET,
    ACCOUNT_EQUITY,
    ACCOUNT_EXPENSE,
    ACCOUNT_INCOME,
    ACCOUNT_LIABILITY,
    ACCOUNT_TYPES,
    FY_ACTIVE,
    VOUCHER_TYPES,
    signed_change,
)
from ..models.inventory import PURCHASE_RECEIVED
from ..time_utils import normalize_datetime, to_utc_z, utcnow
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_in_transaction
from .money import parse_cents
from .order_totals import apply_bps
from .selection_service import KEY_FINANCIAL_YEAR, get_current_id
from .sequence_service import format_voucher_number, next_sequence
"""
General ledger invariants (authoritative)

- Every committed voucher balances: sum(debit_cents) == sum(credit_cents).
  Money is integer cents, so the 0.01 tolerance is exact equality.
- Each entry has exactly one non-zero side, and neither side is negative.
- ChartOfAccount.current_balance_cents changes only here, by
  signed_change(account_type, debit, credit).
- Voucher numbers are {TYPE3}-{seq:05d}, monotonic per (financial year, voucher type).
- Statements (trial balance, P&L, balance sheet) are read-only derivations.
"""


DEFAULT_CHART = (
    ("1000", "Current Assets", ACCOUNT_ASSET, None),
    ("1100", "Cash in Hand", ACCOUNT_ASSET, "1000"),
    ("1101", "Cash at Bank", ACCOUNT_ASSET, "1000"),
    ("1200", "Accounts Receivable", ACCOUNT_ASSET, "1000"),
    ("1300", "Inventory", ACCOUNT_ASSET, "1000"),
    ("2000", "Fixed Assets", ACCOUNT_ASSET, None),
    ("2100", "Kitchen Equipment", ACCOUNT_ASSET, "2000"),
    ("2200", "Furniture & Fixtures", ACCOUNT_ASSET, "2000"),
    ("3000", "Current Liabilities", ACCOUNT_LIABILITY, None),
    ("3100", "Accounts Payable", ACCOUNT_LIABILITY, "3000"),
    ("3200", "Salaries Payable", ACCOUNT_LIABILITY, "3000"),
    ("3300", "Taxes Payable", ACCOUNT_LIABILITY, "3000"),
    ("4000", "Owner's Equity", ACCOUNT_EQUITY, None),
    ("4100", "Capital", ACCOUNT_EQUITY, "4000"),
    ("4200", "Retained Earnings", ACCOUNT_EQUITY, "4000"),
    ("5000", "Revenue", ACCOUNT_INCOME, None),
    ("5100", "Food Sales", ACCOUNT_INCOME, "5000"),
    ("5200", "Beverage Sales", ACCOUNT_INCOME, "5000"),
    ("5300", "Service Charges", ACCOUNT_INCOME, "5000"),
    ("6000", "Operating Expenses", ACCOUNT_EXPENSE, None),
    ("6100", "Cost of Goods Sold", ACCOUNT_EXPENSE, "6000"),
    ("6200", "Salaries & Wages", ACCOUNT_EXPENSE, "6000"),
    ("6300", "Rent Expense", ACCOUNT_EXPENSE, "6000"),
    ("6400", "Utilities Expense", ACCOUNT_EXPENSE, "6000"),
    ("6500", "Marketing Expense", ACCOUNT_EXPENSE, "6000"),
)

# Display-only composition of revenue and cost of goods sold in the P&L
REVENUE_SPLIT_BPS = (("Food Sales", 8500), ("Beverage Sales", 1200), ("Service Charges", 300))
COGS_SPLIT_BPS = (("Food Purchases", 7000), ("Beverage Purchases", 2500), ("Packaging Materials", 500))


# ---------------------------------------------------------------------------
# Financial year lookup
# ---------------------------------------------------------------------------

def get_current_financial_year() -> FinancialYear | None:
    fy_id = get_current_id(KEY_FINANCIAL_YEAR)
    if fy_id is None:
        return None
    return db.session.get(FinancialYear, fy_id)


def require_current_financial_year() -> FinancialYear:
    fy = get_current_financial_year()
    if fy is None or fy.status != FY_ACTIVE:
        raise StateConflictError("No active financial year found")
    return fy


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------

def get_account(account_id: int) -> ChartOfAccount:
    account = db.session.get(ChartOfAccount, account_id)
    if account is None:
        raise NotFoundError("Account not found", {"account_id": account_id})
    return account


def get_account_by_code(code: str) -> ChartOfAccount | None:
    return db.session.query(ChartOfAccount).filter_by(code=code).first()


def _insert_account(code: str, name: str, account_type: str, parent_id: int | None) -> ChartOfAccount:
    account = ChartOfAccount(
        code=code,
        name=name,
        account_type=account_type,
        parent_id=parent_id,
        is_active=True,
        opening_balance_cents=0,
        current_balance_cents=0,
    )
    db.session.add(account)
    db.session.flush()
    return account


def create_account(
    *,
    code: str,
    name: str,
    account_type: str,
    parent_id: int | None = None,
    actor_id: str | None = None,
) -> ChartOfAccount:
    """New accounts start at zero; balances move only through vouchers."""
    code = (code or "").strip()
    name = (name or "").strip()
    account_type = (account_type or "").upper()
    if not code or not name:
        raise ValidationFailedError("code and name are required")
    if account_type not in ACCOUNT_TYPES:
        raise ValidationFailedError(f"account_type must be one of: {', '.join(ACCOUNT_TYPES)}")

    def _op():
        if get_account_by_code(code):
            raise ValidationFailedError("Account code already exists", {"code": code})
        if parent_id is not None:
            parent = get_account(parent_id)
            if parent.account_type != account_type:
                raise ValidationFailedError("Parent account must have the same type")
        account = _insert_account(code, name, account_type, parent_id)
        append_audit_event(
            event_type="ACCOUNT_CREATED",
            event_category="ACCOUNTING",
            entity_type="account",
            entity_id=account.id,
            actor_id=actor_id,
            payload={"code": code, "account_type": account_type},
        )
        return account

    return run_in_transaction(_op)


def initialize_default_accounts(*, actor_id: str | None = None) -> int:
    """Seed the restaurant chart. Refuses to run once any account exists."""
    def _op():
        if db.session.query(ChartOfAccount.id).first():
            raise StateConflictError("Chart of accounts already initialized")
        by_code = {}
        for code, name, account_type, parent_code in DEFAULT_CHART:
            parent = by_code.get(parent_code)
            by_code[code] = _insert_account(code, name, account_type, parent.id if parent else None)
        append_audit_event(
            event_type="CHART_INITIALIZED",
            event_category="ACCOUNTING",
            entity_type="chart_of_accounts",
            entity_id=0,
            actor_id=actor_id,
            payload={"created": len(by_code)},
        )
        return len(by_code)

    return run_in_transaction(_op)


def deactivate_account(account_id: int, *, actor_id: str | None = None) -> ChartOfAccount:
    """Soft delete; accounts with entries or child accounts stay active."""
    def _op():
        account = lock_for_update(db.session.query(ChartOfAccount).filter_by(id=account_id)).first()
        if account is None:
            raise NotFoundError("Account not found", {"account_id": account_id})
        if db.session.query(AccountingEntry.id).filter_by(account_id=account_id).first():
            raise StateConflictError("Cannot deactivate account with transactions")
        if db.session.query(ChartOfAccount.id).filter_by(parent_id=account_id, is_active=True).first():
            raise StateConflictError("Cannot deactivate account with child accounts")
        account.is_active = False
        append_audit_event(
            event_type="ACCOUNT_DEACTIVATED",
            event_category="ACCOUNTING",
            entity_type="account",
            entity_id=account.id,
            actor_id=actor_id,
        )
        return account

    return run_in_transaction(_op)


def list_accounts(*, include_inactive: bool = False) -> list[ChartOfAccount]:
    query = db.session.query(ChartOfAccount)
    if not include_inactive:
        query = query.filter(ChartOfAccount.is_active.is_(True))
    return query.order_by(ChartOfAccount.code.asc()).all()


# ---------------------------------------------------------------------------
# Posting
# ---------------------------------------------------------------------------

def _validate_entries(entries: list[dict]) -> list[dict]:
    if not entries:
        raise ValidationFailedError("At least one entry is required")

    cleaned = []
    for idx, raw in enumerate(entries):
        try:
            account_id = int(raw["account_id"])
        except (KeyError, TypeError, ValueError):
            raise ValidationFailedError("Invalid entry", {"index": idx})
        try:
            debit = parse_cents(raw.get("debit_cents"), "debit_cents", default=0)
            credit = parse_cents(raw.get("credit_cents"), "credit_cents", default=0)
        except ValidationFailedError as exc:
            raise ValidationFailedError(exc.message, {"index": idx, **exc.details})
        if (debit == 0) == (credit == 0):
            raise ValidationFailedError("Entry must have exactly one of debit or credit", {"index": idx})
        cleaned.append({
            "account_id": account_id,
            "debit_cents": debit,
            "credit_cents": credit,
            "narration": raw.get("narration"),
        })

    total_debit = sum(e["debit_cents"] for e in cleaned)
    total_credit = sum(e["credit_cents"] for e in cleaned)
    if total_debit != total_credit:
        raise ValidationFailedError(
            "Debits must equal credits",
            {"total_debit_cents": total_debit, "total_credit_cents": total_credit},
        )
    return cleaned


def post_entries(
    *,
    voucher_type: str,
    description: str,
    entries: list[dict],
    actor_id: str,
    transaction_date=None,
    reference_type: str | None = None,
    reference_id=None,
) -> AccountingTransaction:
    """
    Post a balanced voucher inside the caller's transaction.

    Validates everything before the first write; balances move in account-id
    order so concurrent posters lock accounts in the same sequence.
    """
    voucher_type = (voucher_type or "").upper()
    if voucher_type not in VOUCHER_TYPES:
        raise ValidationFailedError(f"voucher_type must be one of: {', '.join(VOUCHER_TYPES)}")
    if not description or not str(description).strip():
        raise ValidationFailedError("description is required")
    try:
        txn_date = normalize_datetime(transaction_date) or utcnow()
    except ValueError:
        raise ValidationFailedError("Invalid transaction_date")

    cleaned = _validate_entries(entries)
    fy = require_current_financial_year()

    account_ids = sorted({e["account_id"] for e in cleaned})
    accounts = {
        a.id: a
        for a in lock_for_update(
            db.session.query(ChartOfAccount).filter(ChartOfAccount.id.in_(account_ids))
        ).all()
    }
    for account_id in account_ids:
        account = accounts.get(account_id)
        if account is None:
            raise NotFoundError("Account not found", {"account_id": account_id})
        if not account.is_active:
            raise ValidationFailedError("Account is inactive", {"account_id": account_id})

    seq = next_sequence(scope=f"FY{fy.id}", document_type=voucher_type)
    total = sum(e["debit_cents"] for e in cleaned)
    txn = AccountingTransaction(
        financial_year_id=fy.id,
        transaction_date=txn_date,
        voucher_number=format_voucher_number(voucher_type, seq),
        voucher_type=voucher_type,
        description=str(description).strip(),
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        total_cents=total,
        created_by=actor_id,
    )
    db.session.add(txn)
    db.session.flush()

    for e in cleaned:
        db.session.add(AccountingEntry(
            transaction_id=txn.id,
            account_id=e["account_id"],
            debit_cents=e["debit_cents"],
            credit_cents=e["credit_cents"],
            narration=e["narration"],
        ))

    changes: dict[int, int] = {}
    for e in cleaned:
        account = accounts[e["account_id"]]
        changes[account.id] = changes.get(account.id, 0) + signed_change(
            account.account_type, e["debit_cents"], e["credit_cents"]
        )
    for account_id in account_ids:
        accounts[account_id].current_balance_cents = (
            accounts[account_id].current_balance_cents or 0
        ) + changes[account_id]

    db.session.flush()
    append_audit_event(
        event_type="VOUCHER_POSTED",
        event_category="ACCOUNTING",
        entity_type="accounting_transaction",
        entity_id=txn.id,
        actor_id=actor_id,
        occurred_at=txn_date,
        payload={"voucher_number": txn.voucher_number, "total_cents": total},
    )
    return txn


def post_transaction(
    *,
    voucher_type: str,
    description: str,
    entries: list[dict],
    actor_id: str,
    transaction_date=None,
    reference_type: str | None = None,
    reference_id=None,
) -> AccountingTransaction:
    """Post a manual voucher (journal, payment, receipt, contra, ...)."""
    return run_in_transaction(lambda: post_entries(
        voucher_type=voucher_type,
        description=description,
        entries=entries,
        actor_id=actor_id,
        transaction_date=transaction_date,
        reference_type=reference_type,
        reference_id=reference_id,
    ))


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def get_account_balances() -> list[dict]:
    return [
        {
            "id": a.id,
            "code": a.code,
            "name": a.name,
            "account_type": a.account_type,
            "balance_cents": a.current_balance_cents,
        }
        for a in list_accounts()
    ]


def get_ledger_entries(
    account_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict]:
    """
    Entries of one account ordered by (transaction date, transaction id, entry id).

    The running balance follows the account's normal side and starts from the
    sum of entries dated before ``start``.
    """
    account = get_account(account_id)

    base = (
        db.session.query(AccountingEntry, AccountingTransaction)
        .join(AccountingTransaction, AccountingEntry.transaction_id == AccountingTransaction.id)
        .filter(AccountingEntry.account_id == account_id)
    )

    balance = 0
    if start is not None:
        prior = base.filter(AccountingTransaction.transaction_date < start).with_entities(
            func.coalesce(func.sum(AccountingEntry.debit_cents), 0),
            func.coalesce(func.sum(AccountingEntry.credit_cents), 0),
        ).one()
        balance = signed_change(account.account_type, int(prior[0]), int(prior[1]))
        base = base.filter(AccountingTransaction.transaction_date >= start)
    if end is not None:
        base = base.filter(AccountingTransaction.transaction_date <= end)

    rows = base.order_by(
        AccountingTransaction.transaction_date.asc(),
        AccountingTransaction.id.asc(),
        AccountingEntry.id.asc(),
    ).all()

    result = []
    for entry, txn in rows:
        balance += signed_change(account.account_type, entry.debit_cents, entry.credit_cents)
        result.append({
            "id": entry.id,
            "date": to_utc_z(txn.transaction_date),
            "voucher_number": txn.voucher_number,
            "voucher_type": txn.voucher_type,
            "particulars": txn.description,
            "narration": entry.narration,
            "debit_cents": entry.debit_cents,
            "credit_cents": entry.credit_cents,
            "balance_cents": balance,
        })
    return result


def get_transaction_detail(transaction_id: int) -> dict:
    txn = db.session.get(AccountingTransaction, transaction_id)
    if txn is None:
        raise NotFoundError("Transaction not found", {"transaction_id": transaction_id})
    return _transaction_view(txn)


def _transaction_view(txn: AccountingTransaction) -> dict:
    data = txn.to_dict()
    data["entries"] = [
        {
            **e.to_dict(),
            "account_code": e.account.code if e.account else None,
            "account_name": e.account.name if e.account else None,
        }
        for e in txn.entries
    ]
    return data


def get_recent_transactions(limit: int = 10) -> list[dict]:
    rows = (
        db.session.query(AccountingTransaction)
        .order_by(AccountingTransaction.id.desc())
        .limit(max(1, min(int(limit), 500)))
        .all()
    )
    return [_transaction_view(t) for t in rows]


def get_trial_balance() -> dict:
    """
    One line per active account with its balance on the natural column.

    A balance that has gone against the account's normal side lands on the
    opposite column, so totals stay equal whenever the ledger balances.
    """
    sections = {t: [] for t in ACCOUNT_TYPES}
    total_debit = 0
    total_credit = 0

    for account in list_accounts():
        balance = account.current_balance_cents or 0
        if account.is_debit_normal:
            debit, credit = (balance, 0) if balance >= 0 else (0, -balance)
        else:
            debit, credit = (0, balance) if balance >= 0 else (-balance, 0)
        total_debit += debit
        total_credit += credit
        sections[account.account_type].append({
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "debit_cents": debit,
            "credit_cents": credit,
        })

    return {
        "assets": sections[ACCOUNT_ASSET],
        "liabilities": sections[ACCOUNT_LIABILITY],
        "equity": sections[ACCOUNT_EQUITY],
        "income": sections[ACCOUNT_INCOME],
        "expenses": sections[ACCOUNT_EXPENSE],
        "total_debit_cents": total_debit,
        "total_credit_cents": total_credit,
        "is_balanced": total_debit == total_credit,
    }


def _split(total: int, ratios) -> list[dict]:
    items = []
    allocated = 0
    for idx, (name, bps) in enumerate(ratios):
        amount = total - allocated if idx == len(ratios) - 1 else apply_bps(total, bps)
        allocated += amount
        items.append({"name": name, "amount_cents": amount})
    return items


def get_profit_loss(start: datetime, end: datetime) -> dict:
    """
    Profit and loss for a period.

    Revenue is the grand total of non-cancelled orders created in the period;
    cost of goods sold is the net amount of purchases received in it. Both are
    split by fixed display ratios. Operating expenses come from expense
    account balances other than cost of goods sold.
    """
    if start is None or end is None:
        raise ValidationFailedError("start and end are required")
    if start > end:
        raise ValidationFailedError("start must be before end")

    revenue_total = int(
        db.session.query(func.coalesce(func.sum(Order.grand_total_cents), 0))
        .filter(
            Order.created_at >= start,
            Order.created_at <= end,
            Order.status != OrderStatus.CANCELLED.value,
        )
        .scalar()
        or 0
    )
    cogs_total = int(
        db.session.query(func.coalesce(func.sum(Purchase.net_cents), 0))
        .filter(
            Purchase.purchase_date >= start,
            Purchase.purchase_date <= end,
            Purchase.status == PURCHASE_RECEIVED,
        )
        .scalar()
        or 0
    )

    cogs_code = current_app.config.get("LEDGER_ACCOUNT_CODES", {}).get("cogs")
    opex_accounts = [
        a for a in list_accounts()
        if a.account_type == ACCOUNT_EXPENSE and a.code != cogs_code
    ]
    opex_items = [{"name": a.name, "amount_cents": a.current_balance_cents or 0} for a in opex_accounts]
    opex_total = sum(i["amount_cents"] for i in opex_items)

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "revenue": {"items": _split(revenue_total, REVENUE_SPLIT_BPS), "total_cents": revenue_total},
        "cost_of_goods_sold": {"items": _split(cogs_total, COGS_SPLIT_BPS), "total_cents": cogs_total},
        "gross_profit_cents": revenue_total - cogs_total,
        "operating_expenses": {"items": opex_items, "total_cents": opex_total},
        "net_profit_cents": revenue_total - cogs_total - opex_total,
    }


def get_balance_sheet() -> dict:
    """
    Balance sheet from account balances.

    Income and expense balances not yet closed into retained earnings are
    shown as current period profit, so assets equal liabilities plus equity.
    """
    accounts = list_accounts()

    def _fmt(accs):
        return [{"id": a.id, "code": a.code, "name": a.name, "amount_cents": a.current_balance_cents or 0} for a in accs]

    def _sum(accs):
        return sum(a.current_balance_cents or 0 for a in accs)

    assets = [a for a in accounts if a.account_type == ACCOUNT_ASSET]
    liabilities = [a for a in accounts if a.account_type == ACCOUNT_LIABILITY]
    equity = [a for a in accounts if a.account_type == ACCOUNT_EQUITY]
    income = [a for a in accounts if a.account_type == ACCOUNT_INCOME]
    expenses = [a for a in accounts if a.account_type == ACCOUNT_EXPENSE]

    current_assets = [a for a in assets if a.code.startswith("1")]
    fixed_assets = [a for a in assets if a.code.startswith("2")]
    other_assets = [a for a in assets if a not in current_assets and a not in fixed_assets]
    current_liabilities = [a for a in liabilities if a.code.startswith("3")]
    long_term_liabilities = [a for a in liabilities if a not in current_liabilities]

    period_profit = _sum(income) - _sum(expenses)
    total_assets = _sum(assets)
    total_liabilities = _sum(liabilities)
    total_equity = _sum(equity) + period_profit

    return {
        "assets": {
            "current": _fmt(current_assets),
            "fixed": _fmt(fixed_assets),
            "other": _fmt(other_assets),
            "total_current_cents": _sum(current_assets),
            "total_fixed_cents": _sum(fixed_assets),
            "total_cents": total_assets,
        },
        "liabilities": {
            "current": _fmt(current_liabilities),
            "long_term": _fmt(long_term_liabilities),
            "total_current_cents": _sum(current_liabilities),
            "total_long_term_cents": _sum(long_term_liabilities),
            "total_cents": total_liabilities,
        },
        "equity": _fmt(equity),
        "current_period_profit_cents": period_profit,
        "total_equity_cents": total_equity,
        "is_balanced": total_assets == total_liabilities + total_equity,
    }
