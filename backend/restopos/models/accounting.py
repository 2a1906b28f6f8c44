from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ACCOUNT_ASSET = "ASSET"
ACCOUNT_LIABILITY = "LIABILITY"
ACCOUNT_EQUITY = "EQUITY"
ACCOUNT_INCOME = "INCOME"
ACCOUNT_EXPENSE = "EXPENSE"

ACCOUNT_TYPES = (ACCOUNT_ASSET, ACCOUNT_LIABILITY, ACCOUNT_EQUITY, ACCOUNT_INCOME, ACCOUNT_EXPENSE)
DEBIT_NORMAL_TYPES = frozenset({ACCOUNT_ASSET, ACCOUNT_EXPENSE})
BALANCE_SHEET_TYPES = frozenset({ACCOUNT_ASSET, ACCOUNT_LIABILITY, ACCOUNT_EQUITY})

VOUCHER_TYPES = ("JOURNAL", "PAYMENT", "RECEIPT", "CONTRA", "SALES", "PURCHASE")

FY_ACTIVE = "ACTIVE"
FY_CLOSED = "CLOSED"


def signed_change(account_type: str, debit_cents: int, credit_cents: int) -> int:
    """Balance delta for an entry, following the account type's normal side."""
    if account_type in DEBIT_NORMAL_TYPES:
        return debit_cents - credit_cents
    return credit_cents - debit_cents


class FinancialYear(db.Model):
    """Accounting period. The current one is pointed to by current_selections."""
    __tablename__ = "financial_years"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=FY_ACTIVE, index=True)
    closed_by = db.Column(db.String(64), nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "status": self.status,
            "closed_at": to_utc_z(self.closed_at),
        }


class ChartOfAccount(db.Model):
    """
    Ledger account.

    current_balance_cents is mutated only by posting entries; it is expressed
    on the account's normal side (debit for ASSET/EXPENSE, credit otherwise).
    """
    __tablename__ = "chart_of_accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    account_type = db.Column(db.String(16), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("chart_of_accounts.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    current_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    parent = db.relationship("ChartOfAccount", remote_side=[id], backref="children")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in DEBIT_NORMAL_TYPES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "account_type": self.account_type,
            "parent_id": self.parent_id,
            "is_active": self.is_active,
            "opening_balance_cents": self.opening_balance_cents,
            "current_balance_cents": self.current_balance_cents,
        }


class AccountingTransaction(db.Model):
    """
    Voucher header.

    Invariant: sum(entries.debit_cents) == sum(entries.credit_cents) == total_cents.
    """
    __tablename__ = "accounting_transactions"
    __table_args__ = (
        db.UniqueConstraint("financial_year_id", "voucher_number", name="uq_acct_txn_year_voucher"),
        db.Index("ix_acct_txn_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    financial_year_id = db.Column(db.Integer, db.ForeignKey("financial_years.id"), nullable=False, index=True)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    voucher_number = db.Column(db.String(32), nullable=False)
    voucher_type = db.Column(db.String(16), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)
    total_cents = db.Column(db.Integer, nullable=False)
    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    financial_year = db.relationship("FinancialYear")
    entries = db.relationship("AccountingEntry", backref="transaction", lazy=True, order_by="AccountingEntry.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "financial_year_id": self.financial_year_id,
            "transaction_date": to_utc_z(self.transaction_date),
            "voucher_number": self.voucher_number,
            "voucher_type": self.voucher_type,
            "description": self.description,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "total_cents": self.total_cents,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class AccountingEntry(db.Model):
    """One debit or credit leg of a voucher."""
    __tablename__ = "accounting_entries"
    __table_args__ = (
        db.CheckConstraint("debit_cents >= 0 AND credit_cents >= 0", name="ck_acct_entries_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("accounting_transactions.id"), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("chart_of_accounts.id"), nullable=False, index=True)
    debit_cents = db.Column(db.Integer, nullable=False, default=0)
    credit_cents = db.Column(db.Integer, nullable=False, default=0)
    narration = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("ChartOfAccount")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "account_id": self.account_id,
            "debit_cents": self.debit_cents,
            "credit_cents": self.credit_cents,
            "narration": self.narration,
        }
