from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SESSION_OPEN = "OPEN"
SESSION_CLOSED = "CLOSED"


class CashierSession(db.Model):
    """
    Cash drawer shift for one cashier.

    LIFECYCLE: OPEN -> CLOSED (terminal).
    Per-method accumulators are maintained by the payment path; closing
    computes expected_cash = opening_cash + total_cash_sales and records
    cash_variance = closing_cash - expected_cash without blocking.
    """
    __tablename__ = "cashier_sessions"
    __table_args__ = (
        db.Index("ix_cashier_sessions_cashier_status", "cashier_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=SESSION_OPEN, index=True)

    opening_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cash_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_card_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_qr_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_credit_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)

    expected_cash_cents = db.Column(db.Integer, nullable=True)
    closing_cash_cents = db.Column(db.Integer, nullable=True)
    cash_variance_cents = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "status": self.status,
            "opening_cash_cents": self.opening_cash_cents,
            "total_cash_sales_cents": self.total_cash_sales_cents,
            "total_card_sales_cents": self.total_card_sales_cents,
            "total_qr_sales_cents": self.total_qr_sales_cents,
            "total_credit_sales_cents": self.total_credit_sales_cents,
            "total_orders": self.total_orders,
            "expected_cash_cents": self.expected_cash_cents,
            "closing_cash_cents": self.closing_cash_cents,
            "cash_variance_cents": self.cash_variance_cents,
            "notes": self.notes,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
        }
