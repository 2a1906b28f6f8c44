from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer with an optional credit account.

    current_credit_cents is the outstanding receivable. credit_limit_cents is
    advisory: exceeding it logs a warning but never blocks a sale.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True, index=True)
    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    current_credit_cents = db.Column(db.Integer, nullable=False, default=0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "credit_limit_cents": self.credit_limit_cents,
            "current_credit_cents": self.current_credit_cents,
            "total_orders": self.total_orders,
            "total_spent_cents": self.total_spent_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
