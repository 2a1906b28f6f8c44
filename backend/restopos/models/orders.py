from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


# Kitchen progression; COMPLETED/CANCELLED are reached through their own paths
KITCHEN_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
)


def _build_transitions() -> dict:
    table = {}
    for idx, status in enumerate(KITCHEN_FLOW):
        table[status] = frozenset(KITCHEN_FLOW[idx + 1:]) | {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
    table[OrderStatus.COMPLETED] = frozenset()
    table[OrderStatus.CANCELLED] = frozenset()
    return table


ORDER_TRANSITIONS = _build_transitions()


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ORDER_TRANSITIONS[OrderStatus(current)]


class OrderType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"


class ItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT_TO_KITCHEN = "SENT_TO_KITCHEN"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CREDIT = "CREDIT"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    QR = "QR"
    FONEPAY = "FONEPAY"
    CREDIT = "CREDIT"


class Order(db.Model):
    """
    Restaurant order.

    Totals invariant (all cents):
        grand_total_cents == subtotal_cents - discount_cents + tax_cents + service_charge_cents
    Only order_service.recalculate_totals writes the total columns.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_session_status", "session_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    order_type = db.Column(db.String(16), nullable=False, default=OrderType.DINE_IN.value)

    table_id = db.Column(db.Integer, db.ForeignKey("dining_tables.id"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    waiter_id = db.Column(db.String(64), nullable=True)
    cashier_id = db.Column(db.String(64), nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey("cashier_sessions.id"), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)
    manual_discount_cents = db.Column(db.Integer, nullable=True)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    service_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.UNPAID.value, index=True)
    remarks = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    table = db.relationship("DiningTable", foreign_keys=[table_id])
    customer = db.relationship("Customer")
    discount = db.relationship("Discount")
    session = db.relationship("CashierSession", backref=db.backref("orders", lazy="dynamic"))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    payments = db.relationship("Payment", backref="order", lazy=True, order_by="Payment.id")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "order_type": self.order_type,
            "table_id": self.table_id,
            "customer_id": self.customer_id,
            "waiter_id": self.waiter_id,
            "cashier_id": self.cashier_id,
            "session_id": self.session_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_id": self.discount_id,
            "manual_discount_cents": self.manual_discount_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "service_charge_cents": self.service_charge_cents,
            "grand_total_cents": self.grand_total_cents,
            "paid_cents": self.paid_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "remarks": self.remarks,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """Order line. Name and unit price are copied from the menu at add-time."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False)

    item_name = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ItemStatus.PENDING.value)
    kot_printed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "menu_item_id": self.menu_item_id,
            "item_name": self.item_name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "status": self.status,
            "kot_printed": self.kot_printed,
        }


class Payment(db.Model):
    """
    Tender recorded against an order, bound to the cashier session that took it.

    Credit settlements (customer paying down a balance) also land here with
    the settled order when one is given.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("cashier_sessions.id"), nullable=True, index=True)
    method = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    received_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "session_id": self.session_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "reference": self.reference,
            "notes": self.notes,
            "received_by": self.received_by,
            "created_at": to_utc_z(self.created_at),
        }
