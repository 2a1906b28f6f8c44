from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z
from .types import QUANTITY, quantity_str


MOVEMENT_PURCHASE = "PURCHASE"
MOVEMENT_SALE = "SALE"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_WASTE = "WASTE"
MOVEMENT_TRANSFER = "TRANSFER"

MOVEMENT_TYPES = {
    MOVEMENT_PURCHASE,
    MOVEMENT_SALE,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_WASTE,
    MOVEMENT_TRANSFER,
}

PURCHASE_DRAFT = "DRAFT"
PURCHASE_RECEIVED = "RECEIVED"
PURCHASE_CANCELLED = "CANCELLED"


class Ingredient(db.Model):
    """
    Finished-goods stock item consumed by recipes.

    current_stock is only written by the stock service and is never negative.
    version_id gives optimistic locking: two concurrent deductions cannot both
    commit against the same previous value.
    """
    __tablename__ = "ingredients"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_ingredients_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    unit = db.Column(db.String(16), nullable=False, default="unit")
    current_stock = db.Column(QUANTITY, nullable=False, default=0)
    reorder_level = db.Column(QUANTITY, nullable=False, default=0)
    cost_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Ingredient id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "current_stock": quantity_str(self.current_stock),
            "reorder_level": quantity_str(self.reorder_level),
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Immutable stock audit row.

    Row invariant: new_stock == previous_stock + quantity.
    requested_quantity is set only when a clamped deduction applied less than
    was asked for.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(QUANTITY, nullable=False)
    requested_quantity = db.Column(QUANTITY, nullable=True)
    previous_stock = db.Column(QUANTITY, nullable=False)
    new_stock = db.Column(QUANTITY, nullable=False)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ingredient = db.relationship("Ingredient", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "movement_type": self.movement_type,
            "quantity": quantity_str(self.quantity),
            "requested_quantity": quantity_str(self.requested_quantity),
            "previous_stock": quantity_str(self.previous_stock),
            "new_stock": quantity_str(self.new_stock),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(StockMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise RuntimeError("stock movements are append-only")


@event.listens_for(StockMovement, "before_delete")
def _reject_movement_delete(mapper, connection, target):
    raise RuntimeError("stock movements are append-only")


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "is_active": self.is_active}


class Purchase(db.Model):
    """
    Supplier invoice header.

    LIFECYCLE: DRAFT -> RECEIVED (stock-affecting, terminal, immutable)
               DRAFT -> CANCELLED (terminal, no stock effect)
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_status_date", "status", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    invoice_no = db.Column(db.String(64), nullable=False)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    net_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=PURCHASE_DRAFT)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), nullable=False)
    received_by = db.Column(db.String(64), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.String(64), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier")
    items = db.relationship(
        "PurchaseItem",
        backref="purchase",
        lazy=True,
        order_by="PurchaseItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "invoice_no": self.invoice_no,
            "purchase_date": to_utc_z(self.purchase_date),
            "total_cents": self.total_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "net_cents": self.net_cents,
            "status": self.status,
            "notes": self.notes,
            "created_by": self.created_by,
            "received_by": self.received_by,
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = db.Column(QUANTITY, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ingredient = db.relationship("Ingredient")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "quantity": quantity_str(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
