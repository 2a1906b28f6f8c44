from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .types import QUANTITY, quantity_str


TABLE_AVAILABLE = "AVAILABLE"
TABLE_OCCUPIED = "OCCUPIED"
TABLE_RESERVED = "RESERVED"
TABLE_MAINTENANCE = "MAINTENANCE"

DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FLAT = "FLAT"

APPLICABLE_ALL = "ALL"


class MenuItem(db.Model):
    """Sellable dish. Price is read at add-time and copied onto the order item."""
    __tablename__ = "menu_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    recipe_lines = db.relationship("RecipeLine", backref="menu_item", lazy=True, order_by="RecipeLine.id")

    def __repr__(self) -> str:
        return f"<MenuItem id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RecipeLine(db.Model):
    """Ingredient quantity consumed by ONE unit of a menu item."""
    __tablename__ = "recipe_lines"
    __table_args__ = (
        db.UniqueConstraint("menu_item_id", "ingredient_id", name="uq_recipe_lines_item_ingredient"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = db.Column(QUANTITY, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ingredient = db.relationship("Ingredient")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_item_id": self.menu_item_id,
            "ingredient_id": self.ingredient_id,
            "quantity": quantity_str(self.quantity),
        }


class Discount(db.Model):
    """
    PERCENTAGE discounts use percent_bps (1000 = 10%) capped by
    max_discount_cents; FLAT discounts use amount_cents uncapped.
    """
    __tablename__ = "discounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(64), nullable=True, unique=True, index=True)
    discount_type = db.Column(db.String(16), nullable=False)
    percent_bps = db.Column(db.Integer, nullable=True)
    amount_cents = db.Column(db.Integer, nullable=True)
    max_discount_cents = db.Column(db.Integer, nullable=True)
    min_order_cents = db.Column(db.Integer, nullable=True)
    valid_from = db.Column(db.DateTime(timezone=True), nullable=True)
    valid_to = db.Column(db.DateTime(timezone=True), nullable=True)
    usage_limit = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)
    applicable_to = db.Column(db.String(16), nullable=False, default=APPLICABLE_ALL)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "discount_type": self.discount_type,
            "percent_bps": self.percent_bps,
            "amount_cents": self.amount_cents,
            "max_discount_cents": self.max_discount_cents,
            "min_order_cents": self.min_order_cents,
            "valid_from": to_utc_z(self.valid_from),
            "valid_to": to_utc_z(self.valid_to),
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "applicable_to": self.applicable_to,
            "is_active": self.is_active,
        }


class TaxSetting(db.Model):
    """Tax rate record; the active one is chosen through current_selections."""
    __tablename__ = "tax_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    rate_bps = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "rate_bps": self.rate_bps}


class DiningTable(db.Model):
    __tablename__ = "dining_tables"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    table_number = db.Column(db.String(32), nullable=False, unique=True)
    capacity = db.Column(db.Integer, nullable=False, default=4)
    status = db.Column(db.String(16), nullable=False, default=TABLE_AVAILABLE, index=True)
    # Plain integer pointer; orders.table_id already references this table
    current_order_id = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_number": self.table_number,
            "capacity": self.capacity,
            "status": self.status,
            "current_order_id": self.current_order_id,
        }
