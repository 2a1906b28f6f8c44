# Overview: Resolves a menu item to the ingredient quantities it consumes.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import NotFoundError
from ..models import MenuItem, RecipeLine, to_quantity


def resolve(menu_item_id: int, multiplier) -> list[dict]:
    """
    Scale the static recipe of a menu item by an order-line quantity.

    Pure read: returns ``[{"ingredient_id", "quantity"}]`` in recipe order.
    A menu item without recipe lines resolves to an empty list.
    """
    item = db.session.get(MenuItem, menu_item_id)
    if item is None:
        raise NotFoundError("Menu item not found", {"menu_item_id": menu_item_id})

    factor = to_quantity(multiplier)
    lines = (
        db.session.query(RecipeLine)
        .filter_by(menu_item_id=menu_item_id)
        .order_by(RecipeLine.id.asc())
        .all()
    )
    return [
        {"ingredient_id": line.ingredient_id, "quantity": to_quantity(Decimal(line.quantity) * factor)}
        for line in lines
    ]
