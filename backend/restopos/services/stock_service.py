# Overview: Service-layer operations for ingredient stock; every change lands as a StockMovement.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import InsufficientStockError, NotFoundError, ValidationFailedError
from ..models import Ingredient, StockMovement, to_quantity, quantity_str
from ..models.inventory import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_PURCHASE,
    MOVEMENT_SALE,
    MOVEMENT_TRANSFER,
    MOVEMENT_WASTE,
)
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_in_transaction
from .money import parse_cents
"""
Stock ledger invariants (authoritative)

- Ingredient.current_stock is never negative.
- Every change to current_stock appends exactly one StockMovement with
  new_stock == previous_stock + quantity; movements are never updated or deleted.
- Opening stock is itself an ADJUSTMENT movement, so replaying all movements
  of an ingredient from zero reproduces current_stock exactly.
- Overselling follows STOCK_OVERSELL_POLICY:
    REJECT  raise InsufficientStockError, nothing is written
    CLAMP   floor at zero; quantity is the delta actually applied and
            requested_quantity keeps what was asked for
"""

POLICY_REJECT = "REJECT"
POLICY_CLAMP = "CLAMP"

MANUAL_MOVEMENT_TYPES = {MOVEMENT_ADJUSTMENT, MOVEMENT_WASTE, MOVEMENT_TRANSFER}


def _oversell_policy() -> str:
    policy = str(current_app.config.get("STOCK_OVERSELL_POLICY", POLICY_REJECT)).upper()
    if policy not in (POLICY_REJECT, POLICY_CLAMP):
        raise ValueError(f"unknown STOCK_OVERSELL_POLICY: {policy}")
    return policy


def _positive_quantity(value, field: str = "quantity") -> Decimal:
    try:
        qty = to_quantity(value)
    except ValueError:
        raise ValidationFailedError(f"{field} must be a number", {field: value})
    if qty <= 0:
        raise ValidationFailedError(f"{field} must be positive", {field: str(qty)})
    return qty


def get_ingredient_locked(ingredient_id: int) -> Ingredient:
    ingredient = lock_for_update(db.session.query(Ingredient).filter_by(id=ingredient_id)).first()
    if ingredient is None:
        raise NotFoundError("Ingredient not found", {"ingredient_id": ingredient_id})
    return ingredient


def _append_movement(
    ingredient: Ingredient,
    *,
    movement_type: str,
    delta: Decimal,
    actor_id: str,
    reference_type: str | None,
    reference_id,
    notes: str | None = None,
    requested: Decimal | None = None,
) -> StockMovement:
    previous = to_quantity(ingredient.current_stock)
    new_stock = previous + delta
    ingredient.current_stock = new_stock

    movement = StockMovement(
        ingredient_id=ingredient.id,
        movement_type=movement_type,
        quantity=delta,
        requested_quantity=requested,
        previous_stock=previous,
        new_stock=new_stock,
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        notes=notes,
        created_by=actor_id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def shortage_for(ingredient: Ingredient, quantity: Decimal) -> dict | None:
    available = to_quantity(ingredient.current_stock)
    if quantity <= available:
        return None
    return {
        "ingredient_id": ingredient.id,
        "ingredient_name": ingredient.name,
        "requested": quantity_str(quantity),
        "available": quantity_str(available),
    }


def apply_deduction(
    ingredient_id: int,
    quantity,
    *,
    actor_id: str,
    reference_type: str | None = None,
    reference_id=None,
    notes: str | None = None,
    movement_type: str = MOVEMENT_SALE,
) -> StockMovement:
    """Deduct inside the caller's transaction (order fulfilment composes this)."""
    qty = _positive_quantity(quantity)
    ingredient = get_ingredient_locked(ingredient_id)

    short = shortage_for(ingredient, qty)
    if short is None:
        return _append_movement(
            ingredient,
            movement_type=movement_type,
            delta=-qty,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )

    if _oversell_policy() == POLICY_REJECT:
        raise InsufficientStockError(
            f"Insufficient stock for {ingredient.name}",
            {"items": [short]},
        )

    available = to_quantity(ingredient.current_stock)
    current_app.logger.warning(
        "stock clamp: ingredient %s requested %s, available %s (ref %s:%s)",
        ingredient.id, qty, available, reference_type, reference_id,
    )
    return _append_movement(
        ingredient,
        movement_type=movement_type,
        delta=-available,
        actor_id=actor_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        requested=-qty,
    )


def apply_receipt(
    ingredient_id: int,
    quantity,
    *,
    actor_id: str,
    reference_type: str | None = None,
    reference_id=None,
    notes: str | None = None,
) -> StockMovement:
    """Receive inside the caller's transaction (purchase receiving composes this)."""
    qty = _positive_quantity(quantity)
    ingredient = get_ingredient_locked(ingredient_id)
    return _append_movement(
        ingredient,
        movement_type=MOVEMENT_PURCHASE,
        delta=qty,
        actor_id=actor_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )


def create_ingredient(
    *,
    name: str,
    unit: str = "unit",
    opening_stock=0,
    reorder_level=0,
    cost_per_unit_cents: int = 0,
    actor_id: str,
) -> Ingredient:
    """
    Create an ingredient. A non-zero opening stock is recorded as an
    ADJUSTMENT movement so audit replay from zero holds.
    """
    if not name or not name.strip():
        raise ValidationFailedError("name is required")
    try:
        opening = to_quantity(opening_stock)
        reorder = to_quantity(reorder_level)
    except ValueError:
        raise ValidationFailedError("opening_stock and reorder_level must be numbers")
    if opening < 0 or reorder < 0:
        raise ValidationFailedError("opening_stock and reorder_level cannot be negative")
    cost_per_unit = parse_cents(cost_per_unit_cents, "cost_per_unit_cents")

    def _op():
        if db.session.query(Ingredient.id).filter_by(name=name.strip()).first():
            raise ValidationFailedError("Ingredient name already exists", {"name": name})

        ingredient = Ingredient(
            name=name.strip(),
            unit=unit,
            current_stock=Decimal("0"),
            reorder_level=reorder,
            cost_per_unit_cents=cost_per_unit,
            is_active=True,
        )
        db.session.add(ingredient)
        db.session.flush()

        if opening > 0:
            _append_movement(
                ingredient,
                movement_type=MOVEMENT_ADJUSTMENT,
                delta=opening,
                actor_id=actor_id,
                reference_type="OPENING",
                reference_id=ingredient.id,
                notes="Opening stock",
            )
        return ingredient

    return run_in_transaction(_op)


def deduct(
    ingredient_id: int,
    quantity,
    *,
    reference_type: str | None = None,
    reference_id=None,
    actor_id: str,
    notes: str | None = None,
) -> StockMovement:
    """Deduct stock for a sale; one movement, policy-driven on shortage."""
    def _op():
        movement = apply_deduction(
            ingredient_id,
            quantity,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
        append_audit_event(
            event_type="STOCK_DEDUCTED",
            event_category="INVENTORY",
            entity_type="ingredient",
            entity_id=ingredient_id,
            actor_id=actor_id,
            payload={"movement_id": movement.id, "quantity": quantity_str(movement.quantity)},
        )
        return movement

    return run_in_transaction(_op)


def receive(
    ingredient_id: int,
    quantity,
    *,
    reference_type: str | None = None,
    reference_id=None,
    actor_id: str,
    notes: str | None = None,
) -> StockMovement:
    """Unbounded stock increase with one PURCHASE movement."""
    def _op():
        movement = apply_receipt(
            ingredient_id,
            quantity,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
        append_audit_event(
            event_type="STOCK_RECEIVED",
            event_category="INVENTORY",
            entity_type="ingredient",
            entity_id=ingredient_id,
            actor_id=actor_id,
            payload={"movement_id": movement.id, "quantity": quantity_str(movement.quantity)},
        )
        return movement

    return run_in_transaction(_op)


def adjust(
    ingredient_id: int,
    quantity,
    *,
    reason: str,
    actor_id: str,
    movement_type: str = MOVEMENT_ADJUSTMENT,
) -> StockMovement:
    """
    Manual correction by a signed quantity.

    WASTE and TRANSFER move stock out, so their quantity must be negative.
    A result below zero is rejected rather than clamped.
    """
    if movement_type not in MANUAL_MOVEMENT_TYPES:
        raise ValidationFailedError(
            f"movement_type must be one of: {', '.join(sorted(MANUAL_MOVEMENT_TYPES))}"
        )
    if not reason or not reason.strip():
        raise ValidationFailedError("reason is required")
    try:
        delta = to_quantity(quantity)
    except ValueError:
        raise ValidationFailedError("quantity must be a number", {"quantity": quantity})
    if delta == 0:
        raise ValidationFailedError("quantity cannot be zero")
    if movement_type in (MOVEMENT_WASTE, MOVEMENT_TRANSFER) and delta > 0:
        raise ValidationFailedError(f"{movement_type} quantity must be negative")

    def _op():
        ingredient = get_ingredient_locked(ingredient_id)
        if to_quantity(ingredient.current_stock) + delta < 0:
            raise ValidationFailedError(
                "Adjustment would make stock negative",
                {"available": quantity_str(ingredient.current_stock), "quantity": quantity_str(delta)},
            )
        movement = _append_movement(
            ingredient,
            movement_type=movement_type,
            delta=delta,
            actor_id=actor_id,
            reference_type="MANUAL",
            reference_id=None,
            notes=reason.strip(),
        )
        append_audit_event(
            event_type="STOCK_ADJUSTED",
            event_category="INVENTORY",
            entity_type="ingredient",
            entity_id=ingredient_id,
            actor_id=actor_id,
            note=reason.strip(),
            payload={"movement_id": movement.id, "movement_type": movement_type, "quantity": quantity_str(delta)},
        )
        return movement

    return run_in_transaction(_op)


def get_ingredient(ingredient_id: int) -> Ingredient:
    ingredient = db.session.get(Ingredient, ingredient_id)
    if ingredient is None:
        raise NotFoundError("Ingredient not found", {"ingredient_id": ingredient_id})
    return ingredient


def list_ingredients(*, include_inactive: bool = False) -> list[Ingredient]:
    query = db.session.query(Ingredient)
    if not include_inactive:
        query = query.filter(Ingredient.is_active.is_(True))
    return query.order_by(Ingredient.name.asc()).all()


def list_movements(ingredient_id: int) -> list[StockMovement]:
    """All movements of an ingredient in creation order."""
    get_ingredient(ingredient_id)
    return (
        db.session.query(StockMovement)
        .filter_by(ingredient_id=ingredient_id)
        .order_by(StockMovement.id.asc())
        .all()
    )


def replay_stock(ingredient_id: int) -> dict:
    """
    Rebuild stock from zero by summing movements and compare with the stored value.

    Also checks each row's previous_stock chains from the prior row's new_stock.
    """
    ingredient = get_ingredient(ingredient_id)
    running = Decimal("0.000")
    chain_ok = True
    for movement in list_movements(ingredient_id):
        if to_quantity(movement.previous_stock) != running:
            chain_ok = False
        running = to_quantity(running + to_quantity(movement.quantity))
        if to_quantity(movement.new_stock) != running:
            chain_ok = False

    current = to_quantity(ingredient.current_stock)
    return {
        "ingredient_id": ingredient.id,
        "replayed": quantity_str(running),
        "current": quantity_str(current),
        "consistent": chain_ok and running == current,
    }


def list_low_stock() -> list[Ingredient]:
    """Active ingredients at or below their reorder level."""
    return (
        db.session.query(Ingredient)
        .filter(
            Ingredient.is_active.is_(True),
            Ingredient.current_stock <= Ingredient.reorder_level,
        )
        .order_by(Ingredient.name.asc())
        .all()
    )
