# Overview: Service-layer operations for supplier purchases; draft, receive into stock, cancel.

"""
Purchase Receiving Service

LIFECYCLE:
1. DRAFT: created with its lines; may be cancelled or deleted
2. RECEIVED: every line received into stock (one PURCHASE movement per line)
3. CANCELLED: terminal, no stock effect

IMMUTABLE: Once RECEIVED, a purchase cannot be cancelled or deleted.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..errors import NotFoundError, StateConflictError, ValidationFailedError
from ..models import Ingredient, Purchase, PurchaseItem, Supplier, to_quantity
from ..models.inventory import PURCHASE_CANCELLED, PURCHASE_DRAFT, PURCHASE_RECEIVED
from ..time_utils import normalize_datetime, utcnow
from . import posting_service
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_in_transaction
from .money import parse_cents
from .stock_service import apply_receipt


def _get_purchase_locked(purchase_id: int) -> Purchase:
    purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
    if purchase is None:
        raise NotFoundError("Purchase not found", {"purchase_id": purchase_id})
    return purchase


def _line_total(quantity: Decimal, unit_price_cents: int) -> int:
    return int((quantity * unit_price_cents).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_supplier(*, name: str, phone: str | None = None) -> Supplier:
    if not name or not name.strip():
        raise ValidationFailedError("name is required")

    def _op():
        supplier = Supplier(name=name.strip(), phone=phone, is_active=True)
        db.session.add(supplier)
        db.session.flush()
        return supplier

    return run_in_transaction(_op)


def create_purchase(
    *,
    supplier_id: int,
    invoice_no: str,
    items: list[dict],
    actor_id: str,
    purchase_date=None,
    tax_cents: int = 0,
    discount_cents: int = 0,
    notes: str | None = None,
) -> Purchase:
    """
    Create a DRAFT purchase.

    Each item is {ingredient_id, quantity, unit_price_cents}.
    net = total + tax - discount.
    """
    if not invoice_no or not str(invoice_no).strip():
        raise ValidationFailedError("invoice_no is required")
    if not items:
        raise ValidationFailedError("At least one item is required")
    tax = parse_cents(tax_cents, "tax_cents", default=0)
    discount = parse_cents(discount_cents, "discount_cents", default=0)
    try:
        purchased_at = normalize_datetime(purchase_date) or utcnow()
    except ValueError:
        raise ValidationFailedError("Invalid purchase_date")

    lines = []
    for idx, raw in enumerate(items):
        try:
            ingredient_id = int(raw["ingredient_id"])
            quantity = to_quantity(raw["quantity"])
        except (KeyError, TypeError, ValueError):
            raise ValidationFailedError("Invalid purchase item", {"index": idx})
        if quantity <= 0:
            raise ValidationFailedError("Item quantity must be positive", {"index": idx})
        unit_price = parse_cents(raw.get("unit_price_cents"), "unit_price_cents", default=0)
        lines.append((ingredient_id, quantity, unit_price))

    def _op():
        supplier = db.session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier not found", {"supplier_id": supplier_id})
        if not supplier.is_active:
            raise ValidationFailedError("Supplier is inactive", {"supplier_id": supplier_id})

        purchase = Purchase(
            supplier_id=supplier.id,
            invoice_no=str(invoice_no).strip(),
            purchase_date=purchased_at,
            tax_cents=tax,
            discount_cents=discount,
            status=PURCHASE_DRAFT,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(purchase)
        db.session.flush()

        total = 0
        for ingredient_id, quantity, unit_price in lines:
            if db.session.get(Ingredient, ingredient_id) is None:
                raise NotFoundError("Ingredient not found", {"ingredient_id": ingredient_id})
            line_total = _line_total(quantity, unit_price)
            total += line_total
            db.session.add(PurchaseItem(
                purchase_id=purchase.id,
                ingredient_id=ingredient_id,
                quantity=quantity,
                unit_price_cents=unit_price,
                total_cents=line_total,
            ))

        purchase.total_cents = total
        purchase.net_cents = total + tax - discount
        db.session.flush()
        return purchase

    return run_in_transaction(_op)


def receive_purchase(purchase_id: int, *, actor_id: str) -> Purchase:
    """Receive every line into stock and flip to RECEIVED, all or nothing."""
    def _op():
        purchase = _get_purchase_locked(purchase_id)
        if purchase.status != PURCHASE_DRAFT:
            raise StateConflictError(
                "Purchase already processed",
                {"purchase_id": purchase.id, "status": purchase.status},
            )

        for item in purchase.items:
            apply_receipt(
                item.ingredient_id,
                item.quantity,
                actor_id=actor_id,
                reference_type="purchase",
                reference_id=purchase.id,
                notes=f"Invoice {purchase.invoice_no}",
            )

        purchase.status = PURCHASE_RECEIVED
        purchase.received_by = actor_id
        purchase.received_at = utcnow()
        db.session.flush()

        if posting_service.auto_post_enabled():
            posting_service.post_purchase_receipt(purchase, actor_id=actor_id)

        append_audit_event(
            event_type="PURCHASE_RECEIVED",
            event_category="INVENTORY",
            entity_type="purchase",
            entity_id=purchase.id,
            actor_id=actor_id,
            occurred_at=purchase.received_at,
            payload={"invoice_no": purchase.invoice_no, "net_cents": purchase.net_cents, "lines": len(purchase.items)},
        )
        return purchase

    return run_in_transaction(_op)


def cancel_purchase(purchase_id: int, *, actor_id: str) -> Purchase:
    def _op():
        purchase = _get_purchase_locked(purchase_id)
        if purchase.status == PURCHASE_RECEIVED:
            raise StateConflictError("Cannot cancel received purchase", {"purchase_id": purchase.id})
        if purchase.status == PURCHASE_CANCELLED:
            raise StateConflictError("Purchase already cancelled", {"purchase_id": purchase.id})

        purchase.status = PURCHASE_CANCELLED
        purchase.cancelled_by = actor_id
        purchase.cancelled_at = utcnow()
        append_audit_event(
            event_type="PURCHASE_CANCELLED",
            event_category="INVENTORY",
            entity_type="purchase",
            entity_id=purchase.id,
            actor_id=actor_id,
        )
        return purchase

    return run_in_transaction(_op)


def delete_purchase(purchase_id: int, *, actor_id: str) -> dict:
    """Hard delete, DRAFT only."""
    def _op():
        purchase = _get_purchase_locked(purchase_id)
        if purchase.status != PURCHASE_DRAFT:
            raise StateConflictError("Can only delete draft purchases", {"purchase_id": purchase.id})
        append_audit_event(
            event_type="PURCHASE_DELETED",
            event_category="INVENTORY",
            entity_type="purchase",
            entity_id=purchase.id,
            actor_id=actor_id,
            payload={"invoice_no": purchase.invoice_no},
        )
        db.session.delete(purchase)
        return {"success": True}

    return run_in_transaction(_op)


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase not found", {"purchase_id": purchase_id})
    return purchase


def get_purchase_detail(purchase_id: int) -> dict:
    purchase = get_purchase(purchase_id)
    data = purchase.to_dict()
    data["supplier_name"] = purchase.supplier.name if purchase.supplier else None
    data["items"] = [i.to_dict() for i in purchase.items]
    return data


def list_purchases(
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
) -> list[Purchase]:
    query = db.session.query(Purchase)
    if status:
        query = query.filter(Purchase.status == status.upper())
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if start is not None:
        query = query.filter(Purchase.purchase_date >= start)
    if end is not None:
        query = query.filter(Purchase.purchase_date <= end)
    return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).limit(limit).all()
