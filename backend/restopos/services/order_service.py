# Overview: Service-layer operations for orders; lifecycle, items, discounts, payments and fulfilment.

"""
Order Lifecycle Service

LIFECYCLE:
    PENDING -> CONFIRMED -> PREPARING -> READY -> SERVED  (forward only, skipping allowed)
    any non-terminal -> COMPLETED  (fulfilment path only)
    any non-terminal -> CANCELLED
COMPLETED and CANCELLED are terminal. A completed order, or one holding
payments, can never be cancelled, so stock deductions, session tender
totals and ledger postings are never reversed.

TOTALS: recalculate_totals() is the only writer of the total columns and runs
after every item or discount mutation.

FULFILMENT (one transaction): status, payment status, table release, one
StockMovement per recipe-ingredient line, customer statistics and credit,
discount usage, session order count, optional ledger postings. The bill is
printed after commit.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..errors import (
    InsufficientStockError,
    NotFoundError,
    StateConflictError,
    ValidationFailedError,
)
from ..models import (
    CashierSession,
    Customer,
    DiningTable,
    Discount,
    Ingredient,
    MenuItem,
    Order,
    OrderItem,
    Payment,
    ItemStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    can_transition,
    to_quantity,
)
from ..models.menu import APPLICABLE_ALL, TABLE_AVAILABLE, TABLE_OCCUPIED
from ..time_utils import business_day_key, utcnow
from . import posting_service, printer_service, recipe_service
from .audit_service import append_audit_event
from .cashier_service import accumulate_tender, require_open_session
from .concurrency import lock_for_update, run_in_transaction
from .money import parse_cents
from .order_totals import calculate_totals, discount_amount
from .selection_service import get_active_tax
from .sequence_service import format_order_number, next_sequence
from .stock_service import POLICY_REJECT, apply_deduction, shortage_for


TENDER_METHODS = {m.value for m in PaymentMethod}


# ---------------------------------------------------------------------------
# Internal helpers (run inside the caller's transaction)
# ---------------------------------------------------------------------------

def _get_order_locked(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError("Order not found", {"order_id": order_id})
    return order


def _require_open_order(order: Order) -> None:
    if OrderStatus(order.status).is_terminal:
        raise StateConflictError(
            f"Order is {order.status.lower()}",
            {"order_id": order.id, "status": order.status},
        )


def _get_item_locked(item_id: int) -> OrderItem:
    item = lock_for_update(db.session.query(OrderItem).filter_by(id=item_id)).first()
    if item is None:
        raise NotFoundError("Order item not found", {"item_id": item_id})
    return item


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationFailedError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationFailedError(f"{field} must be an integer", {field: value})
    if number != value and not isinstance(value, str):
        raise ValidationFailedError(f"{field} must be an integer", {field: value})
    if number <= 0:
        raise ValidationFailedError(f"{field} must be positive", {field: number})
    return number


def _free_table(order: Order) -> None:
    if order.table_id is None:
        return
    table = lock_for_update(db.session.query(DiningTable).filter_by(id=order.table_id)).first()
    if table is not None and table.current_order_id == order.id:
        table.status = TABLE_AVAILABLE
        table.current_order_id = None


def _tender_payments(order: Order) -> list[Payment]:
    return [p for p in order.payments if p.customer_id is None]


def _credit_tendered(order: Order) -> int:
    return sum(p.amount_cents for p in _tender_payments(order) if p.method == PaymentMethod.CREDIT.value)


def refresh_payment_status(order: Order) -> None:
    """
    Derive payment status from the order's payments.

    Tenders leave Payment.customer_id empty; credit settlements carry it.
    A fully tendered order with credit is CREDIT until settlements cover the
    credit part.
    """
    tenders = _tender_payments(order)
    paid = sum(p.amount_cents for p in tenders)
    credit = sum(p.amount_cents for p in tenders if p.method == PaymentMethod.CREDIT.value)
    settled = sum(p.amount_cents for p in order.payments if p.customer_id is not None)

    order.paid_cents = paid
    if credit and paid >= order.grand_total_cents:
        if settled >= credit:
            order.payment_status = PaymentStatus.PAID.value
        elif settled > 0:
            order.payment_status = PaymentStatus.PARTIAL.value
        else:
            order.payment_status = PaymentStatus.CREDIT.value
    elif paid > 0 and paid >= order.grand_total_cents:
        order.payment_status = PaymentStatus.PAID.value
    elif paid > 0:
        order.payment_status = PaymentStatus.PARTIAL.value
    else:
        order.payment_status = PaymentStatus.UNPAID.value


def recalculate_totals(order: Order) -> None:
    """The only writer of subtotal/discount/tax/grand total on an order."""
    db.session.flush()
    db.session.expire(order, ["items", "discount", "payments"])
    line_totals = [i.total_cents for i in order.items if i.status != ItemStatus.CANCELLED.value]
    tax = get_active_tax()

    totals = calculate_totals(
        line_totals,
        discount=order.discount,
        manual_discount_cents=order.manual_discount_cents,
        tax_rate_bps=tax.rate_bps if tax else None,
        service_charge_cents=order.service_charge_cents,
    )
    order.subtotal_cents = totals.subtotal_cents
    order.discount_cents = totals.discount_cents
    order.tax_cents = totals.tax_cents
    order.service_charge_cents = totals.service_charge_cents
    order.grand_total_cents = totals.grand_total_cents
    if order.payments:
        refresh_payment_status(order)


def check_discount(discount: Discount, *, subtotal_cents: int, order_type: str, now=None) -> None:
    """Raise ValidationFailedError when a discount cannot apply to an order."""
    now = now or utcnow()
    if not discount.is_active:
        raise ValidationFailedError("This discount is no longer active")
    if discount.valid_from is not None and discount.valid_from > now:
        raise ValidationFailedError("This discount is not yet valid")
    if discount.valid_to is not None and discount.valid_to < now:
        raise ValidationFailedError("This discount has expired")
    if discount.usage_limit is not None and discount.used_count >= discount.usage_limit:
        raise ValidationFailedError("This discount has reached its usage limit")
    if discount.applicable_to != APPLICABLE_ALL and discount.applicable_to != order_type:
        raise ValidationFailedError(
            f"This discount is only valid for {discount.applicable_to.replace('_', ' ').lower()} orders"
        )
    if discount.min_order_cents is not None and subtotal_cents < discount.min_order_cents:
        raise ValidationFailedError(
            "Order does not meet the discount minimum",
            {"min_order_cents": discount.min_order_cents},
        )


def _add_payment(
    order: Order,
    *,
    method: str,
    amount_cents: int,
    actor_id: str,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    method = (method or "").upper()
    if method not in TENDER_METHODS:
        raise ValidationFailedError(f"method must be one of: {', '.join(sorted(TENDER_METHODS))}")
    amount = parse_cents(amount_cents, "amount_cents", minimum=1)
    if method == PaymentMethod.CREDIT.value and order.customer_id is None:
        raise ValidationFailedError("Credit payments require a customer on the order")

    session = require_open_session(order.session_id)
    payment = Payment(
        order_id=order.id,
        session_id=session.id,
        method=method,
        amount_cents=amount,
        reference=reference,
        notes=notes,
        received_by=actor_id,
    )
    db.session.add(payment)
    accumulate_tender(session, method, amount)
    db.session.flush()
    db.session.expire(order, ["payments"])
    refresh_payment_status(order)

    append_audit_event(
        event_type="PAYMENT_RECORDED",
        event_category="PAYMENT",
        entity_type="order",
        entity_id=order.id,
        actor_id=actor_id,
        payload={"payment_id": payment.id, "method": method, "amount_cents": amount},
    )
    return payment


def _consumption_lines(order: Order) -> list[dict]:
    lines = []
    for item in order.items:
        if item.status == ItemStatus.CANCELLED.value:
            continue
        for line in recipe_service.resolve(item.menu_item_id, item.quantity):
            lines.append({**line, "item_name": item.item_name})
    return lines


def _deduct_stock_for(order: Order, actor_id: str) -> int:
    """
    One SALE movement per recipe-ingredient line. Under REJECT every shortage
    is reported at once before anything is written. Returns consumed cost.
    """
    lines = _consumption_lines(order)

    needed: dict[int, Decimal] = {}
    for line in lines:
        needed[line["ingredient_id"]] = needed.get(line["ingredient_id"], Decimal("0")) + line["quantity"]

    ingredients = {}
    for ingredient_id in sorted(needed):
        ingredient = lock_for_update(db.session.query(Ingredient).filter_by(id=ingredient_id)).first()
        if ingredient is None:
            raise NotFoundError("Ingredient not found", {"ingredient_id": ingredient_id})
        ingredients[ingredient_id] = ingredient

    if str(current_app.config.get("STOCK_OVERSELL_POLICY", POLICY_REJECT)).upper() == POLICY_REJECT:
        shortages = [
            s for s in (shortage_for(ingredients[i], to_quantity(q)) for i, q in needed.items())
            if s is not None
        ]
        if shortages:
            raise InsufficientStockError(
                "Insufficient stock to fulfil order",
                {"order_id": order.id, "items": shortages},
            )

    cost = Decimal("0")
    for line in lines:
        if line["quantity"] <= 0:
            continue
        movement = apply_deduction(
            line["ingredient_id"],
            line["quantity"],
            actor_id=actor_id,
            reference_type="order",
            reference_id=order.id,
            notes=line["item_name"],
        )
        unit_cost = ingredients[line["ingredient_id"]].cost_per_unit_cents or 0
        cost += -to_quantity(movement.quantity) * unit_cost
    return int(cost.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _complete_locked(order: Order, actor_id: str) -> Order:
    _require_open_order(order)
    live_items = [i for i in order.items if i.status != ItemStatus.CANCELLED.value]
    if not live_items:
        raise ValidationFailedError("Order has no items", {"order_id": order.id})

    credit_tendered = _credit_tendered(order)

    order.status = OrderStatus.COMPLETED.value
    order.completed_at = utcnow()
    order.payment_status = (
        PaymentStatus.CREDIT.value if credit_tendered > 0 else PaymentStatus.PAID.value
    )
    for item in live_items:
        item.status = ItemStatus.SERVED.value

    _free_table(order)
    cost_cents = _deduct_stock_for(order, actor_id)

    if order.customer_id is not None:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=order.customer_id)).first()
        if customer is None:
            raise NotFoundError("Customer not found", {"customer_id": order.customer_id})
        customer.total_orders = (customer.total_orders or 0) + 1
        customer.total_spent_cents = (customer.total_spent_cents or 0) + order.grand_total_cents
        if credit_tendered > 0:
            customer.current_credit_cents = (customer.current_credit_cents or 0) + credit_tendered
            if customer.current_credit_cents > (customer.credit_limit_cents or 0):
                current_app.logger.warning(
                    "customer %s credit %s exceeds limit %s (order %s)",
                    customer.id, customer.current_credit_cents,
                    customer.credit_limit_cents, order.order_number,
                )

    if order.discount_id is not None and order.manual_discount_cents is None:
        discount = lock_for_update(db.session.query(Discount).filter_by(id=order.discount_id)).first()
        if discount is not None:
            discount.used_count = (discount.used_count or 0) + 1

    session = lock_for_update(db.session.query(CashierSession).filter_by(id=order.session_id)).first()
    if session is not None:
        session.total_orders = (session.total_orders or 0) + 1

    db.session.flush()
    if posting_service.auto_post_enabled():
        posting_service.post_order_sale(order, credit_tendered_cents=credit_tendered, actor_id=actor_id)
        posting_service.post_order_cogs(order, cost_cents=cost_cents, actor_id=actor_id)

    append_audit_event(
        event_type="ORDER_COMPLETED",
        event_category="ORDER",
        entity_type="order",
        entity_id=order.id,
        actor_id=actor_id,
        occurred_at=order.completed_at,
        payload={
            "order_number": order.order_number,
            "grand_total_cents": order.grand_total_cents,
            "credit_tendered_cents": credit_tendered,
            "cost_cents": cost_cents,
        },
    )
    return order


def _cancel_locked(order: Order, reason: str | None, actor_id: str) -> Order:
    _require_open_order(order)
    # Tendered money is already in the session accumulators
    if (order.paid_cents or 0) > 0:
        raise StateConflictError(
            "Cannot cancel an order that has payments",
            {"order_id": order.id, "paid_cents": order.paid_cents},
        )
    order.status = OrderStatus.CANCELLED.value
    order.cancelled_at = utcnow()
    if reason:
        order.remarks = f"{order.remarks}\nCancelled: {reason}" if order.remarks else f"Cancelled: {reason}"
    for item in order.items:
        item.status = ItemStatus.CANCELLED.value
    _free_table(order)

    append_audit_event(
        event_type="ORDER_CANCELLED",
        event_category="ORDER",
        entity_type="order",
        entity_id=order.id,
        actor_id=actor_id,
        note=reason,
    )
    return order


def _print_bill(order_id: int) -> None:
    printer_service.dispatch(printer_service.KIND_BILL, get_order_detail(order_id))


# ---------------------------------------------------------------------------
# Public operations (one transaction each)
# ---------------------------------------------------------------------------

def create_order(
    *,
    order_type: str,
    cashier_id: str,
    session_id: int,
    table_id: int | None = None,
    customer_id: int | None = None,
    waiter_id: str | None = None,
    remarks: str | None = None,
    service_charge_cents: int = 0,
) -> Order:
    try:
        order_type = OrderType((order_type or "").upper()).value
    except ValueError:
        raise ValidationFailedError(f"order_type must be one of: {', '.join(t.value for t in OrderType)}")
    if not cashier_id:
        raise ValidationFailedError("cashier_id is required")
    if order_type == OrderType.DINE_IN.value and table_id is None:
        raise ValidationFailedError("Dine-in orders require a table")
    if order_type != OrderType.DINE_IN.value and table_id is not None:
        raise ValidationFailedError("Only dine-in orders can take a table")
    service_charge = parse_cents(service_charge_cents, "service_charge_cents")

    def _op():
        require_open_session(session_id)
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found", {"customer_id": customer_id})

        table = None
        if table_id is not None:
            table = lock_for_update(db.session.query(DiningTable).filter_by(id=table_id)).first()
            if table is None:
                raise NotFoundError("Table not found", {"table_id": table_id})
            if table.status != TABLE_AVAILABLE:
                raise StateConflictError(
                    "Table is not available",
                    {"table_id": table_id, "status": table.status},
                )

        day_key = business_day_key(utcnow())
        number = next_sequence(scope=day_key, document_type="ORDER")
        order = Order(
            order_number=format_order_number(day_key, number),
            order_type=order_type,
            table_id=table_id,
            customer_id=customer_id,
            waiter_id=waiter_id,
            cashier_id=cashier_id,
            session_id=session_id,
            remarks=remarks,
            subtotal_cents=0,
            discount_cents=0,
            tax_cents=0,
            service_charge_cents=service_charge,
            grand_total_cents=service_charge,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
        )
        db.session.add(order)
        db.session.flush()

        if table is not None:
            table.status = TABLE_OCCUPIED
            table.current_order_id = order.id

        append_audit_event(
            event_type="ORDER_CREATED",
            event_category="ORDER",
            entity_type="order",
            entity_id=order.id,
            actor_id=cashier_id,
            payload={"order_number": order.order_number, "order_type": order_type},
        )
        return order

    return run_in_transaction(_op)


def add_item(order_id: int, *, menu_item_id: int, quantity: int, notes: str | None = None) -> OrderItem:
    """
    Add a line. Without notes, an existing un-noted pending line for the same
    menu item absorbs the quantity instead of creating a second row.
    """
    qty = _positive_int(quantity, "quantity")
    notes = notes.strip() if notes and notes.strip() else None

    def _op():
        order = _get_order_locked(order_id)
        _require_open_order(order)
        menu_item = db.session.get(MenuItem, menu_item_id)
        if menu_item is None:
            raise NotFoundError("Menu item not found", {"menu_item_id": menu_item_id})
        if not menu_item.is_active:
            raise ValidationFailedError("Menu item is not available", {"menu_item_id": menu_item_id})

        existing = None
        if notes is None:
            existing = next(
                (
                    i for i in order.items
                    if i.menu_item_id == menu_item_id
                    and i.notes is None
                    and i.status == ItemStatus.PENDING.value
                ),
                None,
            )

        if existing is not None:
            existing.quantity += qty
            existing.total_cents = existing.unit_price_cents * existing.quantity
            item = existing
        else:
            item = OrderItem(
                order_id=order.id,
                menu_item_id=menu_item.id,
                item_name=menu_item.name,
                unit_price_cents=menu_item.price_cents,
                quantity=qty,
                total_cents=menu_item.price_cents * qty,
                notes=notes,
                status=ItemStatus.PENDING.value,
                kot_printed=False,
            )
            db.session.add(item)

        recalculate_totals(order)
        return item

    return run_in_transaction(_op)


def update_item_quantity(item_id: int, *, quantity: int) -> OrderItem | None:
    """Set a line's quantity; zero or less removes the line (returns None)."""
    if isinstance(quantity, bool):
        raise ValidationFailedError("quantity must be an integer")
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationFailedError("quantity must be an integer", {"quantity": quantity})

    def _op():
        item = _get_item_locked(item_id)
        order = _get_order_locked(item.order_id)
        _require_open_order(order)

        if qty <= 0:
            db.session.delete(item)
            result = None
        else:
            item.quantity = qty
            item.total_cents = item.unit_price_cents * qty
            result = item

        recalculate_totals(order)
        return result

    return run_in_transaction(_op)


def remove_item(item_id: int) -> dict:
    def _op():
        item = _get_item_locked(item_id)
        order = _get_order_locked(item.order_id)
        _require_open_order(order)
        db.session.delete(item)
        recalculate_totals(order)
        return {"success": True}

    return run_in_transaction(_op)


def apply_discount(
    order_id: int,
    *,
    discount_id: int | None = None,
    manual_discount_cents: int | None = None,
) -> Order:
    """
    Attach a discount record or a manual override amount; neither clears it.

    The manual amount bypasses the record's own rules and is persisted, so
    later recalculations keep it.
    """
    manual = None
    if manual_discount_cents is not None:
        manual = parse_cents(manual_discount_cents, "manual_discount_cents")

    def _op():
        order = _get_order_locked(order_id)
        _require_open_order(order)

        if manual_discount_cents is not None:
            if discount_id is not None and db.session.get(Discount, discount_id) is None:
                raise NotFoundError("Discount not found", {"discount_id": discount_id})
            order.discount_id = discount_id
            order.manual_discount_cents = manual
        elif discount_id is not None:
            discount = db.session.get(Discount, discount_id)
            if discount is None:
                raise NotFoundError("Discount not found", {"discount_id": discount_id})
            check_discount(
                discount,
                subtotal_cents=order.subtotal_cents,
                order_type=order.order_type,
            )
            order.discount_id = discount.id
            order.manual_discount_cents = None
        else:
            order.discount_id = None
            order.manual_discount_cents = None

        recalculate_totals(order)
        return order

    return run_in_transaction(_op)


def validate_discount_code(code: str, *, order_total_cents: int, order_type: str) -> dict:
    """Read-only check of a discount code against an order amount and type."""
    total_cents = parse_cents(order_total_cents, "order_total_cents")
    discount = db.session.query(Discount).filter_by(code=code).first() if code else None
    if discount is None:
        return {"valid": False, "error": "Invalid discount code"}
    try:
        check_discount(
            discount,
            subtotal_cents=total_cents,
            order_type=(order_type or "").upper(),
        )
    except ValidationFailedError as exc:
        return {"valid": False, "error": exc.message}
    return {
        "valid": True,
        "discount": discount.to_dict(),
        "discount_cents": discount_amount(total_cents, discount),
    }


def update_status(order_id: int, *, status: str, actor_id: str) -> Order:
    """
    Move an order along its transition table. COMPLETED runs the fulfilment
    path and CANCELLED runs cancellation.
    """
    try:
        requested = OrderStatus((status or "").upper())
    except ValueError:
        raise ValidationFailedError(f"status must be one of: {', '.join(s.value for s in OrderStatus)}")

    def _op():
        order = _get_order_locked(order_id)
        current = OrderStatus(order.status)
        if not can_transition(current, requested):
            raise StateConflictError(
                f"Cannot move order from {current.value} to {requested.value}",
                {"order_id": order.id, "from": current.value, "to": requested.value},
            )
        if requested == OrderStatus.COMPLETED:
            return _complete_locked(order, actor_id)
        if requested == OrderStatus.CANCELLED:
            return _cancel_locked(order, None, actor_id)

        order.status = requested.value
        append_audit_event(
            event_type="ORDER_STATUS_CHANGED",
            event_category="ORDER",
            entity_type="order",
            entity_id=order.id,
            actor_id=actor_id,
            payload={"from": current.value, "to": requested.value},
        )
        return order

    order = run_in_transaction(_op)
    if requested == OrderStatus.COMPLETED:
        _print_bill(order.id)
    return order


def record_payment(
    order_id: int,
    *,
    method: str,
    amount_cents: int,
    actor_id: str,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    def _op():
        order = _get_order_locked(order_id)
        _require_open_order(order)
        return _add_payment(
            order,
            method=method,
            amount_cents=amount_cents,
            actor_id=actor_id,
            reference=reference,
            notes=notes,
        )

    return run_in_transaction(_op)


def record_split_payment(order_id: int, *, payments: list[dict], actor_id: str) -> list[Payment]:
    """Several tenders in one transaction; zero-amount parts are skipped."""
    if not payments:
        raise ValidationFailedError("At least one payment is required")

    def _op():
        order = _get_order_locked(order_id)
        _require_open_order(order)
        created = []
        for part in payments:
            if not part.get("amount_cents"):
                continue
            created.append(_add_payment(
                order,
                method=part.get("method"),
                amount_cents=part.get("amount_cents"),
                actor_id=actor_id,
                reference=part.get("reference"),
            ))
        if not created:
            raise ValidationFailedError("At least one payment with a positive amount is required")
        return created

    return run_in_transaction(_op)


def complete_order(order_id: int, *, actor_id: str) -> Order:
    order = run_in_transaction(lambda: _complete_locked(_get_order_locked(order_id), actor_id))
    _print_bill(order.id)
    return order


def complete_payment(
    order_id: int,
    *,
    method: str,
    amount_cents: int,
    actor_id: str,
    reference: str | None = None,
) -> Order:
    """Take the final tender and fulfil the order in the same transaction."""
    def _op():
        order = _get_order_locked(order_id)
        _require_open_order(order)
        _add_payment(
            order,
            method=method,
            amount_cents=amount_cents,
            actor_id=actor_id,
            reference=reference,
        )
        if order.paid_cents < order.grand_total_cents:
            raise ValidationFailedError(
                "Payment does not cover the order total",
                {"paid_cents": order.paid_cents, "grand_total_cents": order.grand_total_cents},
            )
        return _complete_locked(order, actor_id)

    order = run_in_transaction(_op)
    _print_bill(order.id)
    return order


def cancel_order(order_id: int, *, reason: str | None = None, actor_id: str) -> Order:
    return run_in_transaction(lambda: _cancel_locked(_get_order_locked(order_id), reason, actor_id))


def send_to_kitchen(order_id: int, *, actor_id: str) -> list[OrderItem]:
    """Mark unprinted pending lines as sent and print a kitchen ticket for them."""
    def _op():
        order = _get_order_locked(order_id)
        _require_open_order(order)
        pending = [
            i for i in order.items
            if not i.kot_printed and i.status == ItemStatus.PENDING.value
        ]
        if not pending:
            raise StateConflictError("No new items to send to the kitchen", {"order_id": order.id})
        for item in pending:
            item.kot_printed = True
            item.status = ItemStatus.SENT_TO_KITCHEN.value
        append_audit_event(
            event_type="KOT_SENT",
            event_category="ORDER",
            entity_type="order",
            entity_id=order.id,
            actor_id=actor_id,
            payload={"item_ids": [i.id for i in pending]},
        )
        return order, pending

    order, sent = run_in_transaction(_op)
    printer_service.dispatch(
        printer_service.KIND_KOT,
        {
            "order_id": order.id,
            "order_number": order.order_number,
            "table_id": order.table_id,
            "items": [
                {"item_name": i.item_name, "quantity": i.quantity, "notes": i.notes}
                for i in sent
            ],
        },
    )
    return sent


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found", {"order_id": order_id})
    return order


def get_order_detail(order_id: int) -> dict:
    """Order with items, payments and related names, ready for rendering."""
    order = get_order(order_id)
    data = order.to_dict()
    data["items"] = [i.to_dict() for i in order.items]
    data["payments"] = [p.to_dict() for p in order.payments]
    data["table_number"] = order.table.table_number if order.table else None
    data["customer_name"] = order.customer.name if order.customer else None
    data["discount_name"] = order.discount.name if order.discount else None
    return data


def list_active_orders() -> list[Order]:
    terminal = [OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value]
    return (
        db.session.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.status.notin_(terminal))
        .order_by(Order.id.asc())
        .all()
    )


def list_session_orders(session_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.session_id == session_id)
        .order_by(Order.id.asc())
        .all()
    )
