# Overview: Service-layer operations for customer credit accounts.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, StateConflictError, ValidationFailedError
from ..models import Customer, Order, Payment, PaymentMethod
from . import posting_service
from .audit_service import append_audit_event
from .cashier_service import accumulate_tender, require_open_session
from .concurrency import lock_for_update, run_in_transaction
from .money import parse_cents
from .order_service import refresh_payment_status

SETTLEMENT_METHODS = {
    PaymentMethod.CASH.value,
    PaymentMethod.CARD.value,
    PaymentMethod.QR.value,
    PaymentMethod.FONEPAY.value,
}


def create_customer(*, name: str, phone: str | None = None, credit_limit_cents: int = 0) -> Customer:
    if not name or not name.strip():
        raise ValidationFailedError("name is required")
    credit_limit = parse_cents(credit_limit_cents, "credit_limit_cents")

    def _op():
        customer = Customer(
            name=name.strip(),
            phone=phone,
            credit_limit_cents=credit_limit,
            current_credit_cents=0,
        )
        db.session.add(customer)
        db.session.flush()
        return customer

    return run_in_transaction(_op)


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", {"customer_id": customer_id})
    return customer


def record_credit_payment(
    customer_id: int,
    *,
    amount_cents: int,
    method: str,
    actor_id: str,
    order_id: int | None = None,
    session_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Customer pays down outstanding credit.

    With an order and an open session the settlement is also recorded as a
    Payment against that session, and the order's payment status is derived
    again.
    """
    method = (method or "").upper()
    if method not in SETTLEMENT_METHODS:
        raise ValidationFailedError(
            f"method must be one of: {', '.join(sorted(SETTLEMENT_METHODS))}"
        )
    amount = parse_cents(amount_cents, "amount_cents", minimum=1)
    if order_id is not None and session_id is None:
        raise ValidationFailedError("session_id is required when settling an order")

    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if customer is None:
            raise NotFoundError("Customer not found", {"customer_id": customer_id})
        if amount > (customer.current_credit_cents or 0):
            raise ValidationFailedError(
                "Payment amount exceeds outstanding credit",
                {"current_credit_cents": customer.current_credit_cents},
            )

        customer.current_credit_cents -= amount

        payment = None
        if order_id is not None:
            order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError("Order not found", {"order_id": order_id})
            if order.customer_id != customer.id:
                raise StateConflictError("Order belongs to another customer", {"order_id": order_id})
            session = require_open_session(session_id)
            payment = Payment(
                order_id=order.id,
                customer_id=customer.id,
                session_id=session.id,
                method=method,
                amount_cents=amount,
                notes=notes or "Credit payment",
                received_by=actor_id,
            )
            db.session.add(payment)
            accumulate_tender(session, method, amount)
            db.session.flush()
            db.session.expire(order, ["payments"])
            refresh_payment_status(order)
        elif session_id is not None:
            session = require_open_session(session_id)
            payment = Payment(
                customer_id=customer.id,
                session_id=session.id,
                method=method,
                amount_cents=amount,
                notes=notes or "Credit payment",
                received_by=actor_id,
            )
            db.session.add(payment)
            accumulate_tender(session, method, amount)

        db.session.flush()
        if posting_service.auto_post_enabled():
            posting_service.post_credit_settlement(customer, amount_cents=amount, method=method, actor_id=actor_id)

        append_audit_event(
            event_type="CREDIT_SETTLED",
            event_category="PAYMENT",
            entity_type="customer",
            entity_id=customer.id,
            actor_id=actor_id,
            note=notes,
            payload={
                "amount_cents": amount,
                "method": method,
                "order_id": order_id,
                "payment_id": payment.id if payment else None,
            },
        )
        return {"success": True, "new_balance_cents": customer.current_credit_cents}

    return run_in_transaction(_op)


def list_customers_with_credit() -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter(Customer.current_credit_cents > 0)
        .order_by(Customer.current_credit_cents.desc())
        .all()
    )


def list_credit_orders(customer_id: int) -> list[Order]:
    get_customer(customer_id)
    return (
        db.session.query(Order)
        .filter(Order.customer_id == customer_id, Order.payment_status.in_(["CREDIT", "PARTIAL"]))
        .order_by(Order.id.desc())
        .all()
    )
