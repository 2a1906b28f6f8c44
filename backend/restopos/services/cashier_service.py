# Overview: Service-layer operations for cashier sessions; open, accumulate tenders, reconcile at close.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import NotFoundError, StateConflictError, ValidationFailedError
from ..models import CashierSession, Order, OrderStatus, PaymentMethod
from ..models.cashier import SESSION_CLOSED, SESSION_OPEN
from ..time_utils import utcnow
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_in_transaction
from .money import parse_cents

"""
Cashier session reconciliation

- One OPEN session per cashier; CLOSED is terminal.
- Tender accumulators are bumped by the payment path as payments are recorded.
- expected_cash = opening_cash + total_cash_sales
- cash_variance = counted_cash - expected_cash, recorded, never blocking.
"""

# Tender method -> accumulator column; FONEPAY is a QR wallet
ACCUMULATOR_FIELDS = {
    PaymentMethod.CASH.value: "total_cash_sales_cents",
    PaymentMethod.CARD.value: "total_card_sales_cents",
    PaymentMethod.QR.value: "total_qr_sales_cents",
    PaymentMethod.FONEPAY.value: "total_qr_sales_cents",
    PaymentMethod.CREDIT.value: "total_credit_sales_cents",
}


def get_session_locked(session_id: int) -> CashierSession:
    session = lock_for_update(db.session.query(CashierSession).filter_by(id=session_id)).first()
    if session is None:
        raise NotFoundError("Cashier session not found", {"session_id": session_id})
    return session


def require_open_session(session_id: int) -> CashierSession:
    session = get_session_locked(session_id)
    if session.status != SESSION_OPEN:
        raise StateConflictError("Cashier session is not open", {"session_id": session_id})
    return session


def accumulate_tender(session: CashierSession, method: str, amount_cents: int) -> None:
    """Add a tender to the session's running totals (caller's transaction)."""
    field = ACCUMULATOR_FIELDS[method]
    setattr(session, field, (getattr(session, field) or 0) + int(amount_cents))


def open_session(*, cashier_id: str, opening_cash_cents: int, notes: str | None = None) -> CashierSession:
    if not cashier_id:
        raise ValidationFailedError("cashier_id is required")
    opening_cash = parse_cents(opening_cash_cents, "opening_cash_cents")

    def _op():
        existing = (
            db.session.query(CashierSession.id)
            .filter_by(cashier_id=cashier_id, status=SESSION_OPEN)
            .first()
        )
        if existing:
            raise StateConflictError(
                "Cashier already has an open session",
                {"session_id": existing[0]},
            )
        session = CashierSession(
            cashier_id=cashier_id,
            status=SESSION_OPEN,
            opening_cash_cents=opening_cash,
            notes=notes,
            opened_at=utcnow(),
        )
        db.session.add(session)
        db.session.flush()
        append_audit_event(
            event_type="SESSION_OPENED",
            event_category="CASH",
            entity_type="cashier_session",
            entity_id=session.id,
            actor_id=cashier_id,
            payload={"opening_cash_cents": session.opening_cash_cents},
        )
        return session

    return run_in_transaction(_op)


def close_session(
    session_id: int,
    *,
    counted_cash_cents: int,
    notes: str | None = None,
    actor_id: str | None = None,
) -> CashierSession:
    """Close and reconcile. Any variance is recorded; closing never fails on it."""
    counted_cash = parse_cents(counted_cash_cents, "counted_cash_cents")

    def _op():
        session = get_session_locked(session_id)
        if session.status == SESSION_CLOSED:
            raise StateConflictError("Session is already closed", {"session_id": session_id})

        expected = session.opening_cash_cents + session.total_cash_sales_cents
        session.expected_cash_cents = expected
        session.closing_cash_cents = counted_cash
        session.cash_variance_cents = counted_cash - expected
        session.status = SESSION_CLOSED
        session.closed_at = utcnow()
        if notes is not None:
            session.notes = notes

        append_audit_event(
            event_type="SESSION_CLOSED",
            event_category="CASH",
            entity_type="cashier_session",
            entity_id=session.id,
            actor_id=actor_id or session.cashier_id,
            payload={
                "expected_cash_cents": expected,
                "closing_cash_cents": session.closing_cash_cents,
                "cash_variance_cents": session.cash_variance_cents,
            },
        )
        return session

    return run_in_transaction(_op)


def get_session(session_id: int) -> CashierSession:
    session = db.session.get(CashierSession, session_id)
    if session is None:
        raise NotFoundError("Cashier session not found", {"session_id": session_id})
    return session


def get_active_session(cashier_id: str) -> CashierSession | None:
    return (
        db.session.query(CashierSession)
        .filter_by(cashier_id=cashier_id, status=SESSION_OPEN)
        .first()
    )


def get_session_summary(session_id: int) -> dict:
    session = get_session(session_id)

    orders = db.session.query(Order.status).filter(Order.session_id == session_id).all()
    statuses = [row[0] for row in orders]

    cash = session.total_cash_sales_cents
    card = session.total_card_sales_cents
    qr = session.total_qr_sales_cents
    credit = session.total_credit_sales_cents

    return {
        "session": session.to_dict(),
        "orders": {
            "total": len(statuses),
            "completed": statuses.count(OrderStatus.COMPLETED.value),
            "cancelled": statuses.count(OrderStatus.CANCELLED.value),
        },
        "sales": {
            "cash_cents": cash,
            "card_cents": card,
            "qr_cents": qr,
            "credit_cents": credit,
            "total_cents": cash + card + qr,
            "grand_total_cents": cash + card + qr + credit,
        },
        "expected_cash_cents": session.opening_cash_cents + cash,
    }


def list_sessions(
    *,
    cashier_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
) -> list[CashierSession]:
    query = db.session.query(CashierSession)
    if cashier_id:
        query = query.filter(CashierSession.cashier_id == cashier_id)
    if start is not None:
        query = query.filter(CashierSession.opened_at >= start)
    if end is not None:
        query = query.filter(CashierSession.opened_at <= end)
    return query.order_by(CashierSession.id.desc()).limit(limit).all()
