"""
Cashier session tests: one open session per cashier, tender accumulation,
and cash reconciliation at close.
"""

import pytest

from conftest import ACTOR
from restopos.errors import NotFoundError, StateConflictError, ValidationFailedError
from restopos.extensions import db
from restopos.services import cashier_service, order_service


@pytest.fixture
def paid_order(cashier_session, make_menu_item):
    """Order factory: one line at ``price_cents`` paid by the given tenders."""
    def _make(price_cents, tenders):
        dish = make_menu_item(name=f"Platter {price_cents}", price_cents=price_cents)
        order = order_service.create_order(order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id)
        order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
        order_service.record_split_payment(
            order.id,
            payments=[{"method": m, "amount_cents": a} for m, a in tenders],
            actor_id=ACTOR,
        )
        return order
    return _make


class TestOpenSession:

    def test_open(self, db_session):
        session = cashier_service.open_session(cashier_id="cashier-2", opening_cash_cents=5000)

        assert session.status == "OPEN"
        assert session.opening_cash_cents == 5000
        assert session.total_cash_sales_cents == 0
        assert cashier_service.get_active_session("cashier-2").id == session.id

    def test_one_open_session_per_cashier(self, cashier_session):
        with pytest.raises(StateConflictError):
            cashier_service.open_session(cashier_id=ACTOR, opening_cash_cents=0)

    def test_other_cashier_may_open(self, cashier_session):
        other = cashier_service.open_session(cashier_id="cashier-2", opening_cash_cents=0)
        assert other.id != cashier_session.id

    def test_negative_opening_cash(self, db_session):
        with pytest.raises(ValidationFailedError):
            cashier_service.open_session(cashier_id=ACTOR, opening_cash_cents=-1)

    @pytest.mark.parametrize("amount", [100.5, "100.5", None])
    def test_fractional_or_missing_opening_cash(self, db_session, amount):
        with pytest.raises(ValidationFailedError):
            cashier_service.open_session(cashier_id=ACTOR, opening_cash_cents=amount)
        assert cashier_service.get_active_session(ACTOR) is None

    def test_fractional_counted_cash(self, cashier_session):
        with pytest.raises(ValidationFailedError):
            cashier_service.close_session(cashier_session.id, counted_cash_cents=99999.9)
        assert cashier_service.get_session(cashier_session.id).status == "OPEN"


class TestTenderAccumulation:

    def test_accumulates_by_method(self, cashier_session, paid_order):
        paid_order(10000, [("CASH", 2500), ("CARD", 3000), ("QR", 1500), ("FONEPAY", 3000)])

        db.session.refresh(cashier_session)
        assert cashier_session.total_cash_sales_cents == 2500
        assert cashier_session.total_card_sales_cents == 3000
        assert cashier_session.total_qr_sales_cents == 4500

    def test_summary(self, cashier_session, paid_order):
        paid_order(10000, [("CASH", 4000), ("CARD", 6000)])
        open_order = order_service.create_order(order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id)
        order_service.cancel_order(open_order.id, actor_id=ACTOR)

        summary = cashier_service.get_session_summary(cashier_session.id)

        assert summary["orders"] == {"total": 2, "completed": 0, "cancelled": 1}
        assert summary["sales"]["total_cents"] == 10000
        assert summary["expected_cash_cents"] == 104000


class TestCloseSession:

    def test_reconciliation_records_variance(self, cashier_session, paid_order):
        paid_order(300000, [("CASH", 300000)])

        closed = cashier_service.close_session(cashier_session.id, counted_cash_cents=390000, actor_id=ACTOR)

        assert closed.status == "CLOSED"
        assert closed.expected_cash_cents == 400000
        assert closed.closing_cash_cents == 390000
        assert closed.cash_variance_cents == -10000
        assert closed.closed_at is not None

    def test_card_sales_not_expected_in_drawer(self, cashier_session, paid_order):
        paid_order(5000, [("CARD", 5000)])

        closed = cashier_service.close_session(cashier_session.id, counted_cash_cents=100000)

        assert closed.expected_cash_cents == 100000
        assert closed.cash_variance_cents == 0

    def test_close_twice(self, cashier_session):
        cashier_service.close_session(cashier_session.id, counted_cash_cents=100000)
        with pytest.raises(StateConflictError):
            cashier_service.close_session(cashier_session.id, counted_cash_cents=100000)

    def test_closed_session_rejects_payments(self, cashier_session, make_menu_item):
        dish = make_menu_item()
        order = order_service.create_order(order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id)
        order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
        cashier_service.close_session(cashier_session.id, counted_cash_cents=100000)

        with pytest.raises(StateConflictError):
            order_service.record_payment(order.id, method="CASH", amount_cents=10000, actor_id=ACTOR)

    def test_paid_order_cannot_be_cancelled(self, cashier_session, make_menu_item):
        dish = make_menu_item(price_cents=10000)
        order = order_service.create_order(order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id)
        order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
        order_service.record_payment(order.id, method="CASH", amount_cents=10000, actor_id=ACTOR)

        with pytest.raises(StateConflictError):
            order_service.cancel_order(order.id, reason="guest left", actor_id=ACTOR)
        with pytest.raises(StateConflictError):
            order_service.update_status(order.id, status="CANCELLED", actor_id=ACTOR)

        assert order_service.get_order(order.id).status == "PENDING"
        closed = cashier_service.close_session(cashier_session.id, counted_cash_cents=110000)
        assert closed.expected_cash_cents == 110000
        assert closed.cash_variance_cents == 0

    def test_reopen_after_close(self, cashier_session):
        cashier_service.close_session(cashier_session.id, counted_cash_cents=100000)
        assert cashier_service.get_active_session(ACTOR) is None

        fresh = cashier_service.open_session(cashier_id=ACTOR, opening_cash_cents=0)
        assert fresh.id != cashier_session.id

    def test_unknown_session(self, db_session):
        with pytest.raises(NotFoundError):
            cashier_service.close_session(777, counted_cash_cents=0)


class TestListing:

    def test_list_sessions_newest_first(self, cashier_session):
        other = cashier_service.open_session(cashier_id="cashier-2", opening_cash_cents=0)

        assert [s.id for s in cashier_service.list_sessions()] == [other.id, cashier_session.id]
        assert [s.id for s in cashier_service.list_sessions(cashier_id=ACTOR)] == [cashier_session.id]
