"""
Customer credit tests.

A credit tender on a completed order raises the customer's outstanding
credit; settlements pay it down and re-derive the order's payment status.
"""

import pytest

from conftest import ACTOR, account
from restopos.errors import NotFoundError, ValidationFailedError
from restopos.extensions import db
from restopos.models import AccountingTransaction
from restopos.services import customer_service, order_service


@pytest.fixture
def customer(db_session):
    return customer_service.create_customer(name="Ram Bahadur", phone="9800000000", credit_limit_cents=50000)


@pytest.fixture
def credit_order(cashier_session, customer, make_menu_item, printed):
    dish = make_menu_item(name="Thali", price_cents=10000)
    order = order_service.create_order(
        order_type="TAKEAWAY",
        cashier_id=ACTOR,
        session_id=cashier_session.id,
        customer_id=customer.id,
    )
    order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
    order_service.record_payment(order.id, method="CREDIT", amount_cents=10000, actor_id=ACTOR)
    return order_service.complete_order(order.id, actor_id=ACTOR)


class TestCreditSale:

    def test_completion_books_credit(self, credit_order, customer, cashier_session):
        customer = customer_service.get_customer(customer.id)

        assert credit_order.payment_status == "CREDIT"
        assert customer.current_credit_cents == 10000
        assert customer.total_orders == 1
        assert customer.total_spent_cents == 10000
        db.session.refresh(cashier_session)
        assert cashier_session.total_credit_sales_cents == 10000

    def test_listed_with_credit(self, credit_order, customer):
        assert [c.id for c in customer_service.list_customers_with_credit()] == [customer.id]
        assert [o.id for o in customer_service.list_credit_orders(customer.id)] == [credit_order.id]

    def test_over_limit_only_warns(self, cashier_session, make_menu_item, printed):
        small = customer_service.create_customer(name="Sita", credit_limit_cents=100)
        dish = make_menu_item(name="Feast", price_cents=90000)
        order = order_service.create_order(
            order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id, customer_id=small.id,
        )
        order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
        order_service.record_payment(order.id, method="CREDIT", amount_cents=90000, actor_id=ACTOR)

        order_service.complete_order(order.id, actor_id=ACTOR)

        assert customer_service.get_customer(small.id).current_credit_cents == 90000


class TestSettlement:

    def test_partial_then_full(self, credit_order, customer, cashier_session):
        result = customer_service.record_credit_payment(
            customer.id,
            amount_cents=4000,
            method="CASH",
            actor_id=ACTOR,
            order_id=credit_order.id,
            session_id=cashier_session.id,
        )
        assert result == {"success": True, "new_balance_cents": 6000}
        assert order_service.get_order(credit_order.id).payment_status == "PARTIAL"

        customer_service.record_credit_payment(
            customer.id,
            amount_cents=6000,
            method="qr",
            actor_id=ACTOR,
            order_id=credit_order.id,
            session_id=cashier_session.id,
        )
        order = order_service.get_order(credit_order.id)
        assert order.payment_status == "PAID"
        assert customer_service.get_customer(customer.id).current_credit_cents == 0

        db.session.refresh(cashier_session)
        assert cashier_session.total_cash_sales_cents == 4000
        assert cashier_session.total_qr_sales_cents == 6000

    def test_settlement_without_order(self, credit_order, customer):
        result = customer_service.record_credit_payment(customer.id, amount_cents=2500, method="CARD", actor_id=ACTOR)
        assert result["new_balance_cents"] == 7500

    def test_cannot_exceed_outstanding(self, credit_order, customer):
        with pytest.raises(ValidationFailedError):
            customer_service.record_credit_payment(customer.id, amount_cents=10001, method="CASH", actor_id=ACTOR)
        assert customer_service.get_customer(customer.id).current_credit_cents == 10000

    @pytest.mark.parametrize("method,amount", [("CREDIT", 100), ("CASH", 0), ("CASH", -50), ("CASH", 99.5)])
    def test_invalid_settlement(self, credit_order, customer, method, amount):
        with pytest.raises(ValidationFailedError):
            customer_service.record_credit_payment(customer.id, amount_cents=amount, method=method, actor_id=ACTOR)

    def test_order_requires_session(self, credit_order, customer):
        with pytest.raises(ValidationFailedError):
            customer_service.record_credit_payment(
                customer.id, amount_cents=100, method="CASH", actor_id=ACTOR, order_id=credit_order.id,
            )

    def test_unknown_customer(self, db_session):
        with pytest.raises(NotFoundError):
            customer_service.record_credit_payment(31337, amount_cents=100, method="CASH", actor_id=ACTOR)


class TestCreditPosting:

    def test_sale_and_receipt_vouchers(self, ledger, auto_post, credit_order, customer):
        assert account("1200").current_balance_cents == 10000
        assert account("5100").current_balance_cents == 10000
        assert account("1100").current_balance_cents == 0

        customer_service.record_credit_payment(customer.id, amount_cents=10000, method="CASH", actor_id=ACTOR)

        vouchers = db.session.query(AccountingTransaction).order_by(AccountingTransaction.id).all()
        assert [v.voucher_number for v in vouchers] == ["SAL-00001", "REC-00001"]
        assert account("1200").current_balance_cents == 0
        assert account("1100").current_balance_cents == 10000

    @pytest.mark.parametrize("method", ["CARD", "QR", "FONEPAY"])
    def test_non_cash_settlement_goes_to_bank(self, ledger, auto_post, credit_order, customer, method):
        customer_service.record_credit_payment(customer.id, amount_cents=10000, method=method, actor_id=ACTOR)

        assert account("1101").current_balance_cents == 10000
        assert account("1100").current_balance_cents == 0
        assert account("1200").current_balance_cents == 0
