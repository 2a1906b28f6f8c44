"""
General ledger tests.

Verifies:
- Balanced vouchers post and move account balances by their normal side
- Unbalanced or malformed vouchers are rejected before any write
- Voucher numbers are sequential per financial year and voucher type
- Statements are read-only derivations that stay balanced
- Financial year close with and without carry forward
"""

from datetime import timedelta

import pytest

from conftest import ACTOR, account
from restopos.errors import NotFoundError, StateConflictError, ValidationFailedError
from restopos.extensions import db
from restopos.models import AccountingEntry, AccountingTransaction
from restopos.services import accounting_service, financial_year_service, order_service
from restopos.time_utils import utcnow


def journal(debit_code, credit_code, amount, **kwargs):
    return accounting_service.post_transaction(
        voucher_type=kwargs.pop("voucher_type", "JOURNAL"),
        description=kwargs.pop("description", "Manual entry"),
        entries=[
            {"account_id": account(debit_code).id, "debit_cents": amount},
            {"account_id": account(credit_code).id, "credit_cents": amount},
        ],
        actor_id=ACTOR,
        **kwargs,
    )


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================


class TestChartOfAccounts:

    def test_default_chart(self, db_session):
        created = accounting_service.initialize_default_accounts(actor_id=ACTOR)

        assert created == 25
        assert account("1100").name == "Cash in Hand"
        assert account("1100").parent_id == account("1000").id
        assert account("4200").account_type == "EQUITY"

    def test_initialize_twice(self, ledger):
        with pytest.raises(StateConflictError):
            accounting_service.initialize_default_accounts(actor_id=ACTOR)

    def test_create_account_starts_at_zero(self, ledger):
        acc = accounting_service.create_account(
            code="6600", name="Repairs", account_type="expense", parent_id=account("6000").id, actor_id=ACTOR,
        )
        assert acc.account_type == "EXPENSE"
        assert acc.current_balance_cents == 0

    def test_duplicate_code(self, ledger):
        with pytest.raises(ValidationFailedError):
            accounting_service.create_account(code="1100", name="Petty Cash", account_type="ASSET")

    def test_parent_type_must_match(self, ledger):
        with pytest.raises(ValidationFailedError):
            accounting_service.create_account(
                code="1400", name="Deposits", account_type="ASSET", parent_id=account("3000").id,
            )

    def test_deactivate_rules(self, ledger):
        with pytest.raises(StateConflictError):
            accounting_service.deactivate_account(account("1000").id, actor_id=ACTOR)

        journal("1100", "5100", 500)
        with pytest.raises(StateConflictError):
            accounting_service.deactivate_account(account("1100").id, actor_id=ACTOR)

        marketing = accounting_service.deactivate_account(account("6500").id, actor_id=ACTOR)
        assert marketing.is_active is False
        assert "6500" not in [a.code for a in accounting_service.list_accounts()]


# =============================================================================
# POSTING
# =============================================================================


class TestPosting:

    def test_journal_moves_balances(self, ledger):
        txn = journal("1100", "5100", 500, description="Cash sale adjustment")

        assert txn.voucher_number == "JOU-00001"
        assert txn.total_cents == 500
        assert txn.financial_year_id == ledger.id
        assert account("1100").current_balance_cents == 500
        assert account("5100").current_balance_cents == 500

    def test_unbalanced_rejected_without_writes(self, ledger):
        with pytest.raises(ValidationFailedError) as exc:
            accounting_service.post_transaction(
                voucher_type="JOURNAL",
                description="Broken",
                entries=[
                    {"account_id": account("1100").id, "debit_cents": 500},
                    {"account_id": account("5100").id, "credit_cents": 400},
                ],
                actor_id=ACTOR,
            )

        assert exc.value.details == {"total_debit_cents": 500, "total_credit_cents": 400}
        assert db.session.query(AccountingTransaction).count() == 0
        assert db.session.query(AccountingEntry).count() == 0
        assert account("1100").current_balance_cents == 0

    @pytest.mark.parametrize("entry", [
        {"debit_cents": 100, "credit_cents": 100},
        {"debit_cents": 0, "credit_cents": 0},
        {"debit_cents": -100},
    ])
    def test_entry_needs_exactly_one_positive_side(self, ledger, entry):
        with pytest.raises(ValidationFailedError):
            accounting_service.post_transaction(
                voucher_type="JOURNAL",
                description="Bad entry",
                entries=[{"account_id": account("1100").id, **entry}],
                actor_id=ACTOR,
            )

    @pytest.mark.parametrize("debit", [500.9, "500.9", True])
    def test_fractional_cents_rejected(self, ledger, debit):
        with pytest.raises(ValidationFailedError) as exc:
            accounting_service.post_transaction(
                voucher_type="JOURNAL",
                description="Fractional",
                entries=[
                    {"account_id": account("1100").id, "debit_cents": debit},
                    {"account_id": account("5100").id, "credit_cents": 500},
                ],
                actor_id=ACTOR,
            )

        assert exc.value.details["index"] == 0
        assert db.session.query(AccountingTransaction).count() == 0
        assert account("1100").current_balance_cents == 0

    def test_integral_float_cents_accepted(self, ledger):
        accounting_service.post_transaction(
            voucher_type="JOURNAL",
            description="Whole cents as float",
            entries=[
                {"account_id": account("1100").id, "debit_cents": 500.0},
                {"account_id": account("5100").id, "credit_cents": "500"},
            ],
            actor_id=ACTOR,
        )
        assert account("1100").current_balance_cents == 500

    def test_unknown_voucher_type(self, ledger):
        with pytest.raises(ValidationFailedError):
            journal("1100", "5100", 500, voucher_type="MEMO")

    def test_unknown_account(self, ledger):
        with pytest.raises(NotFoundError):
            accounting_service.post_transaction(
                voucher_type="JOURNAL",
                description="Ghost",
                entries=[
                    {"account_id": 9999, "debit_cents": 1},
                    {"account_id": account("5100").id, "credit_cents": 1},
                ],
                actor_id=ACTOR,
            )

    def test_inactive_account(self, ledger):
        accounting_service.deactivate_account(account("6500").id)
        with pytest.raises(ValidationFailedError):
            journal("6500", "1100", 100)

    def test_requires_current_financial_year(self, db_session):
        accounting_service.initialize_default_accounts(actor_id=ACTOR)
        with pytest.raises(StateConflictError):
            journal("1100", "5100", 500)

    def test_voucher_numbers_per_type(self, ledger):
        numbers = [
            journal("1100", "5100", 100).voucher_number,
            journal("1100", "5100", 100, voucher_type="RECEIPT").voucher_number,
            journal("1100", "5100", 100).voucher_number,
            journal("6300", "1100", 50, voucher_type="PAYMENT").voucher_number,
            journal("1101", "1100", 10, voucher_type="CONTRA").voucher_number,
        ]
        assert numbers == ["JOU-00001", "REC-00001", "JOU-00002", "PAY-00001", "CON-00001"]


# =============================================================================
# READ SIDE
# =============================================================================


class TestLedgerAndStatements:

    def test_ledger_running_balance(self, ledger):
        now = utcnow()
        journal("1100", "5100", 500, transaction_date=now - timedelta(days=10))
        journal("6300", "1100", 200, transaction_date=now - timedelta(days=2))

        rows = accounting_service.get_ledger_entries(account("1100").id)

        assert [(r["debit_cents"], r["credit_cents"], r["balance_cents"]) for r in rows] == [
            (500, 0, 500),
            (0, 200, 300),
        ]
        assert accounting_service.get_ledger_entries(account("1100").id) == rows

    def test_ledger_window_carries_prior_balance(self, ledger):
        now = utcnow()
        journal("1100", "5100", 500, transaction_date=now - timedelta(days=10))
        journal("6300", "1100", 200, transaction_date=now - timedelta(days=2))

        rows = accounting_service.get_ledger_entries(account("1100").id, start=now - timedelta(days=5))

        assert len(rows) == 1
        assert rows[0]["balance_cents"] == 300

    def test_trial_balance(self, ledger):
        journal("1100", "5100", 500)
        journal("6300", "1100", 200)

        tb = accounting_service.get_trial_balance()

        assert tb["is_balanced"] is True
        assert tb["total_debit_cents"] == tb["total_credit_cents"] == 500
        cash = next(r for r in tb["assets"] if r["code"] == "1100")
        assert (cash["debit_cents"], cash["credit_cents"]) == (300, 0)

    def test_balance_sheet_balanced(self, ledger):
        journal("1100", "4100", 100000)
        journal("1100", "5100", 500)
        journal("6300", "1100", 200)

        sheet = accounting_service.get_balance_sheet()

        assert sheet["assets"]["total_cents"] == 100300
        assert sheet["current_period_profit_cents"] == 300
        assert sheet["total_equity_cents"] == 100300
        assert sheet["is_balanced"] is True

    def test_profit_loss(self, ledger, supplier, make_ingredient, cashier_session, make_menu_item, printed):
        from restopos.services import order_service, purchase_service

        ingredient = make_ingredient()
        purchase = purchase_service.create_purchase(
            supplier_id=supplier.id,
            invoice_no="INV-9",
            items=[{"ingredient_id": ingredient.id, "quantity": 10, "unit_price_cents": 300}],
            actor_id=ACTOR,
        )
        purchase_service.receive_purchase(purchase.id, actor_id=ACTOR)
        dish = make_menu_item(name="Dal Bhat", price_cents=10000)
        order = order_service.create_order(order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id)
        order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
        order_service.complete_order(order.id, actor_id=ACTOR)
        journal("6300", "1100", 1000)

        now = utcnow()
        pl = accounting_service.get_profit_loss(now - timedelta(days=1), now + timedelta(days=1))

        assert pl["revenue"]["total_cents"] == 10000
        assert sum(i["amount_cents"] for i in pl["revenue"]["items"]) == 10000
        assert pl["cost_of_goods_sold"]["total_cents"] == 3000
        assert pl["gross_profit_cents"] == 7000
        assert pl["operating_expenses"]["total_cents"] == 1000
        assert pl["net_profit_cents"] == 6000

    def test_profit_loss_period_validation(self, ledger):
        now = utcnow()
        with pytest.raises(ValidationFailedError):
            accounting_service.get_profit_loss(now, now - timedelta(days=1))

    def test_transaction_detail(self, ledger):
        txn = journal("1100", "5100", 500)

        detail = accounting_service.get_transaction_detail(txn.id)

        assert detail["voucher_number"] == "JOU-00001"
        assert [e["account_code"] for e in detail["entries"]] == ["1100", "5100"]
        assert [t["id"] for t in accounting_service.get_recent_transactions()] == [txn.id]


# =============================================================================
# FINANCIAL YEARS
# =============================================================================


class TestFinancialYears:

    def test_overlap_rejected(self, ledger):
        with pytest.raises(ValidationFailedError):
            financial_year_service.create_financial_year(
                name="Overlap",
                start_date=ledger.start_date + timedelta(days=1),
                end_date=ledger.end_date + timedelta(days=30),
            )

    def test_start_before_end(self, db_session):
        with pytest.raises(ValidationFailedError):
            financial_year_service.create_financial_year(name="Bad", start_date="2025-04-01", end_date="2025-01-01")

    def test_close_with_carry_forward(self, ledger):
        journal("1100", "5100", 500)
        journal("6300", "1100", 200)

        result = financial_year_service.close_financial_year(ledger.id, actor_id=ACTOR, carry_forward=True)

        closed = financial_year_service.get_financial_year(ledger.id)
        assert closed.status == "CLOSED"
        assert closed.closed_by == ACTOR

        closing = accounting_service.get_transaction_detail(result["closing_transaction_id"])
        assert closing["voucher_number"] == "JOU-00003"
        assert account("5100").current_balance_cents == 0
        assert account("6300").current_balance_cents == 0
        assert account("4200").current_balance_cents == 300
        assert account("1100").opening_balance_cents == 300

        current = accounting_service.get_current_financial_year()
        assert current.id == result["next_financial_year_id"]
        assert current.start_date > closed.end_date

        # numbering restarts in the new year
        assert journal("1100", "5100", 100).voucher_number == "JOU-00001"
        assert accounting_service.get_trial_balance()["is_balanced"] is True

    def test_close_without_carry_forward(self, ledger):
        result = financial_year_service.close_financial_year(ledger.id, actor_id=ACTOR, carry_forward=False)

        assert result == {"success": True, "closing_transaction_id": None, "next_financial_year_id": None}
        assert accounting_service.get_current_financial_year() is None
        with pytest.raises(StateConflictError):
            journal("1100", "5100", 500)

    def test_closed_year_is_final(self, ledger):
        financial_year_service.close_financial_year(ledger.id, actor_id=ACTOR, carry_forward=False)

        with pytest.raises(StateConflictError):
            financial_year_service.close_financial_year(ledger.id, actor_id=ACTOR)
        with pytest.raises(StateConflictError):
            financial_year_service.set_current_financial_year(ledger.id, actor_id=ACTOR)

    def test_set_current(self, ledger):
        later = financial_year_service.create_financial_year(
            name="FY Later",
            start_date=ledger.end_date + timedelta(days=1),
            end_date=ledger.end_date + timedelta(days=300),
        )
        assert accounting_service.get_current_financial_year().id == ledger.id

        financial_year_service.set_current_financial_year(later.id, actor_id=ACTOR)

        assert accounting_service.get_current_financial_year().id == later.id
        assert [fy.id for fy in financial_year_service.list_financial_years()] == [later.id, ledger.id]


# =============================================================================
# AUTOMATIC POSTINGS
# =============================================================================


class TestSalePosting:

    def test_sale_debits_drawer_and_bank_by_tender(self, ledger, auto_post, cashier_session, make_menu_item, printed):
        dish = make_menu_item(name="Thali", price_cents=10000)
        order = order_service.create_order(order_type="TAKEAWAY", cashier_id=ACTOR, session_id=cashier_session.id)
        order_service.add_item(order.id, menu_item_id=dish.id, quantity=1)
        order_service.record_split_payment(
            order.id,
            payments=[
                {"method": "CASH", "amount_cents": 4000},
                {"method": "QR", "amount_cents": 3500},
                {"method": "CARD", "amount_cents": 2500},
            ],
            actor_id=ACTOR,
        )

        order_service.complete_order(order.id, actor_id=ACTOR)

        assert account("1100").current_balance_cents == 4000
        assert account("1101").current_balance_cents == 6000
        assert account("5100").current_balance_cents == 10000
        assert accounting_service.get_trial_balance()["is_balanced"] is True
