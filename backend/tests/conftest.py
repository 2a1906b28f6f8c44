"""
Pytest fixtures for restopos backend tests.

Provides the test database, per-test table wipe, factory fixtures for the
catalog/stock/ledger, a capturing printer and the test client.
"""

from datetime import timedelta

import pytest
from restopos import create_app
from restopos.extensions import db
from restopos.models import DiningTable, Discount, MenuItem, RecipeLine, TaxSetting
from restopos.services import (
    accounting_service,
    cashier_service,
    financial_year_service,
    purchase_service,
    selection_service,
    stock_service,
)
from restopos.services.printer_service import PRINTER_EXTENSION_KEY
from restopos.time_utils import utcnow


ACTOR = "cashier-1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STOCK_OVERSELL_POLICY': 'REJECT',
        'AUTO_POST_LEDGER': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def printed(app, monkeypatch):
    """Capture print jobs instead of logging them."""
    jobs = []
    monkeypatch.setitem(app.extensions, PRINTER_EXTENSION_KEY, lambda kind, payload: jobs.append((kind, payload)))
    return jobs


@pytest.fixture(scope='function')
def auto_post(app, monkeypatch):
    monkeypatch.setitem(app.config, 'AUTO_POST_LEDGER', True)


@pytest.fixture(scope='function')
def clamp_policy(app, monkeypatch):
    monkeypatch.setitem(app.config, 'STOCK_OVERSELL_POLICY', 'CLAMP')


@pytest.fixture(scope='function')
def cashier_session(db_session):
    """Open session for ACTOR with 1000.00 opening cash."""
    return cashier_service.open_session(cashier_id=ACTOR, opening_cash_cents=100000)


@pytest.fixture(scope='function')
def make_ingredient(db_session):
    def _make(name="Chicken", opening_stock=10, cost_per_unit_cents=0, reorder_level=0, unit="kg"):
        return stock_service.create_ingredient(
            name=name,
            unit=unit,
            opening_stock=opening_stock,
            reorder_level=reorder_level,
            cost_per_unit_cents=cost_per_unit_cents,
            actor_id=ACTOR,
        )
    return _make


@pytest.fixture(scope='function')
def make_menu_item(db_session):
    """make_menu_item(name, price_cents, recipe=[(ingredient, qty_per_unit), ...])"""
    def _make(name="Momo", price_cents=10000, recipe=()):
        item = MenuItem(name=name, price_cents=price_cents, is_active=True)
        db_session.add(item)
        db_session.flush()
        for ingredient, quantity in recipe:
            db_session.add(RecipeLine(menu_item_id=item.id, ingredient_id=ingredient.id, quantity=quantity))
        db_session.commit()
        return item
    return _make


@pytest.fixture(scope='function')
def make_table(db_session):
    def _make(table_number="T1"):
        table = DiningTable(table_number=table_number, capacity=4)
        db_session.add(table)
        db_session.commit()
        return table
    return _make


@pytest.fixture(scope='function')
def make_discount(db_session):
    def _make(**kwargs):
        values = {
            "name": "Ten off",
            "discount_type": "PERCENTAGE",
            "percent_bps": 1000,
            "used_count": 0,
            "applicable_to": "ALL",
            "is_active": True,
        }
        values.update(kwargs)
        discount = Discount(**values)
        db_session.add(discount)
        db_session.commit()
        return discount
    return _make


@pytest.fixture(scope='function')
def vat_13(db_session):
    """13% tax set active."""
    tax = TaxSetting(name="VAT", rate_bps=1300)
    db_session.add(tax)
    db_session.commit()
    selection_service.set_active_tax(tax.id, actor_id=ACTOR)
    return tax


@pytest.fixture(scope='function')
def supplier(db_session):
    return purchase_service.create_supplier(name="Valley Farms", phone="555-0101")


@pytest.fixture(scope='function')
def ledger(db_session):
    """Default chart of accounts and a current financial year around now."""
    accounting_service.initialize_default_accounts(actor_id=ACTOR)
    now = utcnow()
    fy = financial_year_service.create_financial_year(
        name="FY Test",
        start_date=now - timedelta(days=30),
        end_date=now + timedelta(days=300),
        set_current=True,
        actor_id=ACTOR,
    )
    return fy


def account(code: str):
    return accounting_service.get_account_by_code(code)


def actor_headers(actor_id: str = ACTOR) -> dict:
    """Helper to create the actor identity header."""
    return {'X-Actor-Id': actor_id}
