"""initial restaurant schema

Revision ID: r0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete restopos schema from scratch:
- document_sequences / current_selections / audit_events: numbering, pointers, audit spine
- menu_items / recipe_lines / discounts / tax_settings / dining_tables: catalog
- ingredients / stock_movements: append-only stock ledger
- suppliers / purchases / purchase_items: purchase receiving
- customers / cashier_sessions / orders / order_items / payments: front of house
- financial_years / chart_of_accounts / accounting_transactions / accounting_entries: general ledger
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'r0001'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def _ts(name, nullable=False, default=True):
    if default:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable, server_default=_now())
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


QTY = sa.Numeric(14, 3)


def upgrade():
    # ============================================================================
    # Document numbering, current pointers, audit trail
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=32), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        _ts('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scope', 'document_type', name='uq_doc_sequences_scope_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_scope', 'document_sequences', ['scope'])
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])

    op.create_table(
        'current_selections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.String(length=64), nullable=True),
        _ts('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('event_category', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        _ts('occurred_at'),
        _ts('created_at'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_audit_events_event_type', 'audit_events', ['event_type'])
    op.create_index('ix_audit_events_event_category', 'audit_events', ['event_category'])
    op.create_index('ix_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])

    # ============================================================================
    # Catalog
    # ============================================================================
    op.create_table(
        'menu_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'ingredients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('current_stock', QTY, nullable=False),
        sa.Column('reorder_level', QTY, nullable=False),
        sa.Column('cost_per_unit_cents', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.CheckConstraint('current_stock >= 0', name='ck_ingredients_stock_non_negative'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'recipe_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id']),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredients.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('menu_item_id', 'ingredient_id', name='uq_recipe_lines_item_ingredient'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_recipe_lines_menu_item_id', 'recipe_lines', ['menu_item_id'])
    op.create_index('ix_recipe_lines_ingredient_id', 'recipe_lines', ['ingredient_id'])

    op.create_table(
        'discounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=True),
        sa.Column('discount_type', sa.String(length=16), nullable=False),
        sa.Column('percent_bps', sa.Integer(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=True),
        sa.Column('max_discount_cents', sa.Integer(), nullable=True),
        sa.Column('min_order_cents', sa.Integer(), nullable=True),
        _ts('valid_from', nullable=True, default=False),
        _ts('valid_to', nullable=True, default=False),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        sa.Column('applicable_to', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_discounts_code', 'discounts', ['code'], unique=True)

    op.create_table(
        'tax_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('rate_bps', sa.Integer(), nullable=False),
        _ts('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'dining_tables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_number', sa.String(length=32), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('current_order_id', sa.Integer(), nullable=True),
        _ts('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('table_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_dining_tables_status', 'dining_tables', ['status'])

    # ============================================================================
    # Stock ledger (append-only)
    # ============================================================================
    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('requested_quantity', QTY, nullable=True),
        sa.Column('previous_stock', QTY, nullable=False),
        sa.Column('new_stock', QTY, nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredients.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_ingredient_id', 'stock_movements', ['ingredient_id'])
    op.create_index('ix_stock_movements_movement_type', 'stock_movements', ['movement_type'])
    op.create_index('ix_stock_movements_reference', 'stock_movements', ['reference_type', 'reference_id'])

    # ============================================================================
    # Purchase receiving
    # ============================================================================
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('invoice_no', sa.String(length=64), nullable=False),
        _ts('purchase_date', default=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False),
        sa.Column('net_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        sa.Column('received_by', sa.String(length=64), nullable=True),
        _ts('received_at', nullable=True, default=False),
        sa.Column('cancelled_by', sa.String(length=64), nullable=True),
        _ts('cancelled_at', nullable=True, default=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchases_supplier_id', 'purchases', ['supplier_id'])
    op.create_index('ix_purchases_status_date', 'purchases', ['status', 'purchase_date'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id']),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredients.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_items_purchase_id', 'purchase_items', ['purchase_id'])
    op.create_index('ix_purchase_items_ingredient_id', 'purchase_items', ['ingredient_id'])

    # ============================================================================
    # Front of house
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('credit_limit_cents', sa.Integer(), nullable=False),
        sa.Column('current_credit_cents', sa.Integer(), nullable=False),
        sa.Column('total_orders', sa.Integer(), nullable=False),
        sa.Column('total_spent_cents', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('created_at'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_phone', 'customers', ['phone'])

    op.create_table(
        'cashier_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cashier_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('opening_cash_cents', sa.Integer(), nullable=False),
        sa.Column('total_cash_sales_cents', sa.Integer(), nullable=False),
        sa.Column('total_card_sales_cents', sa.Integer(), nullable=False),
        sa.Column('total_qr_sales_cents', sa.Integer(), nullable=False),
        sa.Column('total_credit_sales_cents', sa.Integer(), nullable=False),
        sa.Column('total_orders', sa.Integer(), nullable=False),
        sa.Column('expected_cash_cents', sa.Integer(), nullable=True),
        sa.Column('closing_cash_cents', sa.Integer(), nullable=True),
        sa.Column('cash_variance_cents', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _ts('opened_at'),
        _ts('closed_at', nullable=True, default=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cashier_sessions_status', 'cashier_sessions', ['status'])
    op.create_index('ix_cashier_sessions_cashier_status', 'cashier_sessions', ['cashier_id', 'status'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('order_type', sa.String(length=16), nullable=False),
        sa.Column('table_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('waiter_id', sa.String(length=64), nullable=True),
        sa.Column('cashier_id', sa.String(length=64), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_id', sa.Integer(), nullable=True),
        sa.Column('manual_discount_cents', sa.Integer(), nullable=True),
        sa.Column('discount_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('service_charge_cents', sa.Integer(), nullable=False),
        sa.Column('grand_total_cents', sa.Integer(), nullable=False),
        sa.Column('paid_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
        _ts('completed_at', nullable=True, default=False),
        _ts('cancelled_at', nullable=True, default=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['table_id'], ['dining_tables.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['session_id'], ['cashier_sessions.id']),
        sa.ForeignKeyConstraint(['discount_id'], ['discounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_table_id', 'orders', ['table_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_session_id', 'orders', ['session_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_index('ix_orders_session_status', 'orders', ['session_id', 'status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('kot_printed', sa.Boolean(), nullable=False),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('received_by', sa.String(length=64), nullable=False),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['session_id'], ['cashier_sessions.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])
    op.create_index('ix_payments_customer_id', 'payments', ['customer_id'])
    op.create_index('ix_payments_session_id', 'payments', ['session_id'])
    op.create_index('ix_payments_method', 'payments', ['method'])
    op.create_index('ix_payments_created_at', 'payments', ['created_at'])

    # ============================================================================
    # General ledger
    # ============================================================================
    op.create_table(
        'financial_years',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        _ts('start_date', default=False),
        _ts('end_date', default=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('closed_by', sa.String(length=64), nullable=True),
        _ts('closed_at', nullable=True, default=False),
        _ts('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_financial_years_status', 'financial_years', ['status'])

    op.create_table(
        'chart_of_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('account_type', sa.String(length=16), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('opening_balance_cents', sa.Integer(), nullable=False),
        sa.Column('current_balance_cents', sa.Integer(), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['chart_of_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_chart_of_accounts_account_type', 'chart_of_accounts', ['account_type'])
    op.create_index('ix_chart_of_accounts_parent_id', 'chart_of_accounts', ['parent_id'])

    op.create_table(
        'accounting_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('financial_year_id', sa.Integer(), nullable=False),
        _ts('transaction_date', default=False),
        sa.Column('voucher_number', sa.String(length=32), nullable=False),
        sa.Column('voucher_type', sa.String(length=16), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['financial_year_id'], ['financial_years.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('financial_year_id', 'voucher_number', name='uq_acct_txn_year_voucher'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_accounting_transactions_financial_year_id', 'accounting_transactions', ['financial_year_id'])
    op.create_index('ix_accounting_transactions_transaction_date', 'accounting_transactions', ['transaction_date'])
    op.create_index('ix_accounting_transactions_voucher_type', 'accounting_transactions', ['voucher_type'])
    op.create_index('ix_acct_txn_reference', 'accounting_transactions', ['reference_type', 'reference_id'])

    op.create_table(
        'accounting_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('debit_cents', sa.Integer(), nullable=False),
        sa.Column('credit_cents', sa.Integer(), nullable=False),
        sa.Column('narration', sa.Text(), nullable=True),
        _ts('created_at'),
        sa.ForeignKeyConstraint(['transaction_id'], ['accounting_transactions.id']),
        sa.ForeignKeyConstraint(['account_id'], ['chart_of_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('debit_cents >= 0 AND credit_cents >= 0', name='ck_acct_entries_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_accounting_entries_transaction_id', 'accounting_entries', ['transaction_id'])
    op.create_index('ix_accounting_entries_account_id', 'accounting_entries', ['account_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('accounting_entries')
    op.drop_table('accounting_transactions')
    op.drop_table('chart_of_accounts')
    op.drop_table('financial_years')
    op.drop_table('payments')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cashier_sessions')
    op.drop_table('customers')
    op.drop_table('purchase_items')
    op.drop_table('purchases')
    op.drop_table('suppliers')
    op.drop_table('stock_movements')
    op.drop_table('dining_tables')
    op.drop_table('tax_settings')
    op.drop_table('discounts')
    op.drop_table('recipe_lines')
    op.drop_table('ingredients')
    op.drop_table('menu_items')
    op.drop_table('audit_events')
    op.drop_table('current_selections')
    op.drop_table('document_sequences')
