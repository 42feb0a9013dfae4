"""Initial forecourt schema: locations, catalog, fuel, shift closures, cash, audit

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

This migration adds:
1. Locations and per-location config (consolidated_payment_mode)
2. Products and payment methods
3. Tanks, calibration tables, dispensers and hoses
4. Shift records (unique per location/date/start/end), payment breakdowns
5. Meter history and product-sale history
6. Cash ledgers and entries
7. Audit events
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. LOCATIONS
    # ==========================================================================
    op.create_table('locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_locations_code', 'locations', ['code'], unique=True)
    op.create_index('ix_locations_is_active', 'locations', ['is_active'])

    op.create_table('location_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_id', 'key', name='uq_location_configs_location_key'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_location_configs_location_id', 'location_configs', ['location_id'])

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('product_type', sa.String(length=32), nullable=True),
        sa.Column('unit', sa.String(length=16), nullable=False, server_default='UNITS'),
        sa.Column('is_fuel', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('sale_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('current_stock', sa.Float(), nullable=False, server_default='0'),
        sa.Column('min_stock', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_code', 'products', ['code'], unique=True)
    op.create_index('ix_products_fuel_active', 'products', ['is_fuel', 'is_active'])

    op.create_table('payment_methods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_payment_methods_code', 'payment_methods', ['code'], unique=True)

    # ==========================================================================
    # 3. FUEL: TANKS, CALIBRATION, DISPENSERS, HOSES
    # ==========================================================================
    op.create_table('tanks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('tank_type', sa.String(length=16), nullable=False, server_default='FIXED'),
        sa.Column('unit', sa.String(length=16), nullable=False, server_default='GALLONS'),
        sa.Column('capacity', sa.Float(), nullable=False),
        sa.Column('current_level', sa.Float(), nullable=False, server_default='0'),
        sa.Column('min_level', sa.Float(), nullable=False, server_default='0'),
        sa.Column('current_height', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_tanks_location_id', 'tanks', ['location_id'])
    op.create_index('ix_tanks_product_id', 'tanks', ['product_id'])
    op.create_index('ix_tanks_product_location_active', 'tanks', ['product_id', 'location_id', 'is_active'])

    op.create_table('tank_calibration_points',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tank_id', sa.Integer(), nullable=False),
        sa.Column('height_cm', sa.Float(), nullable=False),
        sa.Column('volume_liters', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['tank_id'], ['tanks.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tank_id', 'height_cm', name='uq_tank_calibration_tank_height'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_tank_calibration_points_tank_id', 'tank_calibration_points', ['tank_id'])

    op.create_table('dispensers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_id', 'number', name='uq_dispensers_location_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_dispensers_location_id', 'dispensers', ['location_id'])

    op.create_table('hoses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('dispenser_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(length=32), nullable=False),
        sa.Column('previous_reading', sa.Float(), nullable=False, server_default='0'),
        sa.Column('current_reading', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['dispenser_id'], ['dispensers.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('dispenser_id', 'number', name='uq_hoses_dispenser_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_hoses_dispenser_id', 'hoses', ['dispenser_id'])
    op.create_index('ix_hoses_product_id', 'hoses', ['product_id'])

    # ==========================================================================
    # 4. SHIFT RECORDS
    # ==========================================================================
    op.create_table('shift_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('operator_id', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('total_liters', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_gallons', sa.Float(), nullable=False, server_default='0'),
        sa.Column('computed_total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('declared_total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('variance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_card', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_transfer', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_loyalty', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_vouchers', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_other', sa.Float(), nullable=False, server_default='0'),
        sa.Column('products_updated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tanks_updated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('errors', sa.JSON(), nullable=False),
        sa.Column('warnings', sa.JSON(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_id', 'shift_date', 'start_time', 'end_time',
                            name='uq_shift_records_location_key'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_shift_records_location_id', 'shift_records', ['location_id'])
    op.create_index('ix_shift_records_operator_id', 'shift_records', ['operator_id'])
    op.create_index('ix_shift_records_status', 'shift_records', ['status'])
    op.create_index('ix_shift_records_closed_at', 'shift_records', ['closed_at'])

    op.create_table('shift_payment_breakdowns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('method_code', sa.String(length=64), nullable=False),
        sa.Column('bucket', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['shift_id'], ['shift_records.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_shift_payment_breakdowns_shift_id', 'shift_payment_breakdowns', ['shift_id'])
    op.create_index('ix_shift_payment_breakdowns_method_code', 'shift_payment_breakdowns', ['method_code'])

    # ==========================================================================
    # 5. HISTORY
    # ==========================================================================
    op.create_table('meter_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('hose_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=True),
        sa.Column('previous_reading', sa.Float(), nullable=False),
        sa.Column('current_reading', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('operation_type', sa.String(length=32), nullable=False, server_default='SHIFT_CLOSURE'),
        sa.Column('operator_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['hose_id'], ['hoses.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shift_records.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_meter_history_hose_id', 'meter_history', ['hose_id'])
    op.create_index('ix_meter_history_shift_id', 'meter_history', ['shift_id'])
    op.create_index('ix_meter_history_operator_id', 'meter_history', ['operator_id'])
    op.create_index('ix_meter_history_hose_read', 'meter_history', ['hose_id', 'read_at'])

    op.create_table('product_sale_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('payment_method_id', sa.Integer(), nullable=False),
        sa.Column('operator_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('total_value', sa.Float(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shift_id'], ['shift_records.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['payment_method_id'], ['payment_methods.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_product_sale_history_shift_id', 'product_sale_history', ['shift_id'])
    op.create_index('ix_product_sale_history_location_id', 'product_sale_history', ['location_id'])
    op.create_index('ix_product_sale_history_product_id', 'product_sale_history', ['product_id'])
    op.create_index('ix_product_sale_history_payment_method_id', 'product_sale_history', ['payment_method_id'])
    op.create_index('ix_product_sale_history_location_sold', 'product_sale_history', ['location_id', 'sold_at'])

    # ==========================================================================
    # 6. CASH
    # ==========================================================================
    op.create_table('cash_ledgers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('opening_balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('last_movement_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cash_ledgers_location_id', 'cash_ledgers', ['location_id'], unique=True)

    op.create_table('cash_ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ledger_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=True),
        sa.Column('entry_type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('concept', sa.String(length=128), nullable=False),
        sa.Column('detail', sa.String(length=255), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('is_automatic', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['ledger_id'], ['cash_ledgers.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shift_records.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cash_ledger_entries_ledger_id', 'cash_ledger_entries', ['ledger_id'])
    op.create_index('ix_cash_ledger_entries_shift_id', 'cash_ledger_entries', ['shift_id'])
    op.create_index('ix_cash_entries_ledger_occurred', 'cash_ledger_entries', ['ledger_id', 'occurred_at'])

    # ==========================================================================
    # 7. AUDIT
    # ==========================================================================
    op.create_table('audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('event_category', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('shift_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shift_records.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_audit_events_location_id', 'audit_events', ['location_id'])
    op.create_index('ix_audit_events_event_type', 'audit_events', ['event_type'])
    op.create_index('ix_audit_events_event_category', 'audit_events', ['event_category'])
    op.create_index('ix_audit_events_entity_type', 'audit_events', ['entity_type'])
    op.create_index('ix_audit_events_entity_id', 'audit_events', ['entity_id'])
    op.create_index('ix_audit_events_actor_id', 'audit_events', ['actor_id'])
    op.create_index('ix_audit_events_shift_id', 'audit_events', ['shift_id'])
    op.create_index('ix_audit_events_occurred_at', 'audit_events', ['occurred_at'])
    op.create_index('ix_audit_events_location_occurred', 'audit_events', ['location_id', 'occurred_at'])


def downgrade():
    op.drop_table('audit_events')
    op.drop_table('cash_ledger_entries')
    op.drop_table('cash_ledgers')
    op.drop_table('product_sale_history')
    op.drop_table('meter_history')
    op.drop_table('shift_payment_breakdowns')
    op.drop_table('shift_records')
    op.drop_table('hoses')
    op.drop_table('dispensers')
    op.drop_table('tank_calibration_points')
    op.drop_table('tanks')
    op.drop_table('payment_methods')
    op.drop_table('products')
    op.drop_table('location_configs')
    op.drop_table('locations')
