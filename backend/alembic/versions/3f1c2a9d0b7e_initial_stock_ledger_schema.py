"""Initial stock ledger schema

Revision ID: 3f1c2a9d0b7e
Revises:
Create Date: 2026-10-19 09:12:44.381205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers used by Alembic
revision: str = '3f1c2a9d0b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

movement_type = sa.Enum('IN', 'OUT', 'TRANSFER', 'ADJUST', name='movement_type')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('sku', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('unit', sa.String(), nullable=False),
        sa.Column('min_stock', sa.Integer(), sa.CheckConstraint('min_stock >= 0'), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_sku', 'products', ['sku'], unique=True)
    op.create_index('ix_products_owner_id', 'products', ['owner_id'])

    op.create_table(
        'warehouses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_warehouses_id', 'warehouses', ['id'])
    op.create_index('ix_warehouses_owner_id', 'warehouses', ['owner_id'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('type', movement_type, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('warehouse_from_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('warehouse_to_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('lot_id', sa.String(), nullable=True),
        sa.Column('reference', sa.String(), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_stock_movements_quantity_positive'),
    )
    op.create_index('ix_stock_movements_id', 'stock_movements', ['id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_warehouse_from_id', 'stock_movements', ['warehouse_from_id'])
    op.create_index('ix_stock_movements_warehouse_to_id', 'stock_movements', ['warehouse_to_id'])
    op.create_index('ix_stock_movements_owner_id', 'stock_movements', ['owner_id'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])

    op.create_table(
        'stock_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.UniqueConstraint('product_id', 'warehouse_id', name='ux_stock_balances_pair'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_balances_quantity_non_negative'),
    )
    op.create_index('ix_stock_balances_id', 'stock_balances', ['id'])
    op.create_index('ix_stock_balances_product_id', 'stock_balances', ['product_id'])
    op.create_index('ix_stock_balances_warehouse_id', 'stock_balances', ['warehouse_id'])

    op.create_table(
        'logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ts', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('resource', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
    )
    op.create_index('ix_logs_id', 'logs', ['id'])
    op.create_index('ix_logs_action', 'logs', ['action'])
    op.create_index('ix_logs_resource', 'logs', ['resource'])
    op.create_index('ix_logs_user_id_ts', 'logs', ['user_id', 'ts'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('logs')
    op.drop_table('stock_balances')
    op.drop_table('stock_movements')
    op.drop_table('warehouses')
    op.drop_table('products')
    op.drop_table('users')
    movement_type.drop(op.get_bind(), checkfirst=True)
