"""Lots - bulk purchases, their products and variants, and vendor debt payments

Revision ID: 003_lots
Revises: 002_suggested_keyword_source
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '003_lots'
down_revision: Union[str, None] = '002_suggested_keyword_source'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'lots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('lot_value', sa.Float(), nullable=True),
        sa.Column('initial_debt', sa.Float(), nullable=False),
        sa.Column('shipping_status', sa.String(length=32), nullable=False),
        sa.Column('tracking_number', sa.String(length=64), nullable=True),
        sa.Column('estimated_delivery_date', sa.Date(), nullable=True),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        sa.Column('lot_type', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('spreadsheet_link', sa.String(length=1024), nullable=True),
        sa.Column('collector_link', sa.String(length=1024), nullable=True),
        sa.Column('is_converted', sa.Boolean(), nullable=False),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'lot_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=512), nullable=False),
        sa.Column('sku', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('estimated_quantity', sa.Integer(), nullable=False),
        sa.Column('shopify_product_id', sa.String(length=128), nullable=True),
        sa.Column('is_converted', sa.Boolean(), nullable=False),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['lot_id'], ['lots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_lot_products_lot_id', 'lot_products', ['lot_id'])

    op.create_table(
        'lot_product_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lot_product_id', sa.Integer(), nullable=False),
        sa.Column('variant_name', sa.String(length=255), nullable=False),
        sa.Column('condition', sa.String(length=64), nullable=True),
        sa.Column('rarity', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('estimated_value', sa.Float(), nullable=True),
        sa.Column('shopify_variant_id', sa.String(length=128), nullable=True),
        sa.Column('is_converted', sa.Boolean(), nullable=False),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['lot_product_id'], ['lot_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_lot_product_variants_lot_product_id', 'lot_product_variants', ['lot_product_id'])

    op.create_table(
        'debt_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=False),
        sa.Column('payment_amount', sa.Float(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['lot_id'], ['lots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_debt_payments_lot_id', 'debt_payments', ['lot_id'])


def downgrade() -> None:
    op.drop_index('ix_debt_payments_lot_id', table_name='debt_payments')
    op.drop_table('debt_payments')
    op.drop_index('ix_lot_product_variants_lot_product_id', table_name='lot_product_variants')
    op.drop_table('lot_product_variants')
    op.drop_index('ix_lot_products_lot_id', table_name='lot_products')
    op.drop_table('lot_products')
    op.drop_table('lots')
