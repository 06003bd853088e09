"""Initial schema - sessions, catalog mirror, wishlists, notifications and jobs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        'shopify_sessions',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('state', sa.String(length=255), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=False),
        sa.Column('scope', sa.Text(), nullable=True),
        sa.Column('expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shopify_sessions_shop', 'shopify_sessions', ['shop'])

    op.create_table(
        'products',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('title', sa.String(length=512), nullable=False),
        sa.Column('handle', sa.String(length=512), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('product_type', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('total_inventory', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_title', 'products', ['title'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('product_id', sa.String(length=128), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('sku', sa.String(length=255), nullable=True),
        sa.Column('barcode', sa.String(length=255), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('inventory_quantity', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    op.create_table(
        'wishlists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_wishlists_customer_id', 'wishlists', ['customer_id'], unique=True)

    op.create_table(
        'keywords',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_keywords_value', 'keywords', ['value'], unique=True)

    op.create_table(
        'wishlist_keywords',
        sa.Column('wishlist_id', sa.Integer(), nullable=False),
        sa.Column('keyword_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['keyword_id'], ['keywords.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['wishlist_id'], ['wishlists.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('wishlist_id', 'keyword_id'),
    )

    op.create_table(
        'suggested_keywords',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'notification_results',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=512), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('length', sa.Integer(), nullable=False),
        sa.Column('shown', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_results_type', 'notification_results', ['type'])
    op.create_index('ix_notification_results_shown', 'notification_results', ['shown'])
    op.create_index('ix_notification_results_created_at', 'notification_results', ['created_at'])

    op.create_table(
        'emails_sent',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('last_sent', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'jobs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_type', sa.String(length=64), nullable=False),
        sa.Column('payload', JSONType, nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('backoff_seconds', sa.Float(), nullable=False),
        sa.Column('run_after', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('result', JSONType, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_jobs_job_type', 'jobs', ['job_type'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_run_after', 'jobs', ['run_after'])

    op.create_table(
        'store_value_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('location_id', sa.String(length=128), nullable=True),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_value_snapshots_shop', 'store_value_snapshots', ['shop'])
    op.create_index('ix_store_value_snapshots_created_at', 'store_value_snapshots', ['created_at'])


def downgrade() -> None:
    op.drop_table('store_value_snapshots')
    op.drop_table('jobs')
    op.drop_table('emails_sent')
    op.drop_table('notification_results')
    op.drop_table('suggested_keywords')
    op.drop_table('wishlist_keywords')
    op.drop_table('keywords')
    op.drop_table('wishlists')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('shopify_sessions')
