"""Suggested keywords - source column and unique values

Revision ID: 002_suggested_keyword_source
Revises: 001_initial_schema
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002_suggested_keyword_source'
down_revision: Union[str, None] = '001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('suggested_keywords') as batch_op:
        batch_op.add_column(
            sa.Column('source', sa.String(length=32), nullable=False, server_default='admin')
        )
        batch_op.create_unique_constraint('uq_suggested_keywords_value', ['value'])


def downgrade() -> None:
    with op.batch_alter_table('suggested_keywords') as batch_op:
        batch_op.drop_constraint('uq_suggested_keywords_value', type_='unique')
        batch_op.drop_column('source')
