"""Create the kv_entries cache table

Revision ID: 001_kv_entries
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_kv_entries'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'kv_entries',
        sa.Column('key', sa.String(length=512), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_index(op.f('ix_kv_entries_expires_at'), 'kv_entries', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_kv_entries_expires_at'), table_name='kv_entries')
    op.drop_table('kv_entries')
