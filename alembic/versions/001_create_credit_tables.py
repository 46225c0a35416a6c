"""Create users and ai_interaction_logs tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create credit balance and interaction log tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dispensary_id', sa.String(128), nullable=True, index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('credits >= 0', name='ck_users_credits_non_negative'),
    )

    # Append-only: rows are inserted by the credit ledger and never updated
    op.create_table(
        'ai_interaction_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(128), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('dispensary_id', sa.String(128), nullable=True),
        sa.Column('credits_used', sa.Integer(), nullable=False),
        sa.Column('was_free_interaction', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('credits_used >= 0', name='ck_ai_interaction_logs_credits_used_non_negative'),
    )

    op.create_index(
        'ix_ai_interaction_logs_user_created',
        'ai_interaction_logs',
        ['user_id', 'created_at'],
    )


def downgrade() -> None:
    """Drop credit tables."""
    op.drop_index('ix_ai_interaction_logs_user_created', table_name='ai_interaction_logs')
    op.drop_table('ai_interaction_logs')
    op.drop_table('users')
