"""create level progression tables

Revision ID: 20261019120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create level_progress and level_milestones tables."""
    op.create_table(
        'level_progress',
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('total_xp', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_table(
        'level_milestones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('old_level', sa.Integer(), nullable=False),
        sa.Column('new_level', sa.Integer(), nullable=False),
        sa.Column('xp_gained', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_xp', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('reward_type', sa.String(length=32), nullable=True),
        sa.Column('achieved_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_level_milestones_id'), 'level_milestones', ['id'], unique=False)
    op.create_index(op.f('ix_level_milestones_user_id'), 'level_milestones', ['user_id'], unique=False)
    op.create_index('ix_level_milestones_user_achieved', 'level_milestones', ['user_id', 'achieved_at'], unique=False)


def downgrade() -> None:
    """Drop level progression tables."""
    op.drop_index('ix_level_milestones_user_achieved', table_name='level_milestones')
    op.drop_index(op.f('ix_level_milestones_user_id'), table_name='level_milestones')
    op.drop_index(op.f('ix_level_milestones_id'), table_name='level_milestones')
    op.drop_table('level_milestones')
    op.drop_table('level_progress')
