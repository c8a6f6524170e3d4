"""create_scoring_tables

Revision ID: f1a2b3c4d5e6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = 'f1a2b3c4d5e6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('sleep_logs',
        sa.Column('id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('start_at', sa.DateTime(), nullable=True),
        sa.Column('end_at', sa.DateTime(), nullable=True),
        sa.Column('type', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('start_ts', sa.DateTime(), nullable=True),
        sa.Column('end_ts', sa.DateTime(), nullable=True),
        sa.Column('naps', sa.Integer(), nullable=True),
        sa.Column('sleep_hours', sa.Float(), nullable=True),
        sa.Column('quality', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sleep_logs_user_id'), 'sleep_logs', ['user_id'])
    op.create_index(op.f('ix_sleep_logs_date'), 'sleep_logs', ['date'])

    op.create_table('shifts',
        sa.Column('id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('label', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('start_ts', sa.DateTime(), nullable=True),
        sa.Column('end_ts', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'date', name='uq_shifts_user_date'),
    )
    op.create_index(op.f('ix_shifts_user_id'), 'shifts', ['user_id'])
    op.create_index(op.f('ix_shifts_date'), 'shifts', ['date'])

    op.create_table('activity_logs',
        sa.Column('id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('ts', sa.DateTime(), nullable=True),
        sa.Column('steps', sa.Integer(), nullable=True),
        sa.Column('active_minutes', sa.Integer(), nullable=True),
        sa.Column('shift_activity_level', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_activity_logs_user_id'), 'activity_logs', ['user_id'])
    op.create_index(op.f('ix_activity_logs_date'), 'activity_logs', ['date'])

    op.create_table('profiles',
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('sleep_goal_h', sa.Float(), nullable=True),
        sa.Column('daily_steps_goal', sa.Integer(), nullable=True),
        sa.Column('active_minutes_goal', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table('shift_rhythm_scores',
        sa.Column('id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('sleep_score', sa.Integer(), nullable=True),
        sa.Column('regularity_score', sa.Integer(), nullable=True),
        sa.Column('shift_pattern_score', sa.Integer(), nullable=True),
        sa.Column('recovery_score', sa.Integer(), nullable=True),
        sa.Column('nutrition_score', sa.Integer(), nullable=True),
        sa.Column('activity_score', sa.Integer(), nullable=True),
        sa.Column('meal_timing_score', sa.Integer(), nullable=True),
        sa.Column('total_score', sa.Integer(), nullable=False),
        sa.Column('has_rhythm_data', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'date', name='uq_shift_rhythm_user_date'),
    )
    op.create_index(op.f('ix_shift_rhythm_scores_user_id'), 'shift_rhythm_scores', ['user_id'])
    op.create_index(op.f('ix_shift_rhythm_scores_date'), 'shift_rhythm_scores', ['date'])


def downgrade() -> None:
    op.drop_index(op.f('ix_shift_rhythm_scores_date'), table_name='shift_rhythm_scores')
    op.drop_index(op.f('ix_shift_rhythm_scores_user_id'), table_name='shift_rhythm_scores')
    op.drop_table('shift_rhythm_scores')
    op.drop_table('profiles')
    op.drop_index(op.f('ix_activity_logs_date'), table_name='activity_logs')
    op.drop_index(op.f('ix_activity_logs_user_id'), table_name='activity_logs')
    op.drop_table('activity_logs')
    op.drop_index(op.f('ix_shifts_date'), table_name='shifts')
    op.drop_index(op.f('ix_shifts_user_id'), table_name='shifts')
    op.drop_table('shifts')
    op.drop_index(op.f('ix_sleep_logs_date'), table_name='sleep_logs')
    op.drop_index(op.f('ix_sleep_logs_user_id'), table_name='sleep_logs')
    op.drop_table('sleep_logs')
