"""create_job_log_tables

Revision ID: 5a7d1c9e3b20
Revises:
Create Date: 2026-10-18 10:00:00.000000

Creates the append-only job_events table and the job_states table that
is upserted alongside every append.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5a7d1c9e3b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create job_events and job_states."""
    op.create_table(
        'job_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_id', sa.String(length=100), nullable=False),
        sa.Column('activity', sa.String(length=50), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_job_events_job_id', 'job_events', ['job_id'])
    op.create_index('ix_job_events_job_id_activity', 'job_events', ['job_id', 'activity'])

    op.create_table(
        'job_states',
        sa.Column('job_id', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('last_activity', sa.String(length=50), nullable=False),
        sa.Column('last_event_id', sa.Integer(), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('job_id'),
    )
    op.create_index('ix_job_states_status', 'job_states', ['status'])


def downgrade() -> None:
    """Drop job_states and job_events."""
    op.drop_index('ix_job_states_status', table_name='job_states')
    op.drop_table('job_states')
    op.drop_index('ix_job_events_job_id_activity', table_name='job_events')
    op.drop_index('ix_job_events_job_id', table_name='job_events')
    op.drop_table('job_events')
