"""create search source tables

Revision ID: 3f1c9a7e2b40
Revises:
Create Date: 2026-10-12 09:14:27.512004
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '3f1c9a7e2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('participant_me', sa.String(), nullable=True),
        sa.Column('participant_them', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sessions_user_created', 'sessions', ['user_id', 'created_at'])

    op.create_table(
        'summaries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('tldr', sa.Text(), nullable=True),
        sa.Column('key_decisions', postgresql.JSONB(), nullable=True),
        sa.Column('action_items', postgresql.JSONB(), nullable=True),
        sa.Column('generation_status', sa.String(), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "generation_status IN ('pending', 'generating', 'completed', 'failed')",
            name='ck_summaries_generation_status',
        ),
    )
    op.create_index('ix_summaries_user_created', 'summaries', ['user_id', 'created_at'])

    op.create_table(
        'prep_checklist',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'todo', 'completed', 'cancelled')",
            name='ck_prep_checklist_status',
        ),
    )

    op.create_table(
        'calendar_connections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('provider', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('last_sync', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'calendar_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'connection_id', sa.Uuid(),
            sa.ForeignKey('calendar_connections.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('external_id', sa.String(), nullable=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('attendees', postgresql.JSONB(), nullable=True),
        sa.Column('meeting_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_calendar_events_start_time', 'calendar_events', ['start_time'])


def downgrade() -> None:
    op.drop_index('ix_calendar_events_start_time', table_name='calendar_events')
    op.drop_table('calendar_events')
    op.drop_table('calendar_connections')
    op.drop_table('prep_checklist')
    op.drop_index('ix_summaries_user_created', table_name='summaries')
    op.drop_table('summaries')
    op.drop_index('ix_sessions_user_created', table_name='sessions')
    op.drop_table('sessions')
