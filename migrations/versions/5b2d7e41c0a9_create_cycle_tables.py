"""create_cycle_tables

Revision ID: 5b2d7e41c0a9
Revises:
Create Date: 2026-10-19 10:12:03.481520

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b2d7e41c0a9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - Create profile, history, reminder and sweep state tables."""

    op.create_table(
        'cycle_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subject_id', sa.String(length=64), nullable=False),
        sa.Column('last_period_start', sa.Date(), nullable=True),
        sa.Column('average_cycle_length', sa.Integer(), nullable=False, server_default='28'),
        sa.Column('period_duration', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('reminder_days', sa.JSON(), nullable=False),
        sa.Column('notification_hour', sa.Integer(), nullable=False, server_default='9'),
        sa.Column('timezone', sa.String(length=50), nullable=False, server_default='UTC'),
        sa.Column('fertile_window_reminders', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'average_cycle_length >= 21 AND average_cycle_length <= 45',
            name='check_average_cycle_length'
        ),
        sa.CheckConstraint('period_duration >= 1 AND period_duration <= 10', name='check_period_duration'),
        sa.CheckConstraint('notification_hour >= 0 AND notification_hour <= 23', name='check_notification_hour'),
    )
    op.create_index('ix_cycle_profiles_subject_id', 'cycle_profiles', ['subject_id'], unique=True)

    op.create_table(
        'cycle_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('length', sa.Integer(), nullable=True),
        sa.Column('recorded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['cycle_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cycle_entries_profile_id', 'cycle_entries', ['profile_id'], unique=False)
    op.create_index('ix_cycle_entries_start_date', 'cycle_entries', ['start_date'], unique=False)

    op.create_table(
        'reminders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subject_id', sa.String(length=64), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('priority', sa.String(length=10), nullable=False, server_default='medium'),
        sa.Column('due_at', sa.DateTime(), nullable=False),
        sa.Column('sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reminders_subject_id', 'reminders', ['subject_id'], unique=False)

    # Due-reminder scan of the sweep
    op.create_index('ix_reminders_sent_due_at', 'reminders', ['sent', 'due_at'], unique=False)

    # Pending-reminder replacement per subject and category
    op.create_index(
        'ix_reminders_subject_category_sent',
        'reminders',
        ['subject_id', 'category', 'sent'],
        unique=False
    )

    op.create_table(
        'sweep_state',
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('last_run_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('name'),
    )


def downgrade() -> None:
    """Downgrade schema - Drop all cycle tables."""

    op.drop_table('sweep_state')
    op.drop_index('ix_reminders_subject_category_sent', table_name='reminders')
    op.drop_index('ix_reminders_sent_due_at', table_name='reminders')
    op.drop_index('ix_reminders_subject_id', table_name='reminders')
    op.drop_table('reminders')
    op.drop_index('ix_cycle_entries_start_date', table_name='cycle_entries')
    op.drop_index('ix_cycle_entries_profile_id', table_name='cycle_entries')
    op.drop_table('cycle_entries')
    op.drop_index('ix_cycle_profiles_subject_id', table_name='cycle_profiles')
    op.drop_table('cycle_profiles')
