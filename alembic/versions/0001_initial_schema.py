"""initial scheduling schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

booking_status = sa.Enum('PENDING_PAYMENT', 'CONFIRMED', 'CANCELLED', name='booking_status')
integration_provider = sa.Enum('GOOGLE_CALENDAR', 'ZOOM', 'MERCADOPAGO', name='integration_provider')
trigger_type = sa.Enum(
    'BOOKING_CREATED', 'BOOKING_CANCELLED', 'BOOKING_REMINDER_24H', 'BOOKING_REMINDER_1H',
    name='trigger_type',
)
action_type = sa.Enum('SEND_EMAIL', 'SEND_WEBHOOK', name='action_type')
job_status = sa.Enum('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', 'CANCELLED', name='job_status')


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Hosts and their scheduling policy
    op.create_table(
        'hosts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_hosts_username', 'hosts', ['username'], unique=True)

    op.create_table(
        'scheduling_configs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('buffer_before', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buffer_after', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_notice_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('max_days_in_advance', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    # 2. Availability
    op.create_table(
        'weekly_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_weekly_rules_host_day', 'weekly_rules', ['host_id', 'day_of_week'])

    op.create_table(
        'date_overrides',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_date_overrides_host_date', 'date_overrides', ['host_id', 'date'])

    # 3. Event types and bookings
    op.create_table(
        'event_types',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('host_id', 'slug', name='uq_event_types_host_slug'),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type_id', sa.Uuid(), sa.ForeignKey('event_types.id'), nullable=False),
        sa.Column('guest_name', sa.String(200), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=False),
        sa.Column('guest_timezone', sa.String(64), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', booking_status, nullable=False),
        sa.Column('cancellation_token', sa.String(64), nullable=False, unique=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('payment_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('payment_currency', sa.String(3), nullable=True),
        sa.Column('payment_status', sa.String(50), nullable=True),
        sa.Column('payment_id', sa.String(100), nullable=True),
        sa.Column('payment_reference', sa.String(255), nullable=True),
        sa.Column('payment_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('external_event_id', sa.String(255), nullable=True),
        sa.Column('zoom_meeting_id', sa.String(100), nullable=True),
        sa.Column('meeting_url', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_bookings_host_start', 'bookings', ['host_id', 'start_time'])
    op.create_index('ix_bookings_status_expires', 'bookings', ['status', 'payment_expires_at'])

    op.create_table(
        'waitlist_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type_id', sa.Uuid(), sa.ForeignKey('event_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('guest_name', sa.String(200), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('event_type_id', 'guest_email', name='uq_waitlist_event_email'),
    )

    # 4. Integrations (encrypted OAuth tokens)
    op.create_table(
        'integrations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider', integration_provider, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('access_token_encrypted', sa.LargeBinary(), nullable=True),
        sa.Column('refresh_token_encrypted', sa.LargeBinary(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('account_email', sa.String(255), nullable=True),
        sa.Column('provider_config', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('host_id', 'provider', name='uq_integrations_host_provider'),
    )

    # 5. Workflows
    op.create_table(
        'workflows',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'workflow_triggers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('workflow_id', sa.Uuid(), sa.ForeignKey('workflows.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', trigger_type, nullable=False),
    )
    op.create_table(
        'workflow_actions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('workflow_id', sa.Uuid(), sa.ForeignKey('workflows.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', action_type, nullable=False),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
    )

    # 6. Durable job queue
    op.create_table(
        'jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status', job_status, nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=True),
        sa.Column('booking_id', sa.Uuid(), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_jobs_status_scheduled', 'jobs', ['status', 'scheduled_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_jobs_status_scheduled', table_name='jobs')
    op.drop_table('jobs')
    op.drop_table('workflow_actions')
    op.drop_table('workflow_triggers')
    op.drop_table('workflows')
    op.drop_table('integrations')
    op.drop_table('waitlist_entries')
    op.drop_index('ix_bookings_status_expires', table_name='bookings')
    op.drop_index('ix_bookings_host_start', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('event_types')
    op.drop_index('ix_date_overrides_host_date', table_name='date_overrides')
    op.drop_table('date_overrides')
    op.drop_index('ix_weekly_rules_host_day', table_name='weekly_rules')
    op.drop_table('weekly_rules')
    op.drop_table('scheduling_configs')
    op.drop_index('ix_hosts_username', table_name='hosts')
    op.drop_table('hosts')

    bind = op.get_bind()
    for enum_type in (job_status, action_type, trigger_type, integration_provider, booking_status):
        enum_type.drop(bind, checkfirst=True)
