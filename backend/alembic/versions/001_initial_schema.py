"""Initial MAKAO schema

Revision ID: 001_initial
Revises:
Create Date: 2025-01-06

Money as NUMERIC(12, 2). Enum columns store lowercase values.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOTIFICATION_TYPES = (
    'PAYMENT_REMINDER', 'PAYMENT_RECEIVED', 'PAYMENT_SUBMITTED', 'PAYMENT_CONFIRMATION',
    'PAYMENT_REJECTED', 'MAINTENANCE_UPDATE',
    'LEASE_EXPIRY', 'WELCOME', 'GENERAL_ANNOUNCEMENT',
)


def upgrade() -> None:
    # === USERS ===
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('external_id', sa.String(128), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=False, index=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('profile_image_url', sa.String(500), nullable=True),
        sa.Column('role', sa.Enum('tenant', 'landlord', 'admin', name='user_role'), nullable=False, server_default='tenant'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === PROPERTIES ===
    op.create_table(
        'properties',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.String(500), nullable=False),
        sa.Column('property_type', sa.Enum('apartment', 'house', 'commercial', name='property_type'), nullable=False),
        sa.Column('status', sa.Enum('active', 'inactive', name='property_status'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('total_units', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === UNITS ===
    op.create_table(
        'units',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('property_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('unit_number', sa.String(50), nullable=False),
        sa.Column('floor_number', sa.String(20), nullable=True),
        sa.Column('status', sa.Enum('vacant', 'occupied', 'maintenance', 'renovation', name='unit_status'), nullable=False, index=True),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Integer(), nullable=True),
        sa.Column('square_feet', sa.Integer(), nullable=True),
        sa.Column('rent_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('deposit_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('property_id', 'unit_number', name='uq_units_property_unit_number'),
    )

    # === LEASES ===
    op.create_table(
        'leases',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('unit_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('status', sa.Enum('pending', 'active', 'expired', 'terminated', name='lease_status'), nullable=False, index=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('terminated_at', sa.DateTime(), nullable=True),
        sa.Column('rent_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('deposit_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('payment_day', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('payment_day >= 1 AND payment_day <= 28', name='ck_lease_payment_day_range'),
    )
    # At most one active lease per unit
    op.create_index(
        'uq_leases_one_active_per_unit',
        'leases',
        ['unit_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # === PAYMENTS ===
    op.create_table(
        'payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('lease_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leases.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.Enum('cash', 'bank_transfer', 'mpesa', 'card', 'other', name='payment_method'), nullable=False),
        sa.Column('payment_type', sa.Enum('rent', 'deposit', 'utility', 'other', name='payment_type'), nullable=False),
        sa.Column('reference_number', sa.String(100), nullable=False),
        sa.Column('month', sa.String(7), nullable=True, index=True),
        sa.Column('status', sa.Enum('pending', 'verified', 'completed', 'rejected', name='payment_status'), nullable=False, index=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('verified_by_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('lease_id', 'reference_number', name='uq_payments_lease_reference'),
    )

    # === MAINTENANCE REQUESTS ===
    op.create_table(
        'maintenance_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('unit_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'in_progress', 'completed', 'cancelled', name='maintenance_status'), nullable=False, index=True),
        sa.Column('priority', sa.Enum('low', 'medium', 'high', 'emergency', name='maintenance_priority'), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === NOTIFICATIONS ===
    notification_type = postgresql.ENUM(*NOTIFICATION_TYPES, name='notification_type', create_type=False)
    notification_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('type', notification_type, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), default=False, index=True),
        sa.Column('email_sent', sa.Boolean(), default=False),
        sa.Column('sms_sent', sa.Boolean(), default=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    # === SCHEDULED NOTIFICATIONS (outbox) ===
    op.create_table(
        'scheduled_notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('notification_type', notification_type, nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('recipient', postgresql.JSONB(), nullable=False),
        sa.Column('variables', postgresql.JSONB(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'processing', 'delivered', 'failed', 'dead_letter', name='delivery_status'), nullable=False, index=True),
        sa.Column('unique_scope', sa.String(500), unique=True, nullable=False),
        sa.Column('attempts', sa.Integer(), default=0),
        sa.Column('max_attempts', sa.Integer(), default=3),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('due_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_scheduled_notifications_due', 'scheduled_notifications', ['status', 'due_at'])

    # === CALENDAR EVENTS ===
    op.create_table(
        'calendar_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False, index=True),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('all_day', sa.Boolean(), default=True),
        sa.Column(
            'event_type',
            sa.Enum('lease_start', 'lease_end', 'payment_due', 'maintenance', 'inspection', 'other', name='calendar_event_type'),
            nullable=False,
        ),
        sa.Column('related_entity_type', sa.String(50), nullable=True),
        sa.Column('related_entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === AUDIT LOGS ===
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column(
            'action',
            sa.Enum(
                'user_synced', 'user_deactivated', 'role_changed', 'lease_allocated', 'lease_terminated',
                'lease_expired', 'payment_submitted', 'payment_recorded', 'payment_verified',
                'payment_rejected', 'maintenance_status_changed',
                name='audit_action',
            ),
            nullable=False,
            index=True,
        ),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('details', postgresql.JSONB(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('calendar_events')
    op.drop_index('ix_scheduled_notifications_due', table_name='scheduled_notifications')
    op.drop_table('scheduled_notifications')
    op.drop_table('notifications')
    op.drop_table('maintenance_requests')
    op.drop_table('payments')
    op.drop_index('uq_leases_one_active_per_unit', table_name='leases')
    op.drop_table('leases')
    op.drop_table('units')
    op.drop_table('properties')
    op.drop_table('users')

    for enum_name in (
        'audit_action', 'calendar_event_type', 'delivery_status', 'notification_type',
        'maintenance_priority', 'maintenance_status', 'payment_status', 'payment_type',
        'payment_method', 'lease_status', 'unit_status', 'property_status', 'property_type',
        'user_role',
    ):
        op.execute(f'DROP TYPE IF EXISTS {enum_name}')
