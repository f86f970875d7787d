"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 08:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Tenants and businesses
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('appointment_buffer_minutes', sa.Integer(), nullable=True),
        sa.Column('slot_interval_minutes', sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'businesses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(40), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('website', sa.String(255), nullable=True),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('slot_interval_minutes', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_businesses_tenant_id', 'businesses', ['tenant_id'])

    op.create_table(
        'business_hours',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('open_time', sa.Time(), nullable=True),
        sa.Column('close_time', sa.Time(), nullable=True),
        sa.Column('is_closed', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('business_id', 'day_of_week', name='uq_business_hours_day'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_business_hours_day'),
    )

    # 2. Staff
    op.create_table(
        'staff_members',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(40), nullable=True),
        sa.Column('role', sa.String(80), nullable=False),
        sa.Column('specialties', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_staff_members_business_id', 'staff_members', ['business_id'])

    op.create_table(
        'staff_schedules',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('staff_id', sa.String(36), sa.ForeignKey('staff_members.id'), nullable=False),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('staff_id', 'day_of_week', name='uq_staff_schedule_day'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_staff_schedule_day'),
    )

    # 3. Services
    op.create_table(
        'services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('duration_minutes > 0', name='ck_services_duration'),
        sa.CheckConstraint('price >= 0', name='ck_services_price'),
    )
    op.create_index('ix_services_business_id', 'services', ['business_id'])

    op.create_table(
        'service_add_ons',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('service_id', sa.String(36), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('duration_minutes >= 0', name='ck_add_ons_duration'),
        sa.CheckConstraint('price >= 0', name='ck_add_ons_price'),
    )
    op.create_index('ix_service_add_ons_service_id', 'service_add_ons', ['service_id'])

    op.create_table(
        'staff_services',
        sa.Column('staff_id', sa.String(36), sa.ForeignKey('staff_members.id'), primary_key=True),
        sa.Column('service_id', sa.String(36), sa.ForeignKey('services.id'), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_staff_services_service_id', 'staff_services', ['service_id'])

    # 4. Customers and appointments
    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('phone', sa.String(40), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_customers_tenant_phone', 'customers', ['tenant_id', 'phone'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('staff_id', sa.String(36), sa.ForeignKey('staff_members.id'), nullable=False),
        sa.Column('service_id', sa.String(36), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('add_on_ids', sa.JSON(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_appointments_customer_id', 'appointments', ['customer_id'])
    op.create_index('ix_appointments_staff_start', 'appointments', ['staff_id', 'start_time'])
    op.create_index('ix_appointments_business_start', 'appointments', ['business_id', 'start_time'])

    # 5. FAQs
    op.create_table(
        'faqs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_faqs_business_id', 'faqs', ['business_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('faqs')
    op.drop_table('appointments')
    op.drop_table('customers')
    op.drop_table('staff_services')
    op.drop_table('service_add_ons')
    op.drop_table('services')
    op.drop_table('staff_schedules')
    op.drop_table('staff_members')
    op.drop_table('business_hours')
    op.drop_table('businesses')
    op.drop_table('tenants')
