"""Create appointment, payment order, reminder and audit tables

Revision ID: 3c8e1f0a9b21
Revises:
Create Date: 2026-10-18 10:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c8e1f0a9b21'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_SLOT_WHERE = sa.text("status <> 'cancelled'")


def upgrade():
    op.create_table(
        'payment_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_reference', sa.String(length=64), nullable=False),
        sa.Column('payment_session_id', sa.String(length=255), nullable=True),
        sa.Column('fingerprint', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time_slot', sa.String(length=16), nullable=False),
        sa.Column('consultation_type', sa.String(length=20), nullable=False),
        sa.Column('patient_id', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('patient_name', sa.String(length=120), nullable=True),
        sa.Column('patient_email', sa.String(length=120), nullable=True),
        sa.Column('patient_phone', sa.String(length=20), nullable=True),
        sa.Column('patient_country', sa.String(length=8), nullable=True),
        sa.Column('intake', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=40), nullable=False, server_default='created'),
        sa.Column('provider_status', sa.String(length=40), nullable=True),
        sa.Column('environment', sa.String(length=20), nullable=True),
        sa.Column('verification_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_checked_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    with op.batch_alter_table('payment_orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payment_orders_order_reference'), ['order_reference'], unique=True)
        batch_op.create_index(batch_op.f('ix_payment_orders_fingerprint'), ['fingerprint'], unique=False)
        batch_op.create_index(batch_op.f('ix_payment_orders_patient_id'), ['patient_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payment_orders_status'), ['status'], unique=False)

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time_slot', sa.String(length=16), nullable=False),
        sa.Column('consultation_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('price_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('price_currency', sa.String(length=3), nullable=True),
        sa.Column('price_symbol', sa.String(length=8), nullable=True),
        sa.Column('price_region', sa.String(length=8), nullable=True),
        sa.Column('price_tier', sa.String(length=1), nullable=True),
        sa.Column('discount_applied', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('patient_id', sa.String(length=64), nullable=False),
        sa.Column('patient_name', sa.String(length=120), nullable=True),
        sa.Column('patient_email', sa.String(length=120), nullable=True),
        sa.Column('patient_phone', sa.String(length=20), nullable=True),
        sa.Column('patient_country', sa.String(length=8), nullable=True),
        sa.Column('doctor_name', sa.String(length=120), nullable=True),
        sa.Column('doctor_title', sa.String(length=120), nullable=True),
        sa.Column('doctor_qualifications', sa.String(length=255), nullable=True),
        sa.Column('doctor_email', sa.String(length=120), nullable=True),
        sa.Column('meet_link', sa.String(length=255), nullable=True),
        sa.Column('intake_description', sa.Text(), nullable=True),
        sa.Column('intake_address', sa.String(length=500), nullable=True),
        sa.Column('intake_documents', sa.JSON(), nullable=True),
        sa.Column('payment_order_id', sa.Integer(), sa.ForeignKey('payment_orders.id'), nullable=True),
        sa.Column('first_booking_claim', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('payment_order_id'),
        sa.UniqueConstraint('first_booking_claim'),
    )
    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_appointments_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_patient_id'), ['patient_id'], unique=False)

    # One live appointment per slot; cancelled rows free it
    op.create_index(
        'uq_appointments_active_slot',
        'appointments',
        ['date', 'time_slot'],
        unique=True,
        postgresql_where=ACTIVE_SLOT_WHERE,
        sqlite_where=ACTIVE_SLOT_WHERE,
    )

    op.create_table(
        'reminder_jobs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('appointment_id', sa.Integer(), sa.ForeignKey('appointments.id'), nullable=False),
        sa.Column('fire_at', sa.DateTime(), nullable=False),
        sa.Column('delivered', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('task_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('appointment_id'),
    )
    with op.batch_alter_table('reminder_jobs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reminder_jobs_fire_at'), ['fire_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_reminder_jobs_delivered'), ['delivered'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_logs_entity_type'), ['entity_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_entity_id'), ['entity_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_actor_id'), ['actor_id'], unique=False)


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('reminder_jobs')
    op.drop_index('uq_appointments_active_slot', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('payment_orders')
