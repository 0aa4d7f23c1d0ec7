"""Initial scheduling schema

Revision ID: 202610190000
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '202610190000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. Patients and therapists
    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_patients_id', 'patients', ['id'], unique=False)

    op.create_table(
        'therapists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('specialty', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_therapists_id', 'therapists', ['id'], unique=False)

    # 2. Appointments (series children point at their parent)
    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('therapist_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.TIME(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='confirmed'),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('recurring_frequency', sa.String(length=20), nullable=True),
        sa.Column('recurring_count', sa.Integer(), nullable=True),
        sa.Column('parent_appointment_id', sa.Integer(), nullable=True),
        sa.Column('groups_invoice', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ),
        sa.ForeignKeyConstraint(['therapist_id'], ['therapists.id'], ),
        sa.ForeignKeyConstraint(['parent_appointment_id'], ['appointments.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointments_id', 'appointments', ['id'], unique=False)
    op.create_index('idx_appointments_slot', 'appointments', ['therapist_id', 'date', 'time'], unique=False)
    op.create_index('idx_appointments_parent', 'appointments', ['parent_appointment_id'], unique=False)
    op.create_index('idx_appointments_patient', 'appointments', ['patient_id'], unique=False)
    op.create_index('idx_appointments_status', 'appointments', ['status'], unique=False)

    # 3. Invoices
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('therapist_id', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_grouped', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ),
        sa.ForeignKeyConstraint(['therapist_id'], ['therapists.id'], ),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invoices_id', 'invoices', ['id'], unique=False)
    op.create_index('idx_invoices_appointment', 'invoices', ['appointment_id'], unique=False)
    op.create_index('idx_invoices_patient', 'invoices', ['patient_id'], unique=False)

    # 4. Therapist payments (one per invoice; the named FK blocks deleting a settled invoice)
    op.create_table(
        'therapist_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('therapist_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False),
        sa.Column('payment_reference', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['therapist_id'], ['therapists.id'], ),
        sa.ForeignKeyConstraint(
            ['invoice_id'], ['invoices.id'],
            name='therapist_payments_invoice_id_fkey', ondelete='RESTRICT'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_id', name='uq_therapist_payments_invoice_id')
    )
    op.create_index('ix_therapist_payments_id', 'therapist_payments', ['id'], unique=False)

    # 5. Status audit trail (no FK so rows survive appointment deletion)
    op.create_table(
        'appointment_status_changes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False),
        sa.Column('old_status', sa.String(length=20), nullable=True),
        sa.Column('new_status', sa.String(length=20), nullable=False),
        sa.Column('changed_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointment_status_changes_id', 'appointment_status_changes', ['id'], unique=False)
    op.create_index('idx_status_changes_appointment', 'appointment_status_changes', ['appointment_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_status_changes_appointment', table_name='appointment_status_changes')
    op.drop_index('ix_appointment_status_changes_id', table_name='appointment_status_changes')
    op.drop_table('appointment_status_changes')

    op.drop_index('ix_therapist_payments_id', table_name='therapist_payments')
    op.drop_table('therapist_payments')

    op.drop_index('idx_invoices_patient', table_name='invoices')
    op.drop_index('idx_invoices_appointment', table_name='invoices')
    op.drop_index('ix_invoices_id', table_name='invoices')
    op.drop_table('invoices')

    op.drop_index('idx_appointments_status', table_name='appointments')
    op.drop_index('idx_appointments_patient', table_name='appointments')
    op.drop_index('idx_appointments_parent', table_name='appointments')
    op.drop_index('idx_appointments_slot', table_name='appointments')
    op.drop_index('ix_appointments_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('ix_therapists_id', table_name='therapists')
    op.drop_table('therapists')

    op.drop_index('ix_patients_id', table_name='patients')
    op.drop_table('patients')
