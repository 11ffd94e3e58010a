"""create_appointment_refund_tables

Revision ID: 3f1c2a7d9b41
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c2a7d9b41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # appointments: 只读引用，调度服务写入
    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=True, comment='患者ID'),
        sa.Column('doctor_id', sa.Integer(), nullable=True, comment='医生ID'),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False, comment='预约时间（UTC，唯一权威时间）'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='scheduled', comment='预约状态'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='创建时间'),
        sa.PrimaryKeyConstraint('id', name='pk_appointments'),
    )
    op.create_index('ix_appointments_id', 'appointments', ['id'], unique=False)
    op.create_index('ix_appointments_patient_id', 'appointments', ['patient_id'], unique=False)
    op.create_index('ix_appointments_doctor_id', 'appointments', ['doctor_id'], unique=False)
    op.create_index('ix_appointments_doctor_scheduled', 'appointments', ['doctor_id', 'scheduled_at'], unique=False)

    # payments: 退款状态只由 webhook 对账推进
    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False, comment='预约ID'),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False, comment='支付金额'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='captured', comment='支付状态'),
        sa.Column('gateway_name', sa.String(length=50), nullable=False, server_default='razorpay', comment='支付网关'),
        sa.Column('gateway_transaction_id', sa.String(length=200), nullable=True, comment='网关交易号'),
        sa.Column('refund_status', sa.String(length=20), nullable=False, server_default='none', comment='退款状态: none/pending/processed/failed'),
        sa.Column('refund_updated_at', sa.DateTime(timezone=True), nullable=True, comment='退款状态更新时间'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='更新时间'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], name='fk_payments_appointment_id_appointments', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name='pk_payments'),
        sa.UniqueConstraint('appointment_id', name='uq_payments_appointment_id'),
        sa.UniqueConstraint('gateway_transaction_id', name='uq_payments_gateway_transaction_id'),
    )
    op.create_index('ix_payments_id', 'payments', ['id'], unique=False)
    op.create_index('ix_payments_refund_status', 'payments', ['refund_status'], unique=False)

    # cancellations: 只插入；appointment_id 唯一约束裁决并发取消
    op.create_table(
        'cancellations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False, comment='预约ID（每个预约最多一条取消记录）'),
        sa.Column('initiated_by', sa.String(length=20), nullable=False, comment='发起方: patient/doctor/hospital/system/admin'),
        sa.Column('reason', sa.Text(), nullable=False, comment='取消原因'),
        sa.Column('refund_amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0', comment='应退金额'),
        sa.Column('penalty_amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0', comment='罚金'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='创建时间'),
        sa.CheckConstraint('refund_amount >= 0', name='ck_cancellations_refund_non_negative'),
        sa.CheckConstraint('penalty_amount >= 0', name='ck_cancellations_penalty_non_negative'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], name='fk_cancellations_appointment_id_appointments', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name='pk_cancellations'),
        sa.UniqueConstraint('appointment_id', name='uq_cancellations_appointment_id'),
    )
    op.create_index('ix_cancellations_id', 'cancellations', ['id'], unique=False)
    op.create_index('ix_cancellations_created_at', 'cancellations', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_cancellations_created_at', table_name='cancellations')
    op.drop_index('ix_cancellations_id', table_name='cancellations')
    op.drop_table('cancellations')
    op.drop_index('ix_payments_refund_status', table_name='payments')
    op.drop_index('ix_payments_id', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_appointments_doctor_scheduled', table_name='appointments')
    op.drop_index('ix_appointments_doctor_id', table_name='appointments')
    op.drop_index('ix_appointments_patient_id', table_name='appointments')
    op.drop_index('ix_appointments_id', table_name='appointments')
    op.drop_table('appointments')
