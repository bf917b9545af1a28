"""Initial migration: transactions and bookings

Revision ID: 3c1f0b7d9a21
Revises: 
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f0b7d9a21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum labels are the member names, as SQLAlchemy's Enum stores them
payment_status = sa.Enum(
    'PENDING', 'CHALLENGE', 'PAID', 'FAILED', 'REFUNDED', 'UNKNOWN',
    name='paymentstatus'
)
booking_payment_status = sa.Enum('PENDING', 'PAID', 'FAILED', name='bookingpaymentstatus')
booking_status = sa.Enum('PENDING', 'CONFIRMED', 'CANCELLED', name='bookingstatus')


def upgrade() -> None:
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('gross_amount', sa.Float(), nullable=False),
        sa.Column('status', payment_status, nullable=False),
        sa.Column('payment_type', sa.String(), nullable=True),
        sa.Column('transaction_time', sa.String(), nullable=True),
        sa.Column('settlement_time', sa.String(), nullable=True),
        sa.Column('payment_confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('raw_notification', sa.JSON(), nullable=True),
        sa.Column('service_amount', sa.Float(), nullable=True),
        sa.Column('app_fee', sa.Float(), nullable=True),
        sa.Column('platform_fee', sa.Float(), nullable=True),
        sa.Column('companion_earnings', sa.Float(), nullable=True),
        sa.Column('commission_rate', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint('gross_amount >= 0', name='ck_transactions_gross_amount_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_transactions_id'), 'transactions', ['id'], unique=False)
    op.create_index(op.f('ix_transactions_order_id'), 'transactions', ['order_id'], unique=True)

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('companion_id', sa.String(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('companion_phone', sa.String(), nullable=True),
        sa.Column('service_type', sa.String(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('duration_unit', sa.String(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('verification_required', sa.Boolean(), nullable=False),
        sa.Column('payment_status', booking_payment_status, nullable=False),
        sa.Column('booking_status', booking_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_id'), 'bookings', ['id'], unique=False)
    op.create_index(op.f('ix_bookings_order_id'), 'bookings', ['order_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_bookings_order_id'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_id'), table_name='bookings')
    op.drop_table('bookings')
    op.drop_index(op.f('ix_transactions_order_id'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_id'), table_name='transactions')
    op.drop_table('transactions')

    bind = op.get_bind()
    booking_status.drop(bind, checkfirst=True)
    booking_payment_status.drop(bind, checkfirst=True)
    payment_status.drop(bind, checkfirst=True)
