"""
Database models for Temanly payments
"""
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, String, Boolean, Float, DateTime, JSON,
    Enum, CheckConstraint
)
from sqlalchemy.sql import func
from temanly.db.session import Base


# Enums
class PaymentStatus(str, PyEnum):
    """Internal payment status of a transaction"""
    PENDING = "pending"
    CHALLENGE = "challenge"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    UNKNOWN = "unknown"


class BookingPaymentStatus(str, PyEnum):
    """Subset of PaymentStatus mirrored on a booking"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class BookingStatus(str, PyEnum):
    """Booking lifecycle status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Models
class Transaction(Base):
    """Payment attempt at the provider, keyed by the provider order id"""
    __tablename__ = 'transactions'
    __table_args__ = (
        CheckConstraint('gross_amount >= 0', name='ck_transactions_gross_amount_non_negative'),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, unique=True, nullable=False, index=True)
    gross_amount = Column(Float, nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_type = Column(String, nullable=True)
    transaction_time = Column(String, nullable=True)  # provider format, kept verbatim
    settlement_time = Column(String, nullable=True)
    payment_confirmed_at = Column(DateTime, nullable=True)
    raw_notification = Column(JSON, nullable=True)  # last notification, for audit
    # Fee breakdown computed at booking time
    service_amount = Column(Float, nullable=True)
    app_fee = Column(Float, nullable=True)
    platform_fee = Column(Float, nullable=True)
    companion_earnings = Column(Float, nullable=True)
    commission_rate = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)


class Booking(Base):
    """Companion booking, linked to its transaction by order id"""
    __tablename__ = 'bookings'

    id = Column(String, primary_key=True, index=True)
    # Lookup only: the booking does not own the transaction
    order_id = Column(String, nullable=True, index=True)
    user_id = Column(String, nullable=False)
    companion_id = Column(String, nullable=False)
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    companion_phone = Column(String, nullable=True)
    service_type = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)
    duration_unit = Column(String, nullable=False)
    total_price = Column(Float, nullable=False)
    verification_required = Column(Boolean, default=False, nullable=False)
    payment_status = Column(
        Enum(BookingPaymentStatus),
        nullable=False,
        default=BookingPaymentStatus.PENDING
    )
    booking_status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    created_at = Column(DateTime, server_default=func.now(), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)
