"""
Pydantic schemas for payment notifications and transactions
"""
from typing import Optional, Any, Dict
from datetime import datetime
from pydantic import BaseModel, Field

from temanly.db.models import PaymentStatus


class PaymentNotification(BaseModel):
    """
    Fields consumed from a Midtrans HTTP notification.

    Signed fields stay strings: the signature covers their exact text.
    """
    order_id: str = Field(..., min_length=1)
    status_code: str = Field(..., min_length=1)
    gross_amount: str = Field(..., min_length=1)
    signature_key: str = Field(..., min_length=1)
    transaction_status: str = Field(..., min_length=1)
    fraud_status: Optional[str] = None
    payment_type: Optional[str] = None
    transaction_time: Optional[str] = None
    settlement_time: Optional[str] = None

    model_config = {"extra": "ignore"}


class NotificationResponse(BaseModel):
    """Acknowledgement returned to the provider"""
    success: bool
    order_id: str
    status: PaymentStatus
    message: str


class TransactionResponse(BaseModel):
    """Schema for transaction response"""
    order_id: str
    gross_amount: float
    status: PaymentStatus
    payment_type: Optional[str] = None
    transaction_time: Optional[str] = None
    settlement_time: Optional[str] = None
    payment_confirmed_at: Optional[datetime] = None
    service_amount: Optional[float] = None
    app_fee: Optional[float] = None
    companion_earnings: Optional[float] = None
    raw_notification: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
