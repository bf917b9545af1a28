"""
Pydantic schemas for Booking operations
"""
from __future__ import annotations
from typing import Optional, List, Literal
from datetime import datetime
from pydantic import BaseModel, Field

from temanly.db.models import BookingStatus, BookingPaymentStatus, PaymentStatus

DurationUnit = Literal["hours", "days", "weeks", "months", "events"]
TalentLevel = Literal["fresh", "elite", "vip"]


class ServiceSelection(BaseModel):
    """One requested service"""
    id: str
    duration: int = Field(..., ge=1)
    duration_unit: DurationUnit = "hours"


class BookingCreate(BaseModel):
    """Schema for creating a booking and its pending transaction"""
    user_id: str
    companion_id: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    companion_phone: Optional[str] = None
    service: ServiceSelection
    talent_level: TalentLevel = "fresh"
    # Identity verification state comes from the user's profile
    is_verified: bool = False


class BookingResponse(BaseModel):
    """Schema for booking response"""
    id: str
    order_id: Optional[str] = None
    user_id: str
    companion_id: str
    service_type: str
    duration: int
    duration_unit: str
    total_price: float
    verification_required: bool
    payment_status: BookingPaymentStatus
    booking_status: BookingStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingCreateResponse(BaseModel):
    """Booking plus what the client needs to start the payment"""
    booking: BookingResponse
    order_id: str
    gross_amount: float
    transaction_status: PaymentStatus


class QuoteRequest(BaseModel):
    """Schema for a price quote"""
    services: List[ServiceSelection] = Field(..., min_length=1)
    talent_level: TalentLevel = "fresh"
    is_verified: bool = False


class QuoteLine(BaseModel):
    id: str
    name: str
    duration: int
    duration_unit: str
    subtotal: int


class QuoteResponse(BaseModel):
    """Schema for a price quote response"""
    services: List[QuoteLine]
    service_amount: int
    app_fee: int
    total: int
    commission_rate: float
    talent_earnings: float
    restricted_services: List[str]
    allowed: bool
