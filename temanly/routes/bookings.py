"""
Booking routes
  POST /bookings               – create a booking with its pending transaction
  GET  /bookings/{booking_id}  – booking details
  POST /bookings/quote         – price a set of services without booking
"""
import time
import uuid
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from temanly.core.logging_config import logger
from temanly.db.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    PaymentStatus,
    Transaction,
)
from temanly.db.session import get_db
from temanly.schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingResponse,
    QuoteLine,
    QuoteRequest,
    QuoteResponse,
)
from temanly.services.pricing_service import pricing_service

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"]
)


def _generate_id(prefix: str) -> str:
    """IDs look like ORDER-1718000000000-3f9a1c2b7"""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _check_duration_units(selections: List[Dict]) -> None:
    """Reject a selection whose duration unit the service is not priced in"""
    for s in selections:
        if not pricing_service.is_valid_duration_unit(s["id"], s["duration_unit"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"{pricing_service.format_service_name(s['id'])} cannot be booked in "
                    f"{s['duration_unit']}; use {', '.join(pricing_service.get_duration_units(s['id']))}"
                )
            )


@router.post("/quote", response_model=QuoteResponse)
def quote(request: QuoteRequest):
    """Price a selection of services and report restrictions"""
    selections = [s.model_dump() for s in request.services]

    unknown = [s["id"] for s in selections if not pricing_service.is_known_service(s["id"])]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown service: {', '.join(unknown)}"
        )
    _check_duration_units(selections)

    lines = [
        QuoteLine(
            id=s["id"],
            name=pricing_service.format_service_name(s["id"]),
            duration=s["duration"],
            duration_unit=s["duration_unit"],
            subtotal=pricing_service.calculate_service_price(s["id"], s["duration"], s["duration_unit"])
        )
        for s in selections
    ]
    service_amount = pricing_service.calculate_total_price(selections)
    breakdown = pricing_service.calculate_payment_breakdown(service_amount, request.talent_level)
    restricted = pricing_service.get_restricted_services(selections, request.is_verified)

    return QuoteResponse(
        services=lines,
        service_amount=service_amount,
        app_fee=breakdown["app_fee"],
        total=breakdown["total_charged_to_customer"],
        commission_rate=breakdown["commission_rate"],
        talent_earnings=breakdown["talent_earnings"],
        restricted_services=[pricing_service.format_service_name(s["id"]) for s in restricted],
        allowed=not restricted
    )


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
def create_booking(request: BookingCreate, db: Session = Depends(get_db)):
    """
    Create a pending booking and the pending transaction it will be paid through

    The price is computed here, never taken from the client. Both records
    start as pending; only a verified payment notification confirms them.
    """
    service = request.service
    if not pricing_service.is_known_service(service.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown service: {service.id}"
        )
    _check_duration_units([service.model_dump()])

    access = pricing_service.validate_service_access(service.id, request.is_verified)
    if not access["allowed"]:
        logger.info(f"Booking refused for user {request.user_id}: {service.id} needs verification")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=access["message"]
        )

    service_amount = pricing_service.calculate_service_price(
        service.id, service.duration, service.duration_unit
    )
    breakdown = pricing_service.calculate_payment_breakdown(service_amount, request.talent_level)

    order_id = _generate_id("ORDER")
    booking_id = _generate_id("BOOK")

    transaction = Transaction(
        order_id=order_id,
        gross_amount=breakdown["total_charged_to_customer"],
        status=PaymentStatus.PENDING,
        service_amount=service_amount,
        app_fee=breakdown["app_fee"],
        platform_fee=breakdown["platform_revenue"],
        companion_earnings=breakdown["talent_earnings"],
        commission_rate=breakdown["commission_rate"]
    )
    booking = Booking(
        id=booking_id,
        order_id=order_id,
        user_id=request.user_id,
        companion_id=request.companion_id,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        companion_phone=request.companion_phone,
        service_type=service.id,
        duration=service.duration,
        duration_unit=service.duration_unit,
        total_price=breakdown["total_charged_to_customer"],
        verification_required=pricing_service.is_restricted_service(service.id),
        payment_status=BookingPaymentStatus.PENDING,
        booking_status=BookingStatus.PENDING
    )

    try:
        db.add(transaction)
        db.add(booking)
        db.commit()
        db.refresh(booking)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating booking: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking"
        )

    logger.info(f"Booking {booking_id} created with order {order_id}, amount {transaction.gross_amount}")

    return BookingCreateResponse(
        booking=BookingResponse.model_validate(booking),
        order_id=order_id,
        gross_amount=breakdown["total_charged_to_customer"],
        transaction_status=PaymentStatus.PENDING
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: str, db: Session = Depends(get_db)):
    """Get booking by ID"""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )
    return booking
