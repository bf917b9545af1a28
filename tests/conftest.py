"""
Pytest configuration and fixtures.
"""
import hashlib
import os
import tempfile
from typing import Any, Dict, List, Optional

# Settings are read on import, so the environment has to be ready first
_db_dir = tempfile.mkdtemp(prefix="temanly-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{_db_dir}/test.db"
os.environ["MIDTRANS_SERVER_KEY"] = "SB-Mid-server-test-key-123"
os.environ["LOG_FILE"] = ""
os.environ.pop("WHATSAPP_API_URL", None)
os.environ.pop("WHATSAPP_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from temanly.db import models  # noqa: F401
from temanly.db.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    PaymentStatus,
    Transaction,
)
from temanly.db.session import Base, SessionLocal, engine
from temanly.main import app
from temanly.services.notification_verifier import NotificationVerifier
from temanly.utils.notifier import PaymentConfirmation

SERVER_KEY = os.environ["MIDTRANS_SERVER_KEY"]


def sign(order_id: str, status_code: str, gross_amount: str, key: str = SERVER_KEY) -> str:
    """Reference signature construction used by Midtrans"""
    return hashlib.sha512(f"{order_id}{status_code}{gross_amount}{key}".encode("utf-8")).hexdigest()


def make_notification(
    order_id: str = "ORD-1",
    transaction_status: str = "settlement",
    gross_amount: str = "100000",
    status_code: str = "200",
    fraud_status: Optional[str] = None,
    **extra: Any
) -> Dict[str, Any]:
    """Build a correctly signed notification body"""
    body = {
        "order_id": order_id,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "signature_key": sign(order_id, status_code, gross_amount),
        "transaction_status": transaction_status,
        "payment_type": "bank_transfer",
        "transaction_time": "2026-10-18 10:00:00",
    }
    if fraud_status is not None:
        body["fraud_status"] = fraud_status
    body.update(extra)
    return body


class RecordingNotifier:
    """Stands in for the WhatsApp notifier and records confirmations"""

    def __init__(self):
        self.confirmations: List[PaymentConfirmation] = []

    def payment_confirmed(self, confirmation: PaymentConfirmation) -> None:
        self.confirmations.append(confirmation)


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh tables for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def verifier() -> NotificationVerifier:
    return NotificationVerifier(SERVER_KEY)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def pending_order(db):
    """Pending transaction ORD-1 linked to pending booking BK-1"""
    db.add(Transaction(
        order_id="ORD-1",
        gross_amount=100000,
        status=PaymentStatus.PENDING,
        companion_earnings=80000,
    ))
    db.add(Booking(
        id="BK-1",
        order_id="ORD-1",
        user_id="user-1",
        companion_id="talent-1",
        customer_phone="081234567890",
        companion_phone="+62 811 111 111",
        service_type="call",
        duration=2,
        duration_unit="hours",
        total_price=100000,
        payment_status=BookingPaymentStatus.PENDING,
        booking_status=BookingStatus.PENDING,
    ))
    db.commit()
    return "ORD-1"


def fetch_transaction(order_id: str = "ORD-1") -> Transaction:
    session = SessionLocal()
    try:
        return session.query(Transaction).filter(Transaction.order_id == order_id).first()
    finally:
        session.close()


def fetch_booking(booking_id: str = "BK-1") -> Booking:
    session = SessionLocal()
    try:
        return session.query(Booking).filter(Booking.id == booking_id).first()
    finally:
        session.close()
