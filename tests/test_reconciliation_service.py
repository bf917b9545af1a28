"""
Tests for status mapping and the two-phase reconciliation.
"""
import pytest

from conftest import fetch_booking, fetch_transaction, make_notification
from temanly.core.exceptions import (
    InvalidSignatureError,
    ReconciliationError,
    TransactionNotFoundError,
)
from temanly.db.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    PaymentStatus,
    Transaction,
)
from temanly.db.session import engine
from temanly.schemas.payment import PaymentNotification
from temanly.services.reconciliation_service import (
    FraudStatus,
    ProviderStatus,
    ProviderTransactionStatus,
    ReconciliationService,
    allowed_sources,
    map_provider_status,
)


def _process(service: ReconciliationService, db, **kwargs):
    body = make_notification(**kwargs)
    return service.process_notification(db, PaymentNotification.model_validate(body), body)


@pytest.fixture
def service(verifier, notifier) -> ReconciliationService:
    return ReconciliationService(verifier=verifier, notifier=notifier)


class TestProviderStatus:
    """Parsing provider strings into the tagged status."""

    def test_capture_keeps_fraud_status(self) -> None:
        status = ProviderStatus.parse("capture", "challenge")
        assert status.transaction_status == ProviderTransactionStatus.CAPTURE
        assert status.fraud_status == FraudStatus.CHALLENGE

    def test_fraud_status_dropped_outside_capture(self) -> None:
        status = ProviderStatus.parse("settlement", "accept")
        assert status.transaction_status == ProviderTransactionStatus.SETTLEMENT
        assert status.fraud_status is None

    def test_unrecognised_status_keeps_raw_value(self) -> None:
        status = ProviderStatus.parse("authorize")
        assert status.transaction_status is None
        assert status.raw == "authorize"


class TestMapProviderStatus:
    """Provider status to PaymentStatus."""

    @pytest.mark.parametrize(
        "transaction_status,fraud_status,expected",
        [
            ("capture", "accept", PaymentStatus.PAID),
            ("capture", "challenge", PaymentStatus.CHALLENGE),
            ("capture", "deny", PaymentStatus.FAILED),
            ("capture", None, PaymentStatus.FAILED),
            ("settlement", None, PaymentStatus.PAID),
            ("settlement", "challenge", PaymentStatus.PAID),
            ("pending", None, PaymentStatus.PENDING),
            ("deny", None, PaymentStatus.FAILED),
            ("cancel", None, PaymentStatus.FAILED),
            ("expire", None, PaymentStatus.FAILED),
            ("refund", None, PaymentStatus.REFUNDED),
            ("partial_refund", None, PaymentStatus.UNKNOWN),
            ("authorize", None, PaymentStatus.UNKNOWN),
        ],
    )
    def test_mapping(self, transaction_status, fraud_status, expected) -> None:
        assert map_provider_status(ProviderStatus.parse(transaction_status, fraud_status)) == expected

    def test_terminal_states_only_accept_themselves(self) -> None:
        assert PaymentStatus.FAILED not in allowed_sources(PaymentStatus.PAID)
        assert PaymentStatus.PAID in allowed_sources(PaymentStatus.PAID)
        assert PaymentStatus.PAID in allowed_sources(PaymentStatus.REFUNDED)
        assert PaymentStatus.FAILED not in allowed_sources(PaymentStatus.REFUNDED)
        assert PaymentStatus.PAID not in allowed_sources(PaymentStatus.PENDING)
        assert PaymentStatus.CHALLENGE in allowed_sources(PaymentStatus.PAID)
        assert PaymentStatus.CHALLENGE not in allowed_sources(PaymentStatus.PENDING)
        assert PaymentStatus.UNKNOWN in allowed_sources(PaymentStatus.PENDING)


class TestReconciliationService:
    """Applying notifications to transactions and bookings."""

    def test_settlement_marks_paid_and_confirms_booking(self, service, db, pending_order, notifier) -> None:
        result = _process(service, db, transaction_status="settlement")

        assert result.status == PaymentStatus.PAID
        assert result.applied
        assert result.booking_confirmed

        transaction = fetch_transaction()
        assert transaction.status == PaymentStatus.PAID
        assert transaction.payment_confirmed_at is not None
        assert transaction.settlement_time is not None
        assert transaction.payment_type == "bank_transfer"
        assert transaction.raw_notification["transaction_status"] == "settlement"

        booking = fetch_booking()
        assert booking.booking_status == BookingStatus.CONFIRMED
        assert booking.payment_status == BookingPaymentStatus.PAID

        assert len(notifier.confirmations) == 1
        confirmation = notifier.confirmations[0]
        assert confirmation.booking_id == "BK-1"
        assert confirmation.amount == 100000
        assert confirmation.companion_earnings == 80000

    def test_capture_accept_marks_paid(self, service, db, pending_order) -> None:
        result = _process(service, db, transaction_status="capture", fraud_status="accept")
        assert result.status == PaymentStatus.PAID
        assert fetch_transaction().payment_confirmed_at is not None

    @pytest.mark.parametrize(
        "transaction_status,fraud_status",
        [("deny", None), ("cancel", None), ("expire", None), ("capture", "deny")],
    )
    def test_failures(self, service, db, pending_order, notifier, transaction_status, fraud_status) -> None:
        result = _process(service, db, transaction_status=transaction_status, fraud_status=fraud_status)

        assert result.status == PaymentStatus.FAILED
        transaction = fetch_transaction()
        assert transaction.status == PaymentStatus.FAILED
        assert transaction.payment_confirmed_at is None
        assert fetch_booking().booking_status == BookingStatus.PENDING
        assert notifier.confirmations == []

    def test_replay_is_idempotent(self, service, db, pending_order, notifier) -> None:
        _process(service, db, transaction_status="settlement")
        first = fetch_transaction()

        result = _process(service, db, transaction_status="settlement")
        second = fetch_transaction()

        assert result.applied
        assert not result.booking_confirmed
        assert second.status == first.status == PaymentStatus.PAID
        assert second.payment_confirmed_at == first.payment_confirmed_at
        assert second.settlement_time == first.settlement_time
        assert second.raw_notification == first.raw_notification
        assert fetch_booking().booking_status == BookingStatus.CONFIRMED
        assert len(notifier.confirmations) == 1

    def test_settlement_time_from_provider_is_kept(self, service, db, pending_order) -> None:
        _process(service, db, transaction_status="settlement", settlement_time="2026-10-18 10:05:00")
        assert fetch_transaction().settlement_time == "2026-10-18 10:05:00"

    def test_challenge_then_accept(self, service, db, pending_order) -> None:
        first = _process(service, db, transaction_status="capture", fraud_status="challenge")
        assert first.status == PaymentStatus.CHALLENGE
        assert fetch_booking().booking_status == BookingStatus.PENDING

        second = _process(service, db, transaction_status="capture", fraud_status="accept")
        assert second.status == PaymentStatus.PAID
        assert fetch_booking().booking_status == BookingStatus.CONFIRMED

    def test_stale_pending_after_paid_is_ignored(self, service, db, pending_order) -> None:
        _process(service, db, transaction_status="settlement")
        result = _process(service, db, transaction_status="pending", status_code="201")

        assert not result.applied
        assert result.status == PaymentStatus.PAID
        assert fetch_transaction().status == PaymentStatus.PAID

    def test_late_pending_keeps_fraud_review(self, service, db, pending_order) -> None:
        _process(service, db, transaction_status="capture", fraud_status="challenge")
        result = _process(service, db, transaction_status="pending", status_code="201")

        assert not result.applied
        assert result.status == PaymentStatus.CHALLENGE
        assert fetch_transaction().status == PaymentStatus.CHALLENGE
        assert fetch_transaction().raw_notification["fraud_status"] == "challenge"

    def test_failed_is_never_revived(self, service, db, pending_order) -> None:
        _process(service, db, transaction_status="expire", status_code="407")
        result = _process(service, db, transaction_status="settlement")

        assert not result.applied
        assert fetch_transaction().status == PaymentStatus.FAILED
        assert fetch_booking().booking_status == BookingStatus.PENDING

    def test_refund_after_paid(self, service, db, pending_order) -> None:
        _process(service, db, transaction_status="settlement")
        result = _process(service, db, transaction_status="refund")

        assert result.applied
        transaction = fetch_transaction()
        assert transaction.status == PaymentStatus.REFUNDED
        # Confirmation timestamp survives the refund for audit
        assert transaction.payment_confirmed_at is not None

    def test_unknown_status_is_recorded(self, service, db, pending_order) -> None:
        result = _process(service, db, transaction_status="authorize")

        assert result.status == PaymentStatus.UNKNOWN
        assert result.applied
        assert "manual review" in result.message
        assert fetch_transaction().status == PaymentStatus.UNKNOWN

    def test_invalid_signature_writes_nothing(self, service, db, pending_order) -> None:
        body = make_notification(transaction_status="settlement")
        body["gross_amount"] = "1"

        with pytest.raises(InvalidSignatureError):
            service.process_notification(db, PaymentNotification.model_validate(body), body)

        transaction = fetch_transaction()
        assert transaction.status == PaymentStatus.PENDING
        assert transaction.raw_notification is None

    def test_unknown_order(self, service, db) -> None:
        with pytest.raises(TransactionNotFoundError):
            _process(service, db, order_id="ORD-404")

    def test_paid_without_booking_is_not_an_error(self, service, db, notifier) -> None:
        db.add(Transaction(order_id="ORD-2", gross_amount=50000, status=PaymentStatus.PENDING))
        db.commit()

        result = _process(service, db, order_id="ORD-2", gross_amount="50000")

        assert result.status == PaymentStatus.PAID
        assert not result.booking_confirmed
        assert fetch_transaction("ORD-2").status == PaymentStatus.PAID
        assert notifier.confirmations == []

    def test_cancelled_booking_is_not_confirmed(self, service, db, pending_order) -> None:
        db.query(Booking).filter(Booking.id == "BK-1").update(
            {Booking.booking_status: BookingStatus.CANCELLED}
        )
        db.commit()

        result = _process(service, db, transaction_status="settlement")

        assert result.status == PaymentStatus.PAID
        assert not result.booking_confirmed
        assert fetch_booking().booking_status == BookingStatus.CANCELLED

    def test_booking_failure_does_not_fail_request(self, service, db, pending_order) -> None:
        Booking.__table__.drop(bind=engine)

        result = _process(service, db, transaction_status="settlement")

        assert result.status == PaymentStatus.PAID
        assert not result.booking_confirmed
        assert fetch_transaction().status == PaymentStatus.PAID

    def test_transaction_write_failure_is_raised(self, service, db, pending_order) -> None:
        Transaction.__table__.drop(bind=engine)

        with pytest.raises(ReconciliationError):
            _process(service, db, transaction_status="settlement")

    def test_notifier_failure_does_not_fail_request(self, verifier, db, pending_order) -> None:
        class BrokenNotifier:
            def payment_confirmed(self, confirmation):
                raise RuntimeError("gateway down")

        service = ReconciliationService(verifier=verifier, notifier=BrokenNotifier())
        result = _process(service, db, transaction_status="settlement")

        assert result.booking_confirmed
        assert fetch_booking().booking_status == BookingStatus.CONFIRMED
