"""
Payment reconciliation service
Maps Midtrans notifications onto the internal payment state machine and
applies them to transactions and bookings
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from temanly.core.exceptions import (
    InvalidSignatureError,
    ReconciliationError,
    TransactionNotFoundError,
)
from temanly.core.logging_config import logger
from temanly.db.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    PaymentStatus,
    Transaction,
)
from temanly.schemas.payment import PaymentNotification
from temanly.services.notification_verifier import NotificationVerifier
from temanly.utils.notifier import PaymentConfirmation, PaymentNotifier


class ProviderTransactionStatus(str, PyEnum):
    """transaction_status values sent by Midtrans"""
    CAPTURE = "capture"
    SETTLEMENT = "settlement"
    PENDING = "pending"
    DENY = "deny"
    CANCEL = "cancel"
    EXPIRE = "expire"
    REFUND = "refund"


class FraudStatus(str, PyEnum):
    """fraud_status values, only meaningful for captured payments"""
    ACCEPT = "accept"
    CHALLENGE = "challenge"
    DENY = "deny"


@dataclass(frozen=True)
class ProviderStatus:
    """
    Provider status as a tagged value.

    transaction_status is None when Midtrans sent something we do not know;
    fraud_status is only ever set for CAPTURE.
    """
    transaction_status: Optional[ProviderTransactionStatus]
    fraud_status: Optional[FraudStatus] = None
    raw: str = ""

    @classmethod
    def parse(cls, transaction_status: str, fraud_status: Optional[str] = None) -> "ProviderStatus":
        try:
            kind = ProviderTransactionStatus(transaction_status)
        except ValueError:
            return cls(transaction_status=None, raw=transaction_status)

        fraud = None
        if kind == ProviderTransactionStatus.CAPTURE and fraud_status:
            try:
                fraud = FraudStatus(fraud_status)
            except ValueError:
                fraud = None
        return cls(transaction_status=kind, fraud_status=fraud, raw=transaction_status)


TERMINAL_STATUSES: FrozenSet[PaymentStatus] = frozenset({
    PaymentStatus.PAID,
    PaymentStatus.FAILED,
    PaymentStatus.REFUNDED,
})

_FAILED_PROVIDER_STATUSES = frozenset({
    ProviderTransactionStatus.DENY,
    ProviderTransactionStatus.CANCEL,
    ProviderTransactionStatus.EXPIRE,
})


def map_provider_status(status: ProviderStatus) -> PaymentStatus:
    """
    Map a provider status onto PaymentStatus

    Settlement is unconditional success: fraud screening already happened
    upstream. Capture branches on fraud status; a capture without an accept
    or challenge verdict is treated as failed.
    """
    kind = status.transaction_status
    if kind is None:
        return PaymentStatus.UNKNOWN
    if kind == ProviderTransactionStatus.CAPTURE:
        if status.fraud_status == FraudStatus.ACCEPT:
            return PaymentStatus.PAID
        if status.fraud_status == FraudStatus.CHALLENGE:
            return PaymentStatus.CHALLENGE
        return PaymentStatus.FAILED
    if kind == ProviderTransactionStatus.SETTLEMENT:
        return PaymentStatus.PAID
    if kind == ProviderTransactionStatus.PENDING:
        return PaymentStatus.PENDING
    if kind in _FAILED_PROVIDER_STATUSES:
        return PaymentStatus.FAILED
    if kind == ProviderTransactionStatus.REFUND:
        return PaymentStatus.REFUNDED
    return PaymentStatus.UNKNOWN


def allowed_sources(target: PaymentStatus) -> FrozenSet[PaymentStatus]:
    """Statuses a transaction may be in for a move to target to be applied"""
    sources = {s for s in PaymentStatus if s not in TERMINAL_STATUSES}
    # Replaying the same status is a no-op overwrite
    sources.add(target)
    if target == PaymentStatus.REFUNDED:
        sources.add(PaymentStatus.PAID)
    elif target == PaymentStatus.PENDING:
        # A late pending must not clear a fraud review
        sources.discard(PaymentStatus.CHALLENGE)
    return frozenset(sources)


@dataclass
class ReconciliationResult:
    """Outcome of applying one notification"""
    order_id: str
    status: PaymentStatus
    applied: bool
    booking_confirmed: bool = False

    @property
    def message(self) -> str:
        if not self.applied:
            return f"Stale notification ignored, transaction is {self.status.value}"
        if self.status == PaymentStatus.UNKNOWN:
            return "Notification recorded with unknown status for manual review"
        return "Notification processed successfully"


class ReconciliationService:
    """
    Applies verified notifications to transactions, then cascades confirmed
    payments onto bookings.

    Phase one writes the transaction and commits; its failure fails the
    request. Phase two confirms the linked booking; its failure is logged and
    left for a later repair sweep.
    """

    def __init__(self, verifier: NotificationVerifier, notifier: Optional[PaymentNotifier] = None):
        self.verifier = verifier
        self.notifier = notifier

    def process_notification(
        self,
        db: Session,
        notification: PaymentNotification,
        raw_payload: Dict[str, Any]
    ) -> ReconciliationResult:
        """
        Verify and apply a provider notification

        Args:
            db: Database session
            notification: Parsed notification
            raw_payload: Body exactly as received, stored for audit

        Returns:
            ReconciliationResult

        Raises:
            InvalidSignatureError: Signature check failed, nothing was written
            TransactionNotFoundError: No transaction with this order id
            ReconciliationError: The transaction write failed
        """
        order_id = notification.order_id
        if not self.verifier.verify(
            order_id,
            notification.status_code,
            notification.gross_amount,
            notification.signature_key
        ):
            raise InvalidSignatureError(order_id)

        provider_status = ProviderStatus.parse(
            notification.transaction_status,
            notification.fraud_status
        )
        target = map_provider_status(provider_status)
        if target == PaymentStatus.UNKNOWN:
            logger.warning(
                f"Unmapped provider status for order {order_id}: "
                f"transaction_status={notification.transaction_status!r} "
                f"fraud_status={notification.fraud_status!r}, needs manual review"
            )

        logger.info(
            f"Reconciling order {order_id}: {provider_status.raw}"
            f"{'/' + provider_status.fraud_status.value if provider_status.fraud_status else ''}"
            f" -> {target.value}"
        )

        result = self.apply_transaction_status(db, notification, target, raw_payload)
        if result.status == PaymentStatus.PAID:
            result.booking_confirmed = self.confirm_booking(db, order_id)
        return result

    def apply_transaction_status(
        self,
        db: Session,
        notification: PaymentNotification,
        target: PaymentStatus,
        raw_payload: Dict[str, Any]
    ) -> ReconciliationResult:
        """Phase one: one conditional UPDATE keyed by order id, committed on its own"""
        order_id = notification.order_id
        now = datetime.now()

        values: Dict[Any, Any] = {
            Transaction.status: target,
            Transaction.raw_notification: raw_payload,
            Transaction.updated_at: now,
        }
        if notification.payment_type:
            values[Transaction.payment_type] = notification.payment_type
        if notification.transaction_time:
            values[Transaction.transaction_time] = notification.transaction_time
        if notification.settlement_time:
            values[Transaction.settlement_time] = notification.settlement_time

        if target == PaymentStatus.PAID:
            # Keep the first confirmation so replays leave the row unchanged
            values[Transaction.payment_confirmed_at] = func.coalesce(
                Transaction.payment_confirmed_at, now
            )
            if not notification.settlement_time:
                values[Transaction.settlement_time] = func.coalesce(
                    Transaction.settlement_time, now.strftime("%Y-%m-%d %H:%M:%S")
                )

        try:
            updated = (
                db.query(Transaction)
                .filter(
                    Transaction.order_id == order_id,
                    Transaction.status.in_(list(allowed_sources(target)))
                )
                .update(values, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating transaction {order_id}: {str(e)}", exc_info=True)
            raise ReconciliationError(f"Failed to update transaction {order_id}") from e

        if updated:
            logger.info(f"Transaction {order_id} updated to status: {target.value}")
            return ReconciliationResult(order_id=order_id, status=target, applied=True)

        current = db.query(Transaction.status).filter(Transaction.order_id == order_id).first()
        if current is None:
            logger.error(f"Transaction not found for notification: {order_id}")
            raise TransactionNotFoundError(order_id)

        logger.warning(
            f"Ignoring transition {current.status.value} -> {target.value} "
            f"for order {order_id}: stale notification"
        )
        return ReconciliationResult(order_id=order_id, status=current.status, applied=False)

    def confirm_booking(self, db: Session, order_id: str) -> bool:
        """
        Phase two: confirm the pending booking linked to a paid order

        Returns:
            True if a booking moved to confirmed by this call
        """
        try:
            confirmed = (
                db.query(Booking)
                .filter(
                    Booking.order_id == order_id,
                    Booking.booking_status == BookingStatus.PENDING
                )
                .update(
                    {
                        Booking.payment_status: BookingPaymentStatus.PAID,
                        Booking.booking_status: BookingStatus.CONFIRMED,
                        Booking.updated_at: datetime.now(),
                    },
                    synchronize_session=False
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            # Transaction is already paid and is the source of truth
            logger.error(
                f"Error confirming booking for order {order_id}: {str(e)}. "
                f"Booking needs reconciliation.",
                exc_info=True
            )
            return False

        if not confirmed:
            logger.info(f"No pending booking linked to order {order_id}, skipping cascade")
            return False

        logger.info(f"Booking confirmed for order {order_id}")
        self._notify_payment_confirmed(db, order_id)
        return True

    def _notify_payment_confirmed(self, db: Session, order_id: str) -> None:
        if self.notifier is None:
            return
        try:
            transaction = db.query(Transaction).filter(Transaction.order_id == order_id).first()
            bookings = db.query(Booking).filter(
                Booking.order_id == order_id,
                Booking.booking_status == BookingStatus.CONFIRMED
            ).all()
            for booking in bookings:
                self.notifier.payment_confirmed(PaymentConfirmation(
                    booking_id=booking.id,
                    customer_phone=booking.customer_phone,
                    companion_phone=booking.companion_phone,
                    amount=float(transaction.gross_amount) if transaction else booking.total_price,
                    payment_method=(transaction.payment_type if transaction else None) or "Midtrans",
                    companion_earnings=float(transaction.companion_earnings or 0) if transaction else 0.0,
                ))
        except Exception as e:
            # Don't fail the payment if notification fails
            logger.error(f"Error sending payment notification for order {order_id}: {str(e)}", exc_info=True)
