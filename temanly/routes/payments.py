"""
Payment routes for Midtrans integration
  POST /payments/notification       – HTTP notification (webhook) from Midtrans
  GET  /payments/{order_id}         – stored transaction
  POST /payments/{order_id}/sync    – pull status from Midtrans and reconcile it
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from temanly.core.exceptions import (
    InvalidSignatureError,
    ProviderAPIError,
    ReconciliationError,
    TransactionNotFoundError,
)
from temanly.core.logging_config import logger
from temanly.db.models import Transaction
from temanly.db.session import get_db
from temanly.routes.dependencies import get_midtrans_client, get_reconciliation_service
from temanly.schemas.payment import NotificationResponse, PaymentNotification, TransactionResponse
from temanly.services.midtrans_service import MidtransClient
from temanly.services.reconciliation_service import ReconciliationService

router = APIRouter(
    prefix="/payments",
    tags=["payments"]
)


def _failure(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, **extra}
    )


def _validation_details(exc: ValidationError) -> list:
    return [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]


def _reconcile(
    db: Session,
    reconciliation: ReconciliationService,
    notification: PaymentNotification,
    payload: Dict[str, Any]
) -> JSONResponse:
    """Run a notification through the reconciliation service and map the outcome to HTTP"""
    try:
        result = reconciliation.process_notification(db, notification, payload)
    except InvalidSignatureError as e:
        # Definitive rejection: a retry can never make this signature valid
        logger.error(f"Invalid signature on notification for order {e.order_id}")
        return _failure(status.HTTP_403_FORBIDDEN, "Invalid signature", order_id=e.order_id)
    except TransactionNotFoundError as e:
        return _failure(status.HTTP_404_NOT_FOUND, str(e), order_id=e.order_id)
    except ReconciliationError as e:
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), order_id=notification.order_id)

    body = NotificationResponse(
        success=True,
        order_id=result.order_id,
        status=result.status,
        message=result.message
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(mode="json"))


@router.post("/notification")
async def payment_notification(
    request: Request,
    db: Session = Depends(get_db),
    reconciliation: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Handle an HTTP notification from Midtrans

    The body is read raw: gross_amount must reach the signature check exactly
    as the provider serialized it, and the full payload is kept for audit.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.error("Notification body is not valid JSON")
        return _failure(status.HTTP_400_BAD_REQUEST, "Malformed notification")

    if not isinstance(payload, dict):
        logger.error(f"Notification body is not an object: {type(payload).__name__}")
        return _failure(status.HTTP_400_BAD_REQUEST, "Malformed notification")

    logger.info(
        f"Midtrans notification received: order_id={payload.get('order_id')} "
        f"transaction_status={payload.get('transaction_status')} "
        f"fraud_status={payload.get('fraud_status')}"
    )

    try:
        notification = PaymentNotification.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Malformed notification: {e.errors()}")
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            "Malformed notification",
            details=_validation_details(e)
        )

    return await run_in_threadpool(_reconcile, db, reconciliation, notification, payload)


@router.get("/{order_id}", response_model=TransactionResponse)
def get_transaction(order_id: str, db: Session = Depends(get_db)):
    """Get a stored transaction by order id"""
    transaction = db.query(Transaction).filter(Transaction.order_id == order_id).first()
    if not transaction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found"
        )
    return transaction


@router.post("/{order_id}/sync")
def sync_transaction(
    order_id: str,
    db: Session = Depends(get_db),
    reconciliation: ReconciliationService = Depends(get_reconciliation_service),
    midtrans: MidtransClient = Depends(get_midtrans_client)
):
    """
    Pull the current status of an order from Midtrans and reconcile it

    Used when a notification was missed. The status response is signed like
    a notification and goes through the same checks.
    """
    try:
        payload = midtrans.get_status(order_id)
    except ProviderAPIError as e:
        return _failure(status.HTTP_502_BAD_GATEWAY, str(e), order_id=order_id)

    try:
        notification = PaymentNotification.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Unexpected Midtrans status response for order {order_id}: {e.errors()}")
        return _failure(
            status.HTTP_502_BAD_GATEWAY,
            "Unexpected status response from Midtrans",
            order_id=order_id,
            details=_validation_details(e)
        )

    if notification.order_id != order_id:
        logger.error(f"Midtrans answered for order {notification.order_id}, asked for {order_id}")
        return _failure(status.HTTP_502_BAD_GATEWAY, "Order id mismatch in Midtrans response", order_id=order_id)

    return _reconcile(db, reconciliation, notification, payload)
