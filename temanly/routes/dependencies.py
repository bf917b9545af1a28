"""
Shared dependencies for routes
"""
from fastapi import Request

from temanly.services.midtrans_service import MidtransClient
from temanly.services.reconciliation_service import ReconciliationService


def get_reconciliation_service(request: Request) -> ReconciliationService:
    """Reconciliation service built at startup"""
    return request.app.state.reconciliation_service


def get_midtrans_client(request: Request) -> MidtransClient:
    """Midtrans API client built at startup"""
    return request.app.state.midtrans_client
