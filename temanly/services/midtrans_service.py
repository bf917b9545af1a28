"""
Midtrans API client
Fetches transaction status so a missed notification can be replayed through
the reconciliation service
"""
from typing import Any, Dict, Optional

import requests

from temanly.core.config import settings
from temanly.core.exceptions import ConfigurationError, ProviderAPIError
from temanly.core.logging_config import logger

SANDBOX_API_URL = "https://api.sandbox.midtrans.com"
PRODUCTION_API_URL = "https://api.midtrans.com"


class MidtransClient:
    """Thin client for the Midtrans Core API status endpoint"""

    def __init__(
        self,
        server_key: Optional[str] = None,
        is_production: Optional[bool] = None,
        timeout: Optional[float] = None
    ):
        self.server_key = server_key if server_key is not None else settings.MIDTRANS_SERVER_KEY
        if not self.server_key:
            raise ConfigurationError("MIDTRANS_SERVER_KEY is not configured")

        if is_production is None:
            is_production = settings.MIDTRANS_IS_PRODUCTION
        self.base_url = PRODUCTION_API_URL if is_production else SANDBOX_API_URL
        self.timeout = timeout if timeout is not None else settings.MIDTRANS_TIMEOUT

        logger.info(f"Midtrans client initialized with base URL: {self.base_url}")

    def get_status(self, order_id: str) -> Dict[str, Any]:
        """
        Get the current transaction status from Midtrans

        The response has the same shape as an HTTP notification, signature
        included.

        Args:
            order_id: Order id to look up

        Returns:
            Decoded JSON status response

        Raises:
            ProviderAPIError: On network errors, non-2xx answers or an
                error status_code in the body
        """
        url = f"{self.base_url}/v2/{order_id}/status"
        try:
            response = requests.get(
                url,
                auth=(self.server_key, ""),
                headers={"Accept": "application/json"},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Error contacting Midtrans for order {order_id}: {str(e)}")
            raise ProviderAPIError(f"Midtrans unreachable: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(f"Midtrans status request failed for order {order_id}: HTTP {response.status_code}")
            raise ProviderAPIError(
                f"Midtrans returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderAPIError("Midtrans returned a non-JSON response") from e
        if not isinstance(data, dict):
            raise ProviderAPIError("Midtrans returned an unexpected response")

        # Midtrans reports lookup errors in the body with HTTP 200. 407 (expired)
        # and 202 (denied) are real transaction states, not errors.
        status_code = str(data.get("status_code", ""))
        if status_code in ("401", "404") or status_code.startswith("5") or "transaction_status" not in data:
            logger.warning(f"Midtrans status for order {order_id}: {status_code} {data.get('status_message')}")
            raise ProviderAPIError(
                data.get("status_message") or f"Midtrans status_code {status_code}",
                status_code=int(status_code) if status_code.isdigit() else None
            )

        logger.info(f"Midtrans status for order {order_id}: {data.get('transaction_status')}")
        return data
