"""
Midtrans notification signature verification
"""
import hashlib
import hmac

from temanly.core.exceptions import ConfigurationError
from temanly.core.logging_config import logger


class NotificationVerifier:
    """
    Authenticates provider notifications with the shared server key.

    The signature is the hex SHA-512 of order_id + status_code + gross_amount
    + server_key, computed over the exact strings the provider sent.
    """

    def __init__(self, server_key: str):
        if not server_key:
            raise ConfigurationError("MIDTRANS_SERVER_KEY is not configured")
        self._server_key = server_key

    def signature_for(self, order_id: str, status_code: str, gross_amount: str) -> str:
        """Compute the expected signature for a notification"""
        payload = f"{order_id}{status_code}{gross_amount}{self._server_key}"
        return hashlib.sha512(payload.encode("utf-8")).hexdigest()

    def verify(
        self,
        order_id: str,
        status_code: str,
        gross_amount: str,
        signature: str
    ) -> bool:
        """
        Check a claimed signature

        Args:
            order_id: Provider order id
            status_code: Provider status code, e.g. "200"
            gross_amount: Gross amount as serialized by the provider, e.g. "100000.00"
            signature: Claimed signature_key

        Returns:
            True if the notification is authentic
        """
        if not signature:
            return False
        expected = self.signature_for(order_id, status_code, gross_amount)
        valid = hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
        if not valid:
            logger.warning(f"Signature mismatch for order {order_id}")
        return valid
