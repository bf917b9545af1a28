"""
Exceptions raised by the payment services
"""


class ConfigurationError(Exception):
    """Raised when a required setting is missing. Fatal at startup."""
    pass


class InvalidSignatureError(Exception):
    """Raised when a notification fails the signature check. Never retryable."""

    def __init__(self, order_id: str):
        super().__init__("Invalid signature")
        self.order_id = order_id


class ReconciliationError(Exception):
    """Raised when a notification could not be applied. The provider should retry."""
    pass


class TransactionNotFoundError(ReconciliationError):
    """Raised when a notification refers to an order id we have no record of."""

    def __init__(self, order_id: str):
        super().__init__(f"Transaction not found: {order_id}")
        self.order_id = order_id


class ProviderAPIError(Exception):
    """Raised when the payment provider's API cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
