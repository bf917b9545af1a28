"""
WhatsApp payment notifications
"""
import re
from dataclasses import dataclass
from typing import Optional

import requests

from temanly.core.config import settings
from temanly.core.logging_config import logger
from temanly.utils.tasks import run_in_background


@dataclass(frozen=True)
class PaymentConfirmation:
    """Data needed to tell both parties that a booking was paid"""
    booking_id: str
    customer_phone: Optional[str]
    companion_phone: Optional[str]
    amount: float
    payment_method: str
    companion_earnings: float


def format_phone_number(phone: str) -> str:
    """
    Normalise an Indonesian phone number to the 62 country prefix

    Args:
        phone: Number as entered, e.g. "0812-3456-789" or "+62 812 3456 789"

    Returns:
        Digits only, starting with 62
    """
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith("0"):
        return "62" + cleaned[1:]
    if cleaned.startswith("8"):
        return "62" + cleaned
    return cleaned


def format_rupiah(amount: float) -> str:
    """Format an amount as Rupiah with dot thousands separators"""
    return "Rp " + f"{int(round(amount)):,}".replace(",", ".")


class PaymentNotifier:
    """Sends payment confirmations through a WhatsApp HTTP gateway"""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        background: bool = True
    ):
        self.api_url = api_url if api_url is not None else settings.WHATSAPP_API_URL
        self.api_key = api_key if api_key is not None else settings.WHATSAPP_API_KEY
        self.timeout = timeout
        self.background = background

        if not self.api_url or not self.api_key:
            logger.warning("WhatsApp gateway not configured. Payment notifications will only be logged.")

    @property
    def enabled(self) -> bool:
        return bool(self.api_url and self.api_key)

    def send_message(self, phone: str, message: str) -> bool:
        """
        Send a single WhatsApp message

        Returns:
            True if the gateway accepted the message, False otherwise
        """
        recipient = format_phone_number(phone)
        if not recipient:
            logger.warning("Skipping WhatsApp message: no phone number")
            return False
        if not self.enabled:
            logger.info(f"WhatsApp disabled, message to {recipient} not sent: {message!r}")
            return False

        try:
            response = requests.get(
                self.api_url,
                params={"recipient": recipient, "apikey": self.api_key, "text": message},
                timeout=self.timeout
            )
            response.raise_for_status()
            logger.info(f"WhatsApp message sent to {recipient}")
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to send WhatsApp to {recipient}: {str(e)}")
            return False

    def payment_confirmed(self, confirmation: PaymentConfirmation) -> None:
        """Notify customer and companion that a booking has been paid"""
        customer_message = (
            "Payment Confirmed - Temanly\n\n"
            f"Total: {format_rupiah(confirmation.amount)}\n"
            f"Method: {confirmation.payment_method}\n\n"
            f"Booking ID: {confirmation.booking_id}\n\n"
            "Your talent will contact you shortly. Thank you!"
        )
        companion_message = (
            "Payment Received - Temanly\n\n"
            f"Earnings: {format_rupiah(confirmation.companion_earnings)}\n"
            f"Method: {confirmation.payment_method}\n\n"
            f"Booking ID: {confirmation.booking_id}\n\n"
            "Please contact the customer to start the service."
        )

        messages = [
            (confirmation.customer_phone, customer_message),
            (confirmation.companion_phone, companion_message),
        ]
        for phone, message in messages:
            if not phone:
                continue
            if self.background:
                _send_in_background(self, phone, message)
            else:
                self.send_message(phone, message)


@run_in_background
def _send_in_background(notifier: PaymentNotifier, phone: str, message: str) -> None:
    notifier.send_message(phone, message)
