"""
Service pricing and eligibility rules
Handles per-service prices, duration conversion, identity-verification
restrictions and the customer/talent fee breakdown
"""
import math
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from temanly.core.logging_config import logger

# Base prices in IDR
SERVICE_PRICING: Dict[str, Dict[str, Union[int, str]]] = {
    "chat": {"base_price": 25000, "unit": "day"},
    "call": {"base_price": 40000, "unit": "hour"},
    "video-call": {"base_price": 65000, "unit": "hour"},
    "rent-a-lover": {"base_price": 85000, "unit": "day"},
    "offline-date": {"base_price": 285000, "unit": "3 hours"},
    "party-buddy": {"base_price": 1000000, "unit": "event"},
}

# Units a duration may be given in; anything else would not be converted
SERVICE_DURATION_UNITS: Dict[str, FrozenSet[str]] = {
    "chat": frozenset({"days", "weeks", "months"}),
    "call": frozenset({"hours"}),
    "video-call": frozenset({"hours"}),
    "rent-a-lover": frozenset({"days", "weeks", "months"}),
    "offline-date": frozenset({"hours"}),
    "party-buddy": frozenset({"events"}),
}

SERVICE_NAMES: Dict[str, str] = {
    "chat": "Chat",
    "call": "Voice Call",
    "video-call": "Video Call",
    "rent-a-lover": "Rent a Lover",
    "offline-date": "Offline Date",
    "party-buddy": "Party Buddy",
}

# Services that need KTP, email and WhatsApp verification
RESTRICTED_SERVICES = frozenset({"offline-date", "party-buddy"})

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
OFFLINE_DATE_BLOCK_HOURS = 3

APP_FEE_RATE = 0.10
COMMISSION_RATES: Dict[str, float] = {
    "fresh": 0.20,
    "elite": 0.18,
    "vip": 0.15,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class PricingService:
    """Pure pricing and eligibility rules"""

    @staticmethod
    def get_base_price(service_id: str) -> int:
        """Base price for a service, 0 for unknown ids"""
        pricing = SERVICE_PRICING.get(service_id)
        return int(pricing["base_price"]) if pricing else 0

    @staticmethod
    def is_known_service(service_id: str) -> bool:
        return service_id in SERVICE_PRICING

    @staticmethod
    def get_duration_units(service_id: str) -> List[str]:
        """Duration units a service can be booked in, sorted"""
        return sorted(SERVICE_DURATION_UNITS.get(service_id, frozenset()))

    @staticmethod
    def is_valid_duration_unit(service_id: str, duration_unit: Optional[str]) -> bool:
        return duration_unit in SERVICE_DURATION_UNITS.get(service_id, frozenset())

    @staticmethod
    def calculate_service_price(
        service_id: str,
        duration: int,
        duration_unit: Optional[str] = None
    ) -> int:
        """
        Calculate the price of one service selection

        Args:
            service_id: Service identifier, e.g. "offline-date"
            duration: Requested duration
            duration_unit: "hours", "days", "weeks" or "months"

        Returns:
            Price in IDR. Unknown service ids price to 0, which callers must
            treat as a data error rather than a free service.
        """
        pricing = SERVICE_PRICING.get(service_id)
        if not pricing:
            logger.warning(f"Unknown service id priced at 0: {service_id}")
            return 0

        multiplier = duration
        if service_id == "offline-date":
            # Base price covers a 3 hour block; partial blocks round up
            if duration_unit == "hours":
                multiplier = math.ceil(duration / OFFLINE_DATE_BLOCK_HOURS)
        elif pricing["unit"] == "day":
            if duration_unit == "weeks":
                multiplier = duration * DAYS_PER_WEEK
            elif duration_unit == "months":
                multiplier = duration * DAYS_PER_MONTH

        return int(pricing["base_price"]) * multiplier

    @staticmethod
    def calculate_total_price(selections: Iterable[Dict]) -> int:
        """Sum of calculate_service_price over selections of {id, duration, duration_unit}"""
        return sum(
            PricingService.calculate_service_price(
                s["id"], s["duration"], s.get("duration_unit")
            )
            for s in selections
        )

    @staticmethod
    def is_restricted_service(service_id: str) -> bool:
        """Whether the service needs identity verification"""
        return service_id in RESTRICTED_SERVICES

    @staticmethod
    def get_service_restrictions(is_verified: bool) -> List[str]:
        """Display names of services an unverified user cannot book"""
        if is_verified:
            return []
        return [SERVICE_NAMES[s] for s in sorted(RESTRICTED_SERVICES, key=list(SERVICE_NAMES).index)]

    @staticmethod
    def get_restricted_services(selections: Iterable[Dict], is_verified: bool) -> List[Dict]:
        """Selections the user is not allowed to book"""
        if is_verified:
            return []
        return [s for s in selections if s["id"] in RESTRICTED_SERVICES]

    @staticmethod
    def has_restricted_services(selections: Iterable[Dict], is_verified: bool) -> bool:
        return bool(PricingService.get_restricted_services(selections, is_verified))

    @staticmethod
    def validate_service_access(service_id: str, is_verified: bool) -> Dict[str, Union[bool, str]]:
        """
        Check whether a user may book a service

        Returns:
            {"allowed": bool} plus a "message" when refused
        """
        if not is_verified and service_id in RESTRICTED_SERVICES:
            return {
                "allowed": False,
                "message": (
                    f"{PricingService.format_service_name(service_id)} requires identity "
                    f"verification (KTP, email and WhatsApp)."
                )
            }
        return {"allowed": True}

    @staticmethod
    def format_service_name(service_id: str) -> str:
        return SERVICE_NAMES.get(service_id, service_id)

    @staticmethod
    def calculate_payment_breakdown(
        service_amount: float,
        talent_level: str = "fresh"
    ) -> Dict[str, float]:
        """
        Split a service amount between customer, talent and platform

        The customer pays the service amount plus a 10% app fee. The platform
        keeps the app fee plus a commission that depends on the talent level.

        Args:
            service_amount: Price of the booked services
            talent_level: "fresh", "elite" or "vip"

        Returns:
            Dictionary with all breakdown components
        """
        if talent_level not in COMMISSION_RATES:
            raise ValueError(f"Unknown talent level: {talent_level}")

        commission_rate = COMMISSION_RATES[talent_level]
        app_fee = _round_half_up(service_amount * APP_FEE_RATE)
        commission_amount = _round_half_up(service_amount * commission_rate)
        talent_earnings = service_amount - commission_amount

        return {
            "service_amount": service_amount,
            "app_fee": app_fee,
            "total_charged_to_customer": service_amount + app_fee,
            "commission_rate": commission_rate * 100,
            "commission_amount": commission_amount,
            "talent_earnings": talent_earnings,
            "platform_revenue": app_fee + commission_amount,
        }


# Global instance
pricing_service = PricingService()
