"""App settings with defaults, read from ``settings.BOOKINGS``."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "PARTIAL_PAYMENT_RATE": "0.10",
    "MAX_PARTICIPANTS": 50,
    "FEW_SPOTS_THRESHOLD": 3,
    "BOOKING_WINDOW_DAYS": 365,
    "LOCAL_TIME_ZONE": "Asia/Kolkata",
    "DEFAULT_COUNTRY_CODE": "+91",
    "ADMIN_PHONE_NUMBERS": [],
    "NOTIFIER": "bookings.services.notifications.LoggingNotifier",
    "AVAILABILITY_CACHE_TIMEOUT": 60,
}


def booking_setting(name: str) -> Any:
    overrides = getattr(settings, "BOOKINGS", {})
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]


def partial_payment_rate() -> Decimal:
    return Decimal(str(booking_setting("PARTIAL_PAYMENT_RATE")))


def local_now() -> datetime:
    """Current wall-clock time in the configured zone, as a naive datetime."""
    zone = ZoneInfo(booking_setting("LOCAL_TIME_ZONE"))
    return datetime.now(zone).replace(tzinfo=None)
