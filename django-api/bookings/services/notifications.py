"""Booking confirmation messages.

The notifier itself is an external collaborator; this module builds the
template fields and e-mail payload and hands them over. Failures propagate
to the caller, which decides they are soft.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.utils.module_loading import import_string

from bookings.conf import booking_setting
from bookings.domain import Activity, Booking, Experience, TimeSlot, round_money

logger = logging.getLogger(__name__)

CUSTOMER_TWO_LOCATION_TEMPLATE = "user_ticket_confirmation_two_location_v2"
CUSTOMER_ONE_LOCATION_TEMPLATE = "confirmation_user_with_ticket"
VENDOR_TEMPLATE = "booking_confirmation_vendor_v2"
CONFIRMATION_EMAIL = "booking_confirmation"


class Notifier(ABC):
    """Interface for message and e-mail dispatch."""

    @abstractmethod
    async def send_template_message(
        self, template_name: str, recipient_phone: str, fields: list[str]
    ) -> None: ...

    @abstractmethod
    async def send_email(self, kind: str, payload: dict[str, Any]) -> None: ...


class LoggingNotifier(Notifier):
    """Writes notifications to the log instead of sending them."""

    async def send_template_message(
        self, template_name: str, recipient_phone: str, fields: list[str]
    ) -> None:
        logger.info("Template message %s queued with %d fields", template_name, len(fields))

    async def send_email(self, kind: str, payload: dict[str, Any]) -> None:
        logger.info("E-mail %s queued for booking %s", kind, payload.get("bookingId"))


def load_notifier() -> Notifier:
    return import_string(booking_setting("NOTIFIER"))()


def normalize_phone(phone_number: str, country_code: str) -> str:
    """Prefix bare 10-digit numbers with the country code."""
    phone_number = phone_number.strip()
    if len(phone_number) == 10 and phone_number.isdigit():
        return f"{country_code}{phone_number}"
    return phone_number


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


@dataclass(frozen=True)
class BookingNotice:
    """Everything the confirmation messages mention."""

    booking: Booking
    experience: Experience
    activity: Activity
    slot: TimeSlot
    upfront: Decimal
    due: Decimal
    partial_payment: bool
    vendor_phone: str | None = None

    @property
    def window_text(self) -> str:
        return self.slot.window_text(self.booking.booking_date.date())

    @property
    def advance_plus_discount(self) -> Decimal:
        """Upfront plus whatever the customer saved against the list price."""
        list_total = round_money(
            self.activity.base_price.amount * self.booking.participant_count
        )
        discount = max(Decimal("0"), list_total - self.booking.booking_amount.amount)
        return round_money(self.upfront + discount)


def customer_message(notice: BookingNotice) -> tuple[str, list[str]]:
    """Pick the customer template by location count and fill its fields."""
    booking = notice.booking
    head = [booking.contact.name, notice.activity.name, notice.window_text]
    tail = [str(booking.participant_count), _money(notice.upfront), _money(notice.due)]
    if notice.experience.has_two_locations:
        locations = [notice.experience.location or "", notice.experience.location2 or ""]
        return CUSTOMER_TWO_LOCATION_TEMPLATE, head + locations + tail
    return CUSTOMER_ONE_LOCATION_TEMPLATE, head + [notice.experience.location or ""] + tail


def vendor_message(notice: BookingNotice) -> tuple[str, list[str]]:
    booking = notice.booking
    return VENDOR_TEMPLATE, [
        booking.contact.name,
        str(booking.participant_count),
        booking.contact.phone_number,
        notice.experience.title,
        notice.activity.name,
        notice.window_text,
        _money(notice.due),
        _money(notice.advance_plus_discount),
    ]


def confirmation_email(notice: BookingNotice) -> dict[str, Any]:
    booking = notice.booking
    participant = {
        "name": booking.contact.name,
        "email": booking.contact.email,
        "phone_number": booking.contact.phone_number,
    }
    return {
        "customerEmail": booking.contact.email,
        "customerName": booking.contact.name,
        "experienceTitle": notice.experience.title,
        "activityName": notice.activity.name,
        "bookingDate": booking.booking_date.isoformat(),
        "formattedDateTime": notice.window_text,
        "timeSlot": f"{notice.slot.start_time:%H:%M} - {notice.slot.end_time:%H:%M}",
        "location": notice.experience.location or "",
        "location2": notice.experience.location2,
        "totalParticipants": booking.participant_count,
        "totalAmount": _money(booking.booking_amount.amount),
        "upfrontAmount": _money(notice.upfront),
        "dueAmount": _money(notice.due),
        "partialPayment": notice.partial_payment,
        "currency": booking.booking_amount.currency,
        "participants": [participant] * booking.participant_count,
        "bookingId": str(booking.id),
        "noteForGuide": booking.note_for_guide,
        "paymentId": booking.payment_reference or "",
    }


class BookingNotifier:
    """Sends the customer, vendor, admin and e-mail confirmations."""

    def __init__(
        self,
        notifier: Notifier,
        country_code: str,
        admin_phones: list[str] | tuple[str, ...] = (),
    ) -> None:
        self._notifier = notifier
        self._country_code = country_code
        self._admin_phones = tuple(admin_phones)

    async def notify(self, notice: BookingNotice) -> None:
        template, fields = customer_message(notice)
        await self._notifier.send_template_message(
            template,
            normalize_phone(notice.booking.contact.phone_number, self._country_code),
            fields,
        )

        template, fields = vendor_message(notice)
        recipients = list(self._admin_phones)
        if notice.vendor_phone:
            recipients.insert(0, notice.vendor_phone)
        for phone in recipients:
            await self._notifier.send_template_message(
                template, normalize_phone(phone, self._country_code), fields
            )

        await self._notifier.send_email(CONFIRMATION_EMAIL, confirmation_email(notice))
