"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in bookings/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID

from bookings.domain.value_objects import Capacity, DiscountType, Money


class BookingType(Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    CANCELED = "canceled"


class BookingStatus(Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class SlotStatus(Enum):
    """Display status of a slot for a requested participant count."""

    AVAILABLE = "available"
    FEW_SPOTS_LEFT = "few_spots_left"
    NOT_ENOUGH_SPOTS = "not_enough_spots"
    FULLY_BOOKED = "fully_booked"


def format_clock(value: time) -> str:
    """Render a time of day as ``h:MM AM``."""
    hour12 = 12 if value.hour % 12 == 0 else value.hour % 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hour12}:{value.minute:02d} {suffix}"


@dataclass(frozen=True)
class Experience:
    """Domain representation of an Experience."""

    id: UUID
    title: str
    vendor_id: UUID | None
    currency: str
    location: str | None = None
    location2: str | None = None

    @property
    def has_two_locations(self) -> bool:
        return self.location is not None and self.location2 is not None


@dataclass(frozen=True)
class Activity:
    """Domain representation of an Activity."""

    id: UUID
    experience_id: UUID
    name: str
    base_price: Money
    discount_type: DiscountType
    discount_value: Decimal
    discounted_price: Money | None
    discount_percentage: Decimal
    b2b_price: Money
    is_active: bool = True

    @property
    def currency(self) -> str:
        return self.base_price.currency

    @property
    def unit_price(self) -> Money:
        """Per-person price after the activity's own discount."""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.base_price


@dataclass(frozen=True)
class TimeSlot:
    """Domain representation of a TimeSlot."""

    id: UUID
    activity_id: UUID
    experience_id: UUID
    start_time: time
    end_time: time
    capacity: Capacity

    @property
    def label(self) -> str:
        return format_clock(self.start_time)

    def window_text(self, day: date) -> str:
        return (
            f"{day:%d/%m/%Y} - {self.start_time:%I:%M %p} - {self.end_time:%I:%M %p}"
        )


@dataclass(frozen=True)
class SlotAvailability:
    """A slot together with its seat usage on one date."""

    slot: TimeSlot
    booked_count: int
    remaining: int

    def status(self, participant_count: int, few_spots_threshold: int) -> SlotStatus:
        if self.remaining == 0:
            return SlotStatus.FULLY_BOOKED
        if self.remaining < participant_count:
            return SlotStatus.NOT_ENOUGH_SPOTS
        if self.remaining <= few_spots_threshold:
            return SlotStatus.FEW_SPOTS_LEFT
        return SlotStatus.AVAILABLE


@dataclass(frozen=True)
class ContactPerson:
    """The single contact collected for a booking."""

    name: str
    email: str
    phone_number: str


@dataclass(frozen=True)
class Booking:
    """Domain representation of a Booking.

    Slot and activity are referenced by id only; the money fields are
    snapshots taken at commit time.
    """

    id: UUID
    user_id: UUID | None
    experience_id: UUID
    activity_id: UUID
    time_slot_id: UUID
    booking_date: datetime
    participant_count: int
    booking_amount: Money
    due_amount: Money
    b2b_price: Money
    is_agent_booking: bool
    type: BookingType
    status: BookingStatus
    contact: ContactPerson
    referral_code: str | None = None
    coupon_code: str | None = None
    note_for_guide: str | None = None
    payment_reference: str | None = None
    created_at: datetime | None = None

    @property
    def upfront_amount(self) -> Money:
        return Money.of(
            self.booking_amount.amount - self.due_amount.amount,
            self.booking_amount.currency,
        )


@dataclass(frozen=True)
class Profile:
    """Purchaser or agent profile."""

    id: UUID
    first_name: str
    last_name: str
    phone_number: str | None
    role: str = "customer"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_vendor(self) -> bool:
        return self.role == "vendor"

    @property
    def is_agent(self) -> bool:
        return self.role == "agent"


@dataclass(frozen=True)
class Coupon:
    """Discount coupon scoped to one experience."""

    id: UUID
    coupon_code: str
    experience_id: UUID
    type: DiscountType
    discount_value: Decimal
    max_uses: int | None = None
    used_count: int = 0
    valid_until: datetime | None = None
    is_active: bool = True

    def is_usable(self, experience_id: UUID, now: datetime) -> bool:
        if not self.is_active or self.experience_id != experience_id:
            return False
        if self.valid_until is not None and now > self.valid_until:
            return False
        if self.max_uses is not None and self.used_count >= self.max_uses:
            return False
        return True


@dataclass(frozen=True)
class DiscountCalculation:
    """Per-person effect of a coupon on one activity price."""

    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    savings_percentage: Decimal
