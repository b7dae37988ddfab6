from bookings.domain.models import (
    Activity,
    Booking,
    BookingStatus,
    BookingType,
    ContactPerson,
    Coupon,
    DiscountCalculation,
    Experience,
    Profile,
    SlotAvailability,
    SlotStatus,
    TimeSlot,
)
from bookings.domain.value_objects import (
    Capacity,
    DiscountType,
    Money,
    ParticipantCount,
    round_money,
)

__all__ = [
    "Activity",
    "Booking",
    "BookingStatus",
    "BookingType",
    "ContactPerson",
    "Coupon",
    "DiscountCalculation",
    "Experience",
    "Profile",
    "SlotAvailability",
    "SlotStatus",
    "TimeSlot",
    "Money",
    "Capacity",
    "ParticipantCount",
    "DiscountType",
    "round_money",
]
