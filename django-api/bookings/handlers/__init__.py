from bookings.handlers.views import (
    AvailableDatesView,
    BookingCreateView,
    CommissionView,
    CouponValidateView,
    QuoteView,
    SlotListView,
)

__all__ = [
    "AvailableDatesView",
    "BookingCreateView",
    "CommissionView",
    "CouponValidateView",
    "QuoteView",
    "SlotListView",
]
