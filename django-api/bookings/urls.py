from django.urls import path

from bookings.handlers import (
    AvailableDatesView,
    BookingCreateView,
    CommissionView,
    CouponValidateView,
    QuoteView,
    SlotListView,
)

urlpatterns = [
    path(
        "activities/<str:activity_id>/slots",
        SlotListView.as_view(),
        name="slot-list",
    ),
    path(
        "activities/<str:activity_id>/dates",
        AvailableDatesView.as_view(),
        name="available-dates",
    ),
    path("quotes", QuoteView.as_view(), name="quote"),
    path("coupons/validate", CouponValidateView.as_view(), name="coupon-validate"),
    path("bookings", BookingCreateView.as_view(), name="booking-create"),
    path(
        "bookings/<str:booking_id>/commission",
        CommissionView.as_view(),
        name="booking-commission",
    ),
]
