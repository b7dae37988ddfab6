"""Serializers for request parsing and for rendering domain results."""

from decimal import Decimal

from rest_framework import serializers

from bookings.conf import booking_setting

MONEY = {"max_digits": 12, "decimal_places": 2}


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    participants = serializers.IntegerField(required=False, default=1)


class DatesQuerySerializer(serializers.Serializer):
    participants = serializers.IntegerField(required=False, default=1)
    days = serializers.IntegerField(required=False, min_value=1)

    def validate_days(self, value: int) -> int:
        return min(value, booking_setting("BOOKING_WINDOW_DAYS"))


class AgentPricingSerializer(serializers.Serializer):
    selling_price = serializers.DecimalField(**MONEY, min_value=Decimal("0"))
    b2b_price = serializers.DecimalField(
        **MONEY, min_value=Decimal("0"), required=False, default=Decimal("0")
    )
    advance_payment = serializers.DecimalField(
        **MONEY, min_value=Decimal("0"), required=False, default=Decimal("0")
    )


class QuoteRequestSerializer(serializers.Serializer):
    activity_id = serializers.CharField()
    participants = serializers.IntegerField()
    coupon_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    partial_payment = serializers.BooleanField(required=False, default=False)
    agent_pricing = AgentPricingSerializer(required=False, allow_null=True)


class CouponRequestSerializer(serializers.Serializer):
    activity_id = serializers.CharField()
    coupon_code = serializers.CharField(allow_blank=True, required=False, default="")


class ContactSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone_number = serializers.CharField(max_length=20)


class BookingRequestSerializer(serializers.Serializer):
    """Input of POST /api/bookings.

    Activity, date and slot are optional here so that a missing selection
    is reported with the wizard's own message.
    """

    experience_id = serializers.UUIDField()
    activity_id = serializers.UUIDField(required=False, allow_null=True)
    booking_date = serializers.DateField(required=False, allow_null=True)
    time_slot_id = serializers.UUIDField(required=False, allow_null=True)
    participants = serializers.IntegerField()
    contact = ContactSerializer()
    is_agent = serializers.BooleanField(required=False, default=False)
    bypass_payment = serializers.BooleanField(required=False, default=False)
    partial_payment = serializers.BooleanField(required=False, default=False)
    coupon_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    referral_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    note_for_guide = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    agent_pricing = AgentPricingSerializer(required=False, allow_null=True)
    payment_reference = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )


class SlotSerializer(serializers.Serializer):
    """Renders a SlotListing."""

    id = serializers.UUIDField(source="availability.slot.id")
    start_time = serializers.TimeField(source="availability.slot.start_time")
    end_time = serializers.TimeField(source="availability.slot.end_time")
    label = serializers.CharField(source="availability.slot.label")
    capacity = serializers.IntegerField(source="availability.slot.capacity.value")
    booked_count = serializers.IntegerField(source="availability.booked_count")
    remaining = serializers.IntegerField(source="availability.remaining")
    status = serializers.CharField(source="status.value")


class DiscountCalculationSerializer(serializers.Serializer):
    original_amount = serializers.DecimalField(**MONEY)
    discount_amount = serializers.DecimalField(**MONEY)
    final_amount = serializers.DecimalField(**MONEY)
    savings_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)


class CouponSerializer(serializers.Serializer):
    """Renders a CouponValidation."""

    valid = serializers.BooleanField()
    coupon_code = serializers.CharField(source="coupon.coupon_code")
    discount_calculation = DiscountCalculationSerializer()


class QuoteSerializer(serializers.Serializer):
    """Renders a Quote."""

    per_person = serializers.DecimalField(source="price.per_person", **MONEY)
    total = serializers.DecimalField(source="price.total", **MONEY)
    list_total = serializers.DecimalField(source="price.list_total", **MONEY)
    savings = serializers.DecimalField(source="price.savings", **MONEY)
    currency = serializers.CharField(source="price.currency")
    price_source = serializers.CharField(source="price.source.value")
    upfront = serializers.DecimalField(source="split.upfront", **MONEY)
    due = serializers.DecimalField(source="split.due", **MONEY)
    policy = serializers.CharField(source="split.policy.kind.value")
    coupon = CouponSerializer(allow_null=True)


class BookingSerializer(serializers.Serializer):
    """Renders a FinalizedBooking."""

    id = serializers.UUIDField(source="booking.id")
    status = serializers.CharField(source="booking.status.value")
    booking_date = serializers.DateField()
    time_slot_id = serializers.UUIDField(source="booking.time_slot_id")
    participant_count = serializers.IntegerField(source="booking.participant_count")
    booking_amount = serializers.DecimalField(
        source="booking.booking_amount.amount", **MONEY
    )
    due_amount = serializers.DecimalField(source="booking.due_amount.amount", **MONEY)
    upfront_amount = serializers.DecimalField(source="split.upfront", **MONEY)
    currency = serializers.CharField(source="booking.booking_amount.currency")
    payment_reference = serializers.CharField(
        source="booking.payment_reference", allow_null=True
    )
    warnings = serializers.ListField(child=serializers.CharField())


class CommissionSerializer(serializers.Serializer):
    commission_per_vendor = serializers.DecimalField(**MONEY)
    net_commission = serializers.DecimalField(**MONEY)
    amount_vendor_owes_platform = serializers.DecimalField(**MONEY)
