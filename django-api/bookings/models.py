"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.conf import settings
from django.db import models

from bookings.domain.value_objects import DiscountType
from bookings.services.pricing import apply_activity_discount


class Experience(models.Model):
    """Persistence model for experiences."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    vendor_id = models.UUIDField(blank=True, null=True)
    currency = models.CharField(max_length=10, default="INR")
    location = models.TextField(blank=True, null=True)
    location2 = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title


class Activity(models.Model):
    """Persistence model for bookable activities within an experience."""

    DISCOUNT_TYPES = [(t.value, t.value.title()) for t in DiscountType]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    experience = models.ForeignKey(
        Experience, on_delete=models.CASCADE, related_name="activities"
    )
    name = models.CharField(max_length=255)
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=10, default="INR")
    discount_type = models.CharField(
        max_length=20, choices=DISCOUNT_TYPES, default=DiscountType.PERCENTAGE.value
    )
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    discounted_price = models.DecimalField(
        max_digits=10, decimal_places=2, blank=True, null=True
    )
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    b2b_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order"]
        indexes = [
            models.Index(fields=["experience", "is_active"]),
        ]

    def save(self, *args, **kwargs):
        discount = apply_activity_discount(
            self.base_price, DiscountType(self.discount_type), self.discount_value
        )
        self.discounted_price = discount.discounted_price
        self.discount_percentage = discount.discount_percentage
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name


class TimeSlot(models.Model):
    """Persistence model for activity time slots."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    experience = models.ForeignKey(
        Experience, on_delete=models.CASCADE, related_name="time_slots"
    )
    activity = models.ForeignKey(
        Activity, on_delete=models.CASCADE, related_name="time_slots"
    )
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField()

    class Meta:
        ordering = ["start_time"]
        indexes = [
            models.Index(fields=["activity", "start_time"]),
        ]

    def __str__(self) -> str:
        return f"{self.activity.name} - {self.start_time}"


class Booking(models.Model):
    """Persistence model for bookings.

    Slot and activity are weak references so a booking outlives them.
    """

    TYPES = [("online", "Online"), ("offline", "Offline"), ("canceled", "Canceled")]
    STATUSES = [("confirmed", "Confirmed"), ("cancelled", "Cancelled")]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.UUIDField(blank=True, null=True)
    experience_id = models.UUIDField(db_index=True)
    activity_id = models.UUIDField()
    time_slot_id = models.UUIDField(db_index=True)
    booking_date = models.DateTimeField()
    participant_count = models.PositiveSmallIntegerField()
    booking_amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    b2b_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=10, default="INR")
    is_agent_booking = models.BooleanField(default=False)
    type = models.CharField(max_length=20, choices=TYPES, default="online")
    status = models.CharField(max_length=20, choices=STATUSES, default="confirmed")
    contact_person_name = models.CharField(max_length=255)
    contact_person_email = models.EmailField()
    contact_person_number = models.CharField(max_length=20)
    referral_code = models.CharField(max_length=255, blank=True, null=True)
    coupon_code = models.CharField(max_length=50, blank=True, null=True)
    note_for_guide = models.TextField(blank=True, null=True)
    terms_accepted = models.BooleanField(default=False)
    payment_reference = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["experience_id", "booking_date", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.contact_person_name} - {self.booking_date:%Y-%m-%d}"


class BookingParticipant(models.Model):
    """One row per seat, owned by its booking."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(
        Booking, on_delete=models.CASCADE, related_name="participants"
    )
    name = models.CharField(max_length=255)
    email = models.EmailField()
    phone_number = models.CharField(max_length=20)

    def __str__(self) -> str:
        return self.name


class Profile(models.Model):
    ROLES = [
        ("customer", "Customer"),
        ("agent", "Agent"),
        ("vendor", "Vendor"),
        ("admin", "Admin"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100, blank=True, default="")
    phone_number = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLES, default="customer")
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="booking_profile",
    )

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Coupon(models.Model):
    """Persistence model for experience-scoped coupons."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    coupon_code = models.CharField(max_length=50, unique=True)
    experience = models.ForeignKey(
        Experience, on_delete=models.CASCADE, related_name="coupons"
    )
    type = models.CharField(
        max_length=20, choices=Activity.DISCOUNT_TYPES, default=DiscountType.PERCENTAGE.value
    )
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    max_uses = models.PositiveIntegerField(blank=True, null=True)
    used_count = models.PositiveIntegerField(default=0)
    valid_until = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)

    def save(self, *args, **kwargs):
        self.coupon_code = self.coupon_code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.coupon_code
