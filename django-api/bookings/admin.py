from django.contrib import admin

from bookings.models import (
    Activity,
    Booking,
    BookingParticipant,
    Coupon,
    Experience,
    Profile,
    TimeSlot,
)


class ActivityInline(admin.TabularInline):
    model = Activity
    extra = 0
    fields = ["name", "base_price", "discount_type", "discount_value", "is_active"]


class TimeSlotInline(admin.TabularInline):
    model = TimeSlot
    extra = 1
    fields = ["start_time", "end_time", "capacity"]


class BookingParticipantInline(admin.TabularInline):
    model = BookingParticipant
    extra = 0


@admin.register(Experience)
class ExperienceAdmin(admin.ModelAdmin):
    list_display = ["title", "location", "currency", "created_at"]
    search_fields = ["title", "location"]
    inlines = [ActivityInline]


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "experience",
        "base_price",
        "discounted_price",
        "b2b_price",
        "is_active",
    ]
    list_filter = ["experience", "is_active"]
    readonly_fields = ["discounted_price", "discount_percentage"]
    inlines = [TimeSlotInline]

    def save_formset(self, request, form, formset, change):
        # Inline slots inherit the parent activity's experience.
        for slot in formset.save(commit=False):
            slot.experience_id = form.instance.experience_id
            slot.save()
        formset.save_m2m()
        for obj in formset.deleted_objects:
            obj.delete()


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "contact_person_name",
        "booking_date",
        "participant_count",
        "booking_amount",
        "due_amount",
        "type",
        "status",
    ]
    list_filter = ["status", "type", "is_agent_booking"]
    search_fields = ["contact_person_name", "contact_person_email", "referral_code"]
    inlines = [BookingParticipantInline]


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ["first_name", "last_name", "role"]
    list_filter = ["role"]
    raw_id_fields = ["user"]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ["coupon_code", "experience", "type", "discount_value", "used_count"]
    list_filter = ["experience", "is_active"]
