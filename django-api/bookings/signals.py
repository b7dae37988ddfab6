"""Django signals for availability cache invalidation."""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from bookings.cache import invalidate_activity
from bookings.models import Activity, Booking, TimeSlot


@receiver([post_save, post_delete], sender=Booking)
def invalidate_on_booking_change(sender, instance, **kwargs):
    """A booking changes the seats left in its slot."""
    invalidate_activity(instance.activity_id)


@receiver([post_save, post_delete], sender=TimeSlot)
def invalidate_on_time_slot_change(sender, instance, **kwargs):
    invalidate_activity(instance.activity_id)


@receiver([post_save, post_delete], sender=Activity)
def invalidate_on_activity_change(sender, instance, **kwargs):
    invalidate_activity(instance.pk)
