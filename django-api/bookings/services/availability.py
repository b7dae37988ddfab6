"""Per-slot seat availability.

Remaining capacity is never stored. It is recomputed on every check from
the slot's capacity and the confirmed bookings on that calendar date, so
two concurrent bookings can both pass a check and oversell a slot; nothing
here locks.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from uuid import UUID

from bookings.domain import SlotAvailability, TimeSlot
from bookings.domain.errors import (
    ActivityNotFoundError,
    CapacityExceededError,
    SlotFullError,
)
from bookings.stores.repository import BookingRepository, SeatUsage

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Local-date bounds ``[00:00:00, 23:59:59]``, no timezone normalization."""
    return datetime.combine(day, time.min), datetime.combine(day, END_OF_DAY)


def _booked_by_slot(usage: list[SeatUsage]) -> dict[UUID, int]:
    booked: dict[UUID, int] = defaultdict(int)
    for row in usage:
        booked[row.time_slot_id] += row.participant_count
    return booked


class SlotAvailabilityTracker:
    """Read-only seat accounting for time slots."""

    def __init__(
        self, repository: BookingRepository, clock: Callable[[], datetime]
    ) -> None:
        self._repository = repository
        self._clock = clock

    async def remaining_capacity(self, slot: TimeSlot, day: date) -> int:
        start, end = day_window(day)
        usage = await self._repository.confirmed_seat_usage(slot.experience_id, start, end)
        booked = _booked_by_slot(usage)[slot.id]
        return slot.capacity.remaining_after(booked).value

    async def ensure_capacity(
        self, slot: TimeSlot, day: date, participant_count: int
    ) -> int:
        """Check a request against the slot's current remaining seats.

        Raises:
            SlotFullError: If no seats remain.
            CapacityExceededError: If fewer seats remain than requested.
        """
        remaining = await self.remaining_capacity(slot, day)
        if remaining == 0:
            logger.warning("Slot %s on %s is full", slot.id, day)
            raise SlotFullError()
        if participant_count > remaining:
            logger.warning(
                "Slot %s on %s has %d seats, %d requested",
                slot.id,
                day,
                remaining,
                participant_count,
            )
            raise CapacityExceededError(remaining, participant_count)
        return remaining

    def _has_started(self, slot: TimeSlot, day: date, now: datetime) -> bool:
        if day != now.date():
            return False
        return slot.start_time.replace(second=0, microsecond=0) < now.time().replace(
            second=0, microsecond=0
        )

    async def list_slots(self, activity_id: UUID, day: date) -> list[SlotAvailability]:
        """All slots of an activity on a date, including fully booked ones.

        On today's date, slots that have already started are left out.
        """
        slots = await self._repository.list_time_slots(activity_id)
        if not slots:
            return []
        start, end = day_window(day)
        usage = await self._repository.confirmed_seat_usage(
            slots[0].experience_id, start, end
        )
        booked = _booked_by_slot(usage)
        now = self._clock()
        return [
            SlotAvailability(
                slot=slot,
                booked_count=booked[slot.id],
                remaining=slot.capacity.remaining_after(booked[slot.id]).value,
            )
            for slot in slots
            if not self._has_started(slot, day, now)
        ]

    async def available_dates(
        self,
        activity_id: UUID,
        participant_count: int,
        days: int,
        start: date | None = None,
    ) -> list[date]:
        """Dates from ``start`` (default today) on which some slot seats the group."""
        activity = await self._repository.get_activity(activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)
        slots = await self._repository.list_time_slots(activity_id)
        now = self._clock()
        first = start or now.date()
        last = first + timedelta(days=days - 1)
        window_start, _ = day_window(first)
        _, window_end = day_window(last)
        usage = await self._repository.confirmed_seat_usage(
            activity.experience_id, window_start, window_end
        )
        booked_by_day: dict[date, list[SeatUsage]] = defaultdict(list)
        for row in usage:
            booked_by_day[row.booking_date.date()].append(row)

        found = []
        for offset in range(days):
            day = first + timedelta(days=offset)
            booked = _booked_by_slot(booked_by_day[day])
            if any(
                not self._has_started(slot, day, now)
                and slot.capacity.remaining_after(booked[slot.id]).value
                >= participant_count
                for slot in slots
            ):
                found.append(day)
        return found
