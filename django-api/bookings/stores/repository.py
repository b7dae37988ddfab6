"""Typed access to the record store.

Rows coming back from a RecordStore are untyped dicts. This module is the
only place that reads them: required fields are checked here and rows that
lack them are rejected, optional fields get defaults, and everything past
this point works with domain records.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from bookings.domain import (
    Activity,
    Booking,
    BookingStatus,
    BookingType,
    Capacity,
    ContactPerson,
    Coupon,
    DiscountType,
    Experience,
    Money,
    Profile,
    TimeSlot,
)
from bookings.domain.errors import MalformedRecordError
from bookings.stores.interfaces import Entity, RecordStore, Row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeatUsage:
    """The part of a confirmed booking that consumes slot capacity."""

    time_slot_id: UUID
    booking_date: datetime
    participant_count: int


def _require(entity: Entity, row: Row, fields: tuple[str, ...]) -> None:
    missing = tuple(field for field in fields if row.get(field) is None)
    if missing:
        logger.warning(
            "Rejected malformed %s row %s, missing %s",
            entity.value,
            row.get("id"),
            ", ".join(missing),
        )
        raise MalformedRecordError(entity.value, missing)


def _uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _optional_uuid(value: Any) -> UUID | None:
    return None if value is None else _uuid(value)


def _decimal(value: Any, default: str = "0") -> Decimal:
    return Decimal(default) if value is None else Decimal(str(value))


def _time(value: Any) -> time:
    return value if isinstance(value, time) else time.fromisoformat(str(value))


def _datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return datetime.fromisoformat(str(value))


def row_to_experience(row: Row) -> Experience:
    _require(Entity.EXPERIENCES, row, ("id", "title"))
    return Experience(
        id=_uuid(row["id"]),
        title=row["title"],
        vendor_id=_optional_uuid(row.get("vendor_id")),
        currency=row.get("currency") or "INR",
        location=row.get("location"),
        location2=row.get("location2"),
    )


def row_to_activity(row: Row) -> Activity:
    _require(Entity.ACTIVITIES, row, ("id", "experience_id", "name", "base_price"))
    currency = row.get("currency") or "INR"
    discounted = row.get("discounted_price")
    return Activity(
        id=_uuid(row["id"]),
        experience_id=_uuid(row["experience_id"]),
        name=row["name"],
        base_price=Money.of(_decimal(row["base_price"]), currency),
        discount_type=DiscountType(row.get("discount_type") or "percentage"),
        discount_value=_decimal(row.get("discount_value")),
        discounted_price=(
            None if discounted is None else Money.of(_decimal(discounted), currency)
        ),
        discount_percentage=_decimal(row.get("discount_percentage")),
        b2b_price=Money.of(_decimal(row.get("b2b_price")), currency),
        is_active=row.get("is_active", True),
    )


def row_to_time_slot(row: Row) -> TimeSlot:
    _require(
        Entity.TIME_SLOTS,
        row,
        ("id", "activity_id", "experience_id", "start_time", "end_time", "capacity"),
    )
    return TimeSlot(
        id=_uuid(row["id"]),
        activity_id=_uuid(row["activity_id"]),
        experience_id=_uuid(row["experience_id"]),
        start_time=_time(row["start_time"]),
        end_time=_time(row["end_time"]),
        capacity=Capacity(int(row["capacity"])),
    )


def row_to_booking(row: Row) -> Booking:
    _require(
        Entity.BOOKINGS,
        row,
        (
            "id",
            "experience_id",
            "activity_id",
            "time_slot_id",
            "booking_date",
            "participant_count",
            "booking_amount",
        ),
    )
    currency = row.get("currency") or "INR"
    created_at = row.get("created_at")
    return Booking(
        id=_uuid(row["id"]),
        user_id=_optional_uuid(row.get("user_id")),
        experience_id=_uuid(row["experience_id"]),
        activity_id=_uuid(row["activity_id"]),
        time_slot_id=_uuid(row["time_slot_id"]),
        booking_date=_datetime(row["booking_date"]),
        participant_count=int(row["participant_count"]),
        booking_amount=Money.of(_decimal(row["booking_amount"]), currency),
        due_amount=Money.of(_decimal(row.get("due_amount")), currency),
        b2b_price=Money.of(_decimal(row.get("b2b_price")), currency),
        is_agent_booking=bool(row.get("is_agent_booking", False)),
        type=BookingType(row.get("type") or "online"),
        status=BookingStatus(row.get("status") or "confirmed"),
        contact=ContactPerson(
            name=row.get("contact_person_name") or "",
            email=row.get("contact_person_email") or "",
            phone_number=row.get("contact_person_number") or "",
        ),
        referral_code=row.get("referral_code"),
        coupon_code=row.get("coupon_code"),
        note_for_guide=row.get("note_for_guide"),
        payment_reference=row.get("payment_reference"),
        created_at=None if created_at is None else _datetime(created_at),
    )


def booking_to_row(booking: Booking) -> Row:
    return {
        "id": booking.id,
        "user_id": booking.user_id,
        "experience_id": booking.experience_id,
        "activity_id": booking.activity_id,
        "time_slot_id": booking.time_slot_id,
        "booking_date": booking.booking_date,
        "participant_count": booking.participant_count,
        "booking_amount": booking.booking_amount.amount,
        "due_amount": booking.due_amount.amount,
        "b2b_price": booking.b2b_price.amount,
        "currency": booking.booking_amount.currency,
        "is_agent_booking": booking.is_agent_booking,
        "type": booking.type.value,
        "status": booking.status.value,
        "contact_person_name": booking.contact.name,
        "contact_person_email": booking.contact.email,
        "contact_person_number": booking.contact.phone_number,
        "referral_code": booking.referral_code,
        "coupon_code": booking.coupon_code,
        "note_for_guide": booking.note_for_guide,
        "payment_reference": booking.payment_reference,
        "terms_accepted": True,
    }


def row_to_profile(row: Row) -> Profile:
    _require(Entity.PROFILES, row, ("id",))
    return Profile(
        id=_uuid(row["id"]),
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        phone_number=row.get("phone_number"),
        role=row.get("role") or "customer",
    )


def row_to_coupon(row: Row) -> Coupon:
    _require(
        Entity.COUPONS, row, ("id", "coupon_code", "experience_id", "type", "discount_value")
    )
    valid_until = row.get("valid_until")
    return Coupon(
        id=_uuid(row["id"]),
        coupon_code=row["coupon_code"],
        experience_id=_uuid(row["experience_id"]),
        type=DiscountType(row["type"]),
        discount_value=_decimal(row["discount_value"]),
        max_uses=row.get("max_uses"),
        used_count=int(row.get("used_count") or 0),
        valid_until=None if valid_until is None else _datetime(valid_until),
        is_active=row.get("is_active", True),
    )


def _first(rows: list[Row]) -> Row | None:
    return rows[0] if rows else None


class BookingRepository:
    """Typed queries over a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def get_experience(self, experience_id: UUID) -> Experience | None:
        row = _first(await self._store.query(Entity.EXPERIENCES, {"id": experience_id}))
        return None if row is None else row_to_experience(row)

    async def get_activity(
        self, activity_id: UUID, active_only: bool = True
    ) -> Activity | None:
        """Return an activity, or None. Inactive ones only if asked for."""
        filters: Row = {"id": activity_id}
        if active_only:
            filters["is_active"] = True
        rows = await self._store.query(Entity.ACTIVITIES, filters)
        row = _first(rows)
        return None if row is None else row_to_activity(row)

    async def get_time_slot(self, time_slot_id: UUID) -> TimeSlot | None:
        row = _first(await self._store.query(Entity.TIME_SLOTS, {"id": time_slot_id}))
        return None if row is None else row_to_time_slot(row)

    async def list_time_slots(self, activity_id: UUID) -> list[TimeSlot]:
        rows = await self._store.query(Entity.TIME_SLOTS, {"activity_id": activity_id})
        return sorted(
            (row_to_time_slot(row) for row in rows), key=lambda slot: slot.start_time
        )

    async def confirmed_seat_usage(
        self, experience_id: UUID, start: datetime, end: datetime
    ) -> list[SeatUsage]:
        """Return seat usage of confirmed bookings dated within [start, end]."""
        rows = await self._store.query(
            Entity.BOOKINGS,
            {
                "experience_id": experience_id,
                "status": BookingStatus.CONFIRMED.value,
                "booking_date__gte": start,
                "booking_date__lte": end,
            },
        )
        usage = []
        for row in rows:
            _require(
                Entity.BOOKINGS,
                row,
                ("time_slot_id", "booking_date", "participant_count"),
            )
            usage.append(
                SeatUsage(
                    time_slot_id=_uuid(row["time_slot_id"]),
                    booking_date=_datetime(row["booking_date"]),
                    participant_count=int(row["participant_count"]),
                )
            )
        return usage

    async def get_booking(self, booking_id: UUID) -> Booking | None:
        row = _first(await self._store.query(Entity.BOOKINGS, {"id": booking_id}))
        return None if row is None else row_to_booking(row)

    async def add_booking(self, booking: Booking) -> UUID:
        (booking_id,) = await self._store.insert(Entity.BOOKINGS, [booking_to_row(booking)])
        return booking_id

    async def add_participants(
        self, booking_id: UUID, contact: ContactPerson, count: int
    ) -> list[UUID]:
        """Insert one participant row per seat, each a copy of the contact."""
        rows = [
            {
                "booking_id": booking_id,
                "name": contact.name,
                "email": contact.email,
                "phone_number": contact.phone_number,
            }
            for _ in range(count)
        ]
        return await self._store.insert(Entity.BOOKING_PARTICIPANTS, rows)

    async def get_profile(self, profile_id: UUID) -> Profile | None:
        row = _first(await self._store.query(Entity.PROFILES, {"id": profile_id}))
        return None if row is None else row_to_profile(row)

    async def get_profile_for_user(self, user_id: int) -> Profile | None:
        """Return the profile linked to an authenticated account, if any."""
        row = _first(await self._store.query(Entity.PROFILES, {"user_id": user_id}))
        return None if row is None else row_to_profile(row)

    async def set_profile_phone(self, profile_id: UUID, phone_number: str) -> None:
        await self._store.update(
            Entity.PROFILES, profile_id, {"phone_number": phone_number}
        )

    async def find_coupon(self, code: str) -> Coupon | None:
        rows = await self._store.query(Entity.COUPONS, {"coupon_code__iexact": code})
        row = _first(rows)
        return None if row is None else row_to_coupon(row)

    async def consume_coupon(self, code: str) -> None:
        """Count one more redemption against a coupon's ``max_uses``."""
        coupon = await self.find_coupon(code)
        if coupon is not None:
            await self._store.increment(Entity.COUPONS, coupon.id, "used_count")
