"""Django ORM implementation of the RecordStore."""

from uuid import UUID

from django.db import models
from django.db.models import F

from bookings import models as orm
from bookings.stores.interfaces import Entity, RecordStore, Row

MODELS: dict[Entity, type[models.Model]] = {
    Entity.EXPERIENCES: orm.Experience,
    Entity.ACTIVITIES: orm.Activity,
    Entity.TIME_SLOTS: orm.TimeSlot,
    Entity.BOOKINGS: orm.Booking,
    Entity.BOOKING_PARTICIPANTS: orm.BookingParticipant,
    Entity.PROFILES: orm.Profile,
    Entity.COUPONS: orm.Coupon,
}


class DjangoRecordStore(RecordStore):
    """Database-backed record store using the async queryset API."""

    async def query(self, entity: Entity, filters: Row | None = None) -> list[Row]:
        queryset = MODELS[entity].objects.filter(**(filters or {})).values()
        return [row async for row in queryset]

    async def insert(self, entity: Entity, rows: list[Row]) -> list[UUID]:
        # One create per row so post_save receivers run.
        model = MODELS[entity]
        ids = []
        for row in rows:
            instance = await model.objects.acreate(**row)
            ids.append(instance.pk)
        return ids

    async def update(self, entity: Entity, record_id: UUID, patch: Row) -> None:
        await MODELS[entity].objects.filter(pk=record_id).aupdate(**patch)

    async def increment(
        self, entity: Entity, record_id: UUID, field: str, amount: int = 1
    ) -> None:
        await MODELS[entity].objects.filter(pk=record_id).aupdate(
            **{field: F(field) + amount}
        )
