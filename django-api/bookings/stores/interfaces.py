"""Store interfaces (repository pattern).

Stores must be swappable. The record store is deliberately generic: rows
are plain dicts and filters use Django's ``field__lookup`` syntax, so the
typed conversion happens once in ``bookings.stores.repository``.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any
from uuid import UUID

Row = dict[str, Any]


class Entity(Enum):
    """Tables the booking engine reads and writes."""

    EXPERIENCES = "experiences"
    ACTIVITIES = "activities"
    TIME_SLOTS = "time_slots"
    BOOKINGS = "bookings"
    BOOKING_PARTICIPANTS = "booking_participants"
    PROFILES = "profiles"
    COUPONS = "coupons"


class RecordStore(ABC):
    """Interface for record persistence operations.

    Every call is an awaited boundary; callers must not assume atomicity
    across calls.
    """

    @abstractmethod
    async def query(self, entity: Entity, filters: Row | None = None) -> list[Row]:
        """Return rows matching all filters.

        Supported lookups: exact (``field``), ``__gte``, ``__gt``,
        ``__lte``, ``__lt``, ``__in`` and ``__iexact``.
        """
        ...

    @abstractmethod
    async def insert(self, entity: Entity, rows: list[Row]) -> list[UUID]:
        """Insert rows and return their ids in order."""
        ...

    @abstractmethod
    async def update(self, entity: Entity, record_id: UUID, patch: Row) -> None:
        """Apply a partial update to one row."""
        ...

    @abstractmethod
    async def increment(
        self, entity: Entity, record_id: UUID, field: str, amount: int = 1
    ) -> None:
        """Add to a numeric column of one row without reading it first."""
        ...
