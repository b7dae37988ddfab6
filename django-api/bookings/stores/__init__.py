from bookings.stores.interfaces import Entity, RecordStore, Row
from bookings.stores.memory_store import InMemoryRecordStore
from bookings.stores.repository import BookingRepository, SeatUsage

__all__ = [
    "Entity",
    "RecordStore",
    "Row",
    "InMemoryRecordStore",
    "BookingRepository",
    "SeatUsage",
]
