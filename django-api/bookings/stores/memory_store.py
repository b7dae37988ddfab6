"""In-process implementation of the RecordStore.

Used by the test suite and for exercising services without a database.
"""

import copy
import uuid
from typing import Any
from uuid import UUID

from bookings.stores.interfaces import Entity, RecordStore, Row


def _matches(row: Row, key: str, expected: Any) -> bool:
    field, _, lookup = key.partition("__")
    value = row.get(field)
    if lookup == "":
        return value == expected
    if lookup == "in":
        return value in expected
    if lookup == "iexact":
        return value is not None and str(value).lower() == str(expected).lower()
    if value is None:
        return False
    if lookup == "gte":
        return value >= expected
    if lookup == "gt":
        return value > expected
    if lookup == "lte":
        return value <= expected
    if lookup == "lt":
        return value < expected
    raise ValueError(f"Unsupported lookup: {key}")


class InMemoryRecordStore(RecordStore):
    """Dict-of-lists store. Rows are copied in and out."""

    def __init__(self, seed: dict[Entity, list[Row]] | None = None) -> None:
        self._tables: dict[Entity, list[Row]] = {entity: [] for entity in Entity}
        for entity, rows in (seed or {}).items():
            for row in rows:
                self._tables[entity].append(self._with_id(row))

    @staticmethod
    def _with_id(row: Row) -> Row:
        stored = copy.deepcopy(row)
        stored.setdefault("id", uuid.uuid4())
        return stored

    def rows(self, entity: Entity) -> list[Row]:
        return [copy.deepcopy(row) for row in self._tables[entity]]

    async def query(self, entity: Entity, filters: Row | None = None) -> list[Row]:
        filters = filters or {}
        return [
            copy.deepcopy(row)
            for row in self._tables[entity]
            if all(_matches(row, key, value) for key, value in filters.items())
        ]

    async def insert(self, entity: Entity, rows: list[Row]) -> list[UUID]:
        stored = [self._with_id(row) for row in rows]
        self._tables[entity].extend(stored)
        return [row["id"] for row in stored]

    async def update(self, entity: Entity, record_id: UUID, patch: Row) -> None:
        for row in self._tables[entity]:
            if row["id"] == record_id:
                row.update(copy.deepcopy(patch))
                return

    async def increment(
        self, entity: Entity, record_id: UUID, field: str, amount: int = 1
    ) -> None:
        for row in self._tables[entity]:
            if row["id"] == record_id:
                row[field] = (row.get(field) or 0) + amount
                return
