# kitchen/core/collection.py
from __future__ import annotations

from typing import Iterable, Iterator, Optional, Tuple

from .models import IngredientRecord


Snapshot = Tuple[IngredientRecord, ...]


class DuplicateIdError(ValueError):
    """Raised when an insert would give two records the same id."""


class InventoryCollection:
    """
    Insertion-ordered set of ingredient records keyed by id.

    Records are immutable, so a snapshot is just a tuple of the current
    records and restoring it is a wholesale replace. Lookups and removals by a
    missing id are no-ops.
    """

    def __init__(self, records: Iterable[IngredientRecord] = ()):
        self._items: dict[str, IngredientRecord] = {}
        self.reset(records)

    # ---- read side ----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[IngredientRecord]:
        return iter(list(self._items.values()))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._items

    def get(self, record_id: str) -> Optional[IngredientRecord]:
        return self._items.get(record_id)

    def ids(self) -> list[str]:
        return list(self._items)

    def records(self) -> list[IngredientRecord]:
        return list(self._items.values())

    def sorted_by_added(self, newest_first: bool = False) -> list[IngredientRecord]:
        """Records ordered by creation instant; ties keep insertion order."""
        return sorted(self._items.values(), key=lambda r: r.added_at, reverse=newest_first)

    def snapshot(self) -> Snapshot:
        return tuple(self._items.values())

    # ---- write side ---------------------------------------------------------

    def append(self, record: IngredientRecord) -> None:
        if record.id in self._items:
            raise DuplicateIdError(f"Record id already present: {record.id}")
        self._items[record.id] = record

    def replace(self, record_id: str, record: IngredientRecord) -> bool:
        """
        Swap the record stored under `record_id` for `record`, keeping its position.

        The new record may carry a different id (pending -> confirmed). If that id
        is already held by another entry, the old entry is dropped instead so ids
        stay unique. Returns False when `record_id` is absent.
        """
        if record_id not in self._items:
            return False
        if record.id != record_id and record.id in self._items:
            del self._items[record_id]
            return True
        if record.id == record_id:
            self._items[record_id] = record
            return True
        self._items = {
            (record.id if key == record_id else key): (record if key == record_id else value)
            for key, value in self._items.items()
        }
        return True

    def patch(self, record_id: str, changes: dict) -> Optional[IngredientRecord]:
        current = self._items.get(record_id)
        if current is None:
            return None
        changes = {k: v for k, v in changes.items() if k not in ("id", "added_at", "addedAt")}
        updated = current.model_copy(update=changes)
        self._items[record_id] = updated
        return updated

    def discard(self, record_id: str) -> Optional[IngredientRecord]:
        return self._items.pop(record_id, None)

    def clear(self) -> None:
        self._items = {}

    def reset(self, records: Iterable[IngredientRecord]) -> None:
        items: dict[str, IngredientRecord] = {}
        for record in records:
            if record.id in items:
                raise DuplicateIdError(f"Record id already present: {record.id}")
            items[record.id] = record
        self._items = items

    def restore(self, snapshot: Snapshot) -> None:
        self.reset(snapshot)
