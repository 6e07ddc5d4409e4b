"""In-memory persistence API with scriptable failures, for cache tests."""

import asyncio
from typing import Optional

from kitchen.core.models import IngredientDraft, IngredientPatch, IngredientRecord
from kitchen.services.exceptions import PersistenceError


SERVER_TS = "2024-05-01T10:00:00Z"


class FakeInventoryAPI:
    """
    Mimics InventoryAPI against a dict "server".

    - fail_creates: draft names whose create fails
    - fail_deletes: ids whose delete fails
    - fail_updates / fail_list: make those calls fail
    - update_echo: if set, returned verbatim (as a record) from update()
    - hold: name -> Event; create() for that name waits until the event is set
    - hold_reply: name (create) or id (update) -> Event; the server applies the
      change, then the reply waits until the event is set
    - crash: if set, raised from create/update/delete in place of a response
    """

    def __init__(self, records=()):
        self.server: dict[str, IngredientRecord] = {r.id: r for r in records}
        self.calls: list[tuple] = []
        self.fail_creates: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.fail_updates = False
        self.fail_list = False
        self.update_echo: Optional[dict] = None
        self.hold: dict[str, asyncio.Event] = {}
        self.hold_reply: dict[str, asyncio.Event] = {}
        self.crash: Optional[Exception] = None
        self._next = 0

    async def list(self):
        self.calls.append(("list",))
        await asyncio.sleep(0)
        if self.fail_list:
            raise PersistenceError("GET returned 500", status_code=500)
        return list(self.server.values())

    async def create(self, draft: IngredientDraft):
        self.calls.append(("create", draft.name))
        if draft.name in self.hold:
            await self.hold[draft.name].wait()
        await asyncio.sleep(0)
        if self.crash is not None:
            raise self.crash
        if draft.name in self.fail_creates:
            raise PersistenceError("POST returned 500", status_code=500)
        self._next += 1
        record = IngredientRecord(
            id=f"s{self._next}", name=draft.name, quantity=draft.quantity, unit=draft.unit, addedAt=SERVER_TS,
        )
        self.server[record.id] = record
        if draft.name in self.hold_reply:
            await self.hold_reply[draft.name].wait()
        return record

    async def update(self, record_id: str, patch: IngredientPatch):
        self.calls.append(("update", record_id, patch.changes()))
        await asyncio.sleep(0)
        if self.crash is not None:
            raise self.crash
        if self.fail_updates or record_id not in self.server:
            raise PersistenceError("PUT returned 404", status_code=404)
        if self.update_echo is not None:
            record = IngredientRecord.model_validate(self.update_echo)
        else:
            record = self.server[record_id].model_copy(update=patch.changes())
        self.server[record_id] = record
        if record_id in self.hold_reply:
            await self.hold_reply[record_id].wait()
        return record

    async def delete(self, record_id: str):
        self.calls.append(("delete", record_id))
        await asyncio.sleep(0)
        if self.crash is not None:
            raise self.crash
        if record_id in self.fail_deletes:
            raise PersistenceError("DELETE returned 500", status_code=500)
        self.server.pop(record_id, None)


def make_record(record_id: str, name: str, quantity: float = 1, unit: str = "pcs", added_at: int = 1_000):
    return IngredientRecord(id=record_id, name=name, quantity=quantity, unit=unit, added_at=added_at)
