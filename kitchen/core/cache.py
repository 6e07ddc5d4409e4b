# kitchen/core/cache.py
"""
Optimistic in-memory inventory kept in step with the persistence API.

Each mutation changes local state synchronously, then schedules the matching
API call on the running event loop and returns the task. When the call
resolves the task reconciles: it commits the server's echoed record, or rolls
back (discarding a pending add, or restoring the snapshot taken before an
update, remove or clear). Network failures never escape; every task resolves
to a SyncResult. Any other error rolls back the same way and then propagates
from the task.

Reconciliation always applies to the state current at completion time, so
racing operations on the same id resolve last-writer-wins by completion order.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Coroutine, Iterable, List, Optional, Union

from kitchen.core.collection import DuplicateIdError, InventoryCollection, Snapshot
from kitchen.core.logging import log_with_context
from kitchen.core.models import (
    IngredientDraft,
    IngredientPatch,
    IngredientRecord,
    SyncResult,
    now_ms,
)
from kitchen.services.exceptions import PersistenceError
from kitchen.services.inventory_api import InventoryAPI


logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "tmp-"

Listener = Callable[[List[IngredientRecord]], None]
DraftLike = Union[IngredientDraft, dict]
PatchLike = Union[IngredientPatch, dict]


def temporary_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


class InventoryCache:
    def __init__(
        self,
        api: InventoryAPI,
        *,
        id_factory: Callable[[], str] = temporary_id,
        clock: Callable[[], int] = now_ms,
    ):
        self._api = api
        self._collection = InventoryCollection()
        self._new_id = id_factory
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Listener] = []

    # ---- read side ----------------------------------------------------------

    @property
    def ingredients(self) -> List[IngredientRecord]:
        return self._collection.records()

    @property
    def newest_first(self) -> List[IngredientRecord]:
        """Records for display, most recently added first."""
        return self._collection.sorted_by_added(newest_first=True)

    def get(self, record_id: str) -> Optional[IngredientRecord]:
        return self._collection.get(record_id)

    def __len__(self) -> int:
        return len(self._collection)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._collection

    @staticmethod
    def is_pending(record_id: str) -> bool:
        return record_id.startswith(TEMP_ID_PREFIX)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the current records after every local change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        records = self._collection.records()
        for listener in list(self._listeners):
            try:
                listener(records)
            except Exception:
                logger.exception("Inventory listener %r failed", listener)

    # ---- scheduling ---------------------------------------------------------

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, SyncResult]) -> "asyncio.Task[SyncResult]":
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> List[SyncResult]:
        """Wait until every in-flight operation has reconciled, including ones scheduled meanwhile."""
        results: List[SyncResult] = []
        while self._tasks:
            results.extend(await asyncio.gather(*list(self._tasks)))
        return results

    def _rollback(self, snapshot: Snapshot, operation: str, record_id: Optional[str], error: Exception) -> SyncResult:
        self._collection.restore(snapshot)
        self._changed()
        log_with_context(
            logger, "warning", f"Rolled back {operation}: {error}",
            operation=operation, record_id=record_id, restored=len(snapshot),
        )
        return SyncResult(success=False, operation=operation, record_id=record_id, error=str(error))

    # ---- load ---------------------------------------------------------------

    async def load(self) -> SyncResult:
        """Replace local state with the server's list. On failure local state is left as it was."""
        try:
            records = await self._api.list()
            self._collection.reset(records)
        except (PersistenceError, DuplicateIdError) as e:
            logger.warning("Inventory load failed, keeping local state: %s", e)
            return SyncResult(success=False, operation="load", error=str(e))
        self._changed()
        logger.debug("Loaded %d ingredients", len(records))
        return SyncResult(success=True, operation="load")

    # ---- add ----------------------------------------------------------------

    def add(self, draft: DraftLike) -> "asyncio.Task[SyncResult]":
        if not isinstance(draft, IngredientDraft):
            draft = IngredientDraft.model_validate(draft)
        loop = asyncio.get_running_loop()

        temp_id = self._new_id()
        while temp_id in self._collection:
            temp_id = self._new_id()
        pending = IngredientRecord(
            id=temp_id, name=draft.name, quantity=draft.quantity, unit=draft.unit, added_at=self._clock(),
        )
        self._collection.append(pending)
        self._changed()
        return self._spawn(loop, self._commit_create(temp_id, draft))

    def add_many(self, drafts: Iterable[DraftLike]) -> List["asyncio.Task[SyncResult]"]:
        return [self.add(d) for d in drafts]

    async def _commit_create(self, temp_id: str, draft: IngredientDraft) -> SyncResult:
        try:
            saved = await self._api.create(draft)
        except PersistenceError as e:
            if self._collection.discard(temp_id) is not None:
                self._changed()
            log_with_context(logger, "warning", f"Discarded pending ingredient: {e}", operation="add", record_id=temp_id)
            return SyncResult(success=False, operation="add", record_id=temp_id, error=str(e))
        except Exception:
            if self._collection.discard(temp_id) is not None:
                self._changed()
            logger.exception("Create of pending ingredient %s failed unexpectedly", temp_id)
            raise

        if self._collection.replace(temp_id, saved):
            self._changed()
        else:
            # Superseded locally (e.g. a load or clear ran meanwhile)
            logger.debug("Pending ingredient %s gone before commit of %s", temp_id, saved.id)
        return SyncResult(success=True, operation="add", record_id=saved.id)

    # ---- remove -------------------------------------------------------------

    def remove(self, record_id: str) -> "asyncio.Task[SyncResult]":
        loop = asyncio.get_running_loop()
        snapshot = self._collection.snapshot()
        if self._collection.discard(record_id) is not None:
            self._changed()
        return self._spawn(loop, self._commit_remove(record_id, snapshot))

    async def _commit_remove(self, record_id: str, snapshot: Snapshot) -> SyncResult:
        try:
            await self._api.delete(record_id)
        except PersistenceError as e:
            return self._rollback(snapshot, "remove", record_id, e)
        except Exception as e:
            self._rollback(snapshot, "remove", record_id, e)
            raise
        return SyncResult(success=True, operation="remove", record_id=record_id)

    # ---- update -------------------------------------------------------------

    def update(self, record_id: str, patch: PatchLike) -> "asyncio.Task[SyncResult]":
        if not isinstance(patch, IngredientPatch):
            patch = IngredientPatch.model_validate(patch)
        loop = asyncio.get_running_loop()
        snapshot = self._collection.snapshot()
        if self._collection.patch(record_id, patch.changes()) is not None:
            self._changed()
        return self._spawn(loop, self._commit_update(record_id, patch, snapshot))

    async def _commit_update(self, record_id: str, patch: IngredientPatch, snapshot: Snapshot) -> SyncResult:
        try:
            saved = await self._api.update(record_id, patch)
        except PersistenceError as e:
            return self._rollback(snapshot, "update", record_id, e)
        except Exception as e:
            self._rollback(snapshot, "update", record_id, e)
            raise

        # Server echo wins over the local merge
        if self._collection.replace(record_id, saved):
            self._changed()
        return SyncResult(success=True, operation="update", record_id=saved.id)

    # ---- clear --------------------------------------------------------------

    def clear_all(self) -> "asyncio.Task[SyncResult]":
        loop = asyncio.get_running_loop()
        snapshot = self._collection.snapshot()
        self._collection.clear()
        if snapshot:
            self._changed()
        return self._spawn(loop, self._commit_clear(snapshot))

    async def _commit_clear(self, snapshot: Snapshot) -> SyncResult:
        deletes: List[Awaitable[None]] = [self._api.delete(r.id) for r in snapshot]
        outcomes = await asyncio.gather(*deletes, return_exceptions=True)
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if not failures:
            logger.info("Cleared %d ingredients", len(snapshot))
            return SyncResult(success=True, operation="clear")

        # All-or-nothing locally, even if some deletes landed server-side
        result = self._rollback(snapshot, "clear", None, failures[0])
        log_with_context(
            logger, "warning", "Partial clear may have left server drift",
            failed=len(failures), attempted=len(snapshot),
        )
        unexpected = [f for f in failures if not isinstance(f, PersistenceError)]
        if unexpected:
            raise unexpected[0]
        return result
