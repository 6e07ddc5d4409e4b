from __future__ import annotations

import io
import json
import logging
import os
import tempfile
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from kitchen.config import Settings
from kitchen.core.models import InventoryEvent, StoredIngredient
from kitchen.services.exceptions import RepoError
from kitchen.services.repo.base import EventRepo, IngredientRepo

logger = logging.getLogger(__name__)


# Cross-platform file lock (fcntl for *nix; msvcrt for Windows)
@contextmanager
def _locked(path: str) -> Iterator[io.BufferedRandom]:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    f = open(path, "a+b")  # create if missing
    try:
        import fcntl
    except ImportError:
        fcntl = None
    try:
        if fcntl is not None:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        else:
            import msvcrt
            msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)
    except OSError as e:
        f.close()
        raise RepoError(f"Could not lock file {path}: {e}") from e
    try:
        yield f
    finally:
        try:
            if fcntl is not None:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            else:
                import msvcrt
                f.seek(0)
                msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)
        finally:
            f.close()


def _atomic_write(path: str, data: bytes) -> None:
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=d)
    try:
        with os.fdopen(fd, "wb") as w:
            w.write(data)
            w.flush()
            os.fsync(w.fileno())
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise RepoError(f"Atomic write failed for {path}: {e}") from e


class JSONIngredientRepo(IngredientRepo):
    """
    Ingredients in one JSON document: {"items": [{id, name, quantity, unit, addedAt}, ...]}.

    Every write is a read-modify-write under a sidecar lock file, finished by an
    atomic replace, so concurrent workers never interleave partial documents.
    """

    def __init__(self, settings: Settings):
        self.path = settings.ingredients_file
        self.lock_path = self.path + ".lock"

    def _read(self) -> List[StoredIngredient]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "rb") as f:
                raw = f.read() or b"{}"
            obj = json.loads(raw.decode("utf-8"))
            return [StoredIngredient.model_validate(it) for it in obj.get("items", [])]
        except (OSError, ValueError) as e:
            raise RepoError(f"Failed to load ingredients from {self.path}: {e}") from e

    def _write(self, items: List[StoredIngredient]) -> None:
        payload = json.dumps({"items": [i.to_wire() for i in items]},
                             ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        _atomic_write(self.path, payload)

    def list(self) -> List[StoredIngredient]:
        with _locked(self.lock_path):
            items = self._read()
        return sorted(items, key=lambda it: it.added_at)

    def create(self, name: str, quantity: float, unit: str) -> StoredIngredient:
        item = StoredIngredient(id=uuid.uuid4().hex, name=name, quantity=quantity, unit=unit)
        with _locked(self.lock_path):
            items = self._read()
            items.append(item)
            self._write(items)
        return item

    def update(self, record_id: str, changes: dict) -> Optional[StoredIngredient]:
        with _locked(self.lock_path):
            items = self._read()
            for idx, it in enumerate(items):
                if it.id == record_id:
                    allowed = {k: v for k, v in changes.items() if k in ("name", "quantity", "unit")}
                    items[idx] = it.model_copy(update=allowed)
                    self._write(items)
                    return items[idx]
        return None

    def delete(self, record_id: str) -> bool:
        with _locked(self.lock_path):
            items = self._read()
            kept = [it for it in items if it.id != record_id]
            if len(kept) == len(items):
                return False
            self._write(kept)
        return True


class JSONEventRepo(EventRepo):
    def __init__(self, settings: Settings):
        self.path = settings.events_file

    def append(self, event: InventoryEvent) -> None:
        try:
            line = (json.dumps(event.model_dump(mode="json"), ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")
            with _locked(self.path) as f:
                f.seek(0, os.SEEK_END)
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except (OSError, TypeError, ValueError) as e:
            raise RepoError(f"Failed to append event to {self.path}: {e}") from e
        logger.info("Inventory event %s", event.type)
