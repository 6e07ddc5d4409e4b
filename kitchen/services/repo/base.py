from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional
from kitchen.core.models import InventoryEvent, StoredIngredient


class IngredientRepo(ABC):
    @abstractmethod
    def list(self) -> List[StoredIngredient]: ...
    @abstractmethod
    def create(self, name: str, quantity: float, unit: str) -> StoredIngredient: ...
    @abstractmethod
    def update(self, record_id: str, changes: dict) -> Optional[StoredIngredient]: ...
    @abstractmethod
    def delete(self, record_id: str) -> bool: ...


class EventRepo(ABC):
    @abstractmethod
    def append(self, event: InventoryEvent) -> None: ...
