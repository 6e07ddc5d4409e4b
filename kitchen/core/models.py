# kitchen/core/models.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Literal, Optional, List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


# ---------- Normalization helpers ----------

# Canonical unit tokens used by intake (OCR, barcode). The cache itself
# stores whatever unit string it is given.
UNIT_ALIASES = {
    "grams": "g", "gram": "g", "g": "g",
    "kilogram": "kg", "kilograms": "kg", "kg": "kg",
    "milliliter": "ml", "milliliters": "ml", "millilitre": "ml", "ml": "ml",
    "liter": "l", "liters": "l", "litre": "l", "l": "l",
    "piece": "pcs", "pieces": "pcs", "pc": "pcs", "pcs": "pcs",
}

COMMON_UNITS = ("pcs", "g", "kg", "ml", "l", "tbsp", "tsp", "cup")


def normalize_name(name: str) -> str:
    return name.strip().lower()


def normalize_unit(unit: Optional[str], default: str = "pcs") -> str:
    if not isinstance(unit, str) or not unit.strip():
        return default
    u = unit.strip().lower()
    return UNIT_ALIASES.get(u, u)  # fall back to input if unknown


_DATETIME = TypeAdapter(datetime)


def to_epoch_ms(value: Any) -> int:
    """
    Convert a server-native timestamp to local epoch milliseconds.

    Accepts numbers (and numeric strings) that are already epoch milliseconds,
    ISO-8601 strings and datetimes. Naive values are taken as UTC. Anything out
    of range raises ValueError, so pydantic reports it as a validation error.
    """
    if isinstance(value, bool):
        raise ValueError("addedAt cannot be a boolean")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("addedAt cannot be blank")
        try:
            value = float(value)
        except ValueError:
            pass
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"addedAt out of range: {value!r}")
        return int(value)
    if not isinstance(value, (str, datetime)):
        raise ValueError(f"Unsupported addedAt value: {value!r}")
    try:
        dt = _DATETIME.validate_python(value)
    except ValidationError as e:
        raise ValueError(f"Unparseable addedAt {value!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return int(dt.timestamp() * 1000)
    except (OverflowError, OSError) as e:
        raise ValueError(f"addedAt out of range: {value!r}") from e


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


# ---------- Inventory records ----------

class IngredientDraft(BaseModel):
    """Fields a caller supplies to add an ingredient. Not validated here; callers normalize."""
    name: str
    quantity: float = 0
    unit: str = "pcs"


class IngredientPatch(BaseModel):
    """Partial update. Only explicitly set fields are sent to the server."""
    name: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class IngredientRecord(BaseModel):
    """One inventory row, pending (temporary id) or confirmed (server id)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    quantity: float = 0
    unit: str = "pcs"
    added_at: int = Field(..., alias="addedAt", description="Epoch milliseconds")

    @field_validator("added_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> int:
        return to_epoch_ms(v)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class StoredIngredient(BaseModel):
    """Server-side row. addedAt stays a datetime and goes over the wire as ISO-8601."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    quantity: float = 0
    unit: str = "pcs"
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="addedAt")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ---------- Intake shapes ----------

class BarcodeGuess(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    found: bool = True
    name: str = "Unknown product"
    quantity_guess: float = Field(1, alias="quantityGuess")
    unit_guess: str = Field("pcs", alias="unitGuess")

    def to_draft(self) -> IngredientDraft:
        """Map a lookup result onto the add() shape."""
        return IngredientDraft(name=normalize_name(self.name), quantity=self.quantity_guess, unit=self.unit_guess)


class RecipeIdea(BaseModel):
    id: str
    title: str
    ingredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    missing: Optional[List[str]] = None


# ---------- Sync outcomes ----------

class SyncResult(BaseModel):
    """Outcome of one cache operation after reconciliation."""
    success: bool
    operation: Literal["load", "add", "update", "remove", "clear"]
    record_id: Optional[str] = None
    error: Optional[str] = None


# ---------- Auditing / events ----------

class InventoryEvent(BaseModel):
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: Literal["create", "update", "delete"]
    payload: dict
    schema_version: int = 1
