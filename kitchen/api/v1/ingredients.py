from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from kitchen.config import Settings
from kitchen.core.models import InventoryEvent, StoredIngredient
from kitchen.services.exceptions import RepoError
from kitchen.services.repo.json_repo import JSONEventRepo, JSONIngredientRepo

router = APIRouter(tags=["ingredients"])

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()

def get_repos(settings: Settings = Depends(get_settings)):
    return JSONIngredientRepo(settings), JSONEventRepo(settings)

# ---- Models ------------------------------------------------------------------

class CreateIngredientRequest(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: float = Field(0, ge=0)
    unit: str = "pcs"

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v

    @field_validator("unit")
    @classmethod
    def _default_unit(cls, v: str) -> str:
        return v.strip() or "pcs"


class UpdateIngredientRequest(BaseModel):
    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None

# ---- Routes ------------------------------------------------------------------

def _log_event(event_repo: JSONEventRepo, event: InventoryEvent) -> None:
    # Audit log is best-effort; a failed append never fails the request
    try:
        event_repo.append(event)
    except RepoError:
        pass


@router.get("/api/ingredients", response_model=List[StoredIngredient])
def list_ingredients(repos = Depends(get_repos)):
    ingredient_repo, _event_repo = repos
    try:
        return [i.to_wire() for i in ingredient_repo.list()]
    except RepoError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/ingredients", response_model=StoredIngredient, status_code=status.HTTP_201_CREATED)
def create_ingredient(body: CreateIngredientRequest, repos = Depends(get_repos)):
    ingredient_repo, event_repo = repos
    try:
        item = ingredient_repo.create(body.name, body.quantity, body.unit)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=f"Create failed: {e}")
    _log_event(event_repo, InventoryEvent(type="create", payload=item.to_wire()))
    return item.to_wire()


@router.put("/api/ingredients", response_model=StoredIngredient)
def update_ingredient(body: UpdateIngredientRequest, repos = Depends(get_repos)):
    ingredient_repo, event_repo = repos
    changes = {k: v for k, v in body.model_dump(exclude_unset=True, exclude={"id"}).items() if v is not None}
    try:
        item = ingredient_repo.update(body.id, changes)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=f"Update failed: {e}")
    if item is None:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    _log_event(event_repo, InventoryEvent(type="update", payload={"id": body.id, "changes": changes}))
    return item.to_wire()


@router.delete("/api/ingredients")
def delete_ingredient(id: str = Query(..., min_length=1), repos = Depends(get_repos)):
    ingredient_repo, event_repo = repos
    try:
        removed = ingredient_repo.delete(id)
    except RepoError as e:
        raise HTTPException(status_code=500, detail=f"Delete failed: {e}")
    if not removed:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    _log_event(event_repo, InventoryEvent(type="delete", payload={"id": id}))
    return {"ok": True}
