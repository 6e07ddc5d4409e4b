"""Async client for the ingredient persistence API."""

from __future__ import annotations

import logging
from typing import Any, List

import httpx
from pydantic import ValidationError

from kitchen.core.models import IngredientDraft, IngredientPatch, IngredientRecord
from kitchen.services.exceptions import PersistenceError


logger = logging.getLogger(__name__)

INGREDIENTS_PATH = "/api/ingredients"


class InventoryAPI:
    """
    Thin wrapper over the CRUD endpoints.

    Every method raises PersistenceError on a transport error, a non-2xx status
    or a body that does not match the record shape. The client is owned by the
    caller; this class never closes it.
    """

    def __init__(self, client: httpx.AsyncClient, path: str = INGREDIENTS_PATH):
        self._client = client
        self._path = path

    async def _send(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, self._path, **kwargs)
        except httpx.HTTPError as e:
            raise PersistenceError(f"{method} {self._path} failed: {e}") from e
        if not response.is_success:
            raise PersistenceError(
                f"{method} {self._path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"Malformed JSON body: {e}", status_code=response.status_code) from e

    @staticmethod
    def _record(data: Any) -> IngredientRecord:
        try:
            return IngredientRecord.model_validate(data)
        except ValidationError as e:
            raise PersistenceError(f"Malformed ingredient record: {e}") from e

    async def list(self) -> List[IngredientRecord]:
        response = await self._send("GET")
        data = self._json(response)
        if not isinstance(data, list):
            raise PersistenceError("Expected a JSON array of ingredients", status_code=response.status_code)
        return [self._record(row) for row in data]

    async def create(self, draft: IngredientDraft) -> IngredientRecord:
        response = await self._send("POST", json=draft.model_dump())
        return self._record(self._json(response))

    async def update(self, record_id: str, patch: IngredientPatch) -> IngredientRecord:
        body = {"id": record_id, **patch.changes()}
        response = await self._send("PUT", json=body)
        return self._record(self._json(response))

    async def delete(self, record_id: str) -> None:
        await self._send("DELETE", params={"id": record_id})
        logger.debug("Deleted ingredient %s", record_id)
