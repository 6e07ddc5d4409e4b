from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kitchen.config import Settings
from kitchen.services.barcode import OpenFoodFactsClient
from kitchen.services.exceptions import LLMError, LookupFailed
from kitchen.services.llm import (
    FALLBACK_RECEIPT_ITEMS,
    OpenAIReceiptReader,
    OpenAIRecipeSuggester,
    SimpleRecipeSuggester,
)

router = APIRouter(tags=["intake"])
logger = logging.getLogger(__name__)

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()

def get_barcode_client(settings: Settings = Depends(get_settings)) -> OpenFoodFactsClient:
    return OpenFoodFactsClient(settings)

# ---- Models ------------------------------------------------------------------

class RecipeRequest(BaseModel):
    ingredients: Any = None

# ---- Helpers -----------------------------------------------------------------

def _fallback_receipt(**extra: str) -> dict:
    return {**extra, "ingredients": [i.model_dump() for i in FALLBACK_RECEIPT_ITEMS]}


async def _read_upload(request: Request) -> tuple[bytes, str]:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        body = await request.json()
        encoded = body.get("imageBase64") if isinstance(body, dict) else None
        if not encoded:
            raise ValueError("Missing imageBase64")
        try:
            return base64.b64decode(encoded), "image/jpeg"
        except (binascii.Error, ValueError) as e:
            raise ValueError("Invalid imageBase64") from e
    form = await request.form()
    upload = form.get("image")
    if upload is None or isinstance(upload, str):
        raise ValueError("Missing image file")
    return await upload.read(), upload.content_type or "image/jpeg"

# ---- Routes ------------------------------------------------------------------

@router.post("/api/ocr")
async def receipt_ocr(request: Request, settings: Settings = Depends(get_settings)):
    """Receipt image -> candidate ingredients. Always answers 200 with a usable list."""
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type and "multipart/form-data" not in content_type:
        return JSONResponse({"error": "Unsupported content type"}, status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

    try:
        image, mime_type = await _read_upload(request)
    except ValueError as e:
        return _fallback_receipt(error=str(e))

    if not settings.openai_api_key:
        return _fallback_receipt(note="Missing OPENAI_API_KEY; using fallback parse")

    try:
        items = OpenAIReceiptReader(settings).read(image, mime_type=mime_type)
    except LLMError as e:
        logger.warning("Receipt OCR failed: %s", e)
        return _fallback_receipt(error=str(e))
    return {"ingredients": [i.model_dump() for i in items]}


@router.get("/api/barcode")
async def barcode_lookup(
    code: Optional[str] = Query(None),
    client: OpenFoodFactsClient = Depends(get_barcode_client),
):
    if not code:
        raise HTTPException(status_code=400, detail="Missing code")
    try:
        guess = await client.lookup(code)
    except LookupFailed:
        raise HTTPException(status_code=500, detail="Lookup failed")
    if guess is None:
        return JSONResponse({"found": False}, status_code=status.HTTP_404_NOT_FOUND)
    return guess.model_dump(by_alias=True)


@router.post("/api/recipes")
def recipe_ideas(body: RecipeRequest, settings: Settings = Depends(get_settings)):
    ingredients = body.ingredients
    if not isinstance(ingredients, list) or not all(isinstance(i, str) for i in ingredients):
        raise HTTPException(status_code=400, detail="ingredients must be array of strings")
    names: List[str] = ingredients

    try:
        ideas = OpenAIRecipeSuggester(settings).suggest(names)
    except LLMError as e:
        # Keep the UI working with a local idea
        logger.warning("Recipe generation failed, using fallback: %s", e)
        fallback = SimpleRecipeSuggester().suggest(names)
        return {"ideas": [i.model_dump(exclude_none=True) for i in fallback], "note": "fallback used", "error": str(e)}
    return {"ideas": [i.model_dump(exclude_none=True) for i in ideas]}
