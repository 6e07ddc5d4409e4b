from __future__ import annotations

import base64
import json
import math
import re
from typing import Any, List, Optional

from .exceptions import LLMError
from kitchen.core.models import IngredientDraft, RecipeIdea, normalize_name, normalize_unit
from kitchen.config import Settings

# OpenAI SDK v1+
try:
    from openai import OpenAI
except Exception as e:  # pragma: no cover
    raise LLMError("Failed to import OpenAI SDK. Install with `pip install openai`") from e


# Shown when OCR is unavailable so the import flow can still be exercised
FALLBACK_RECEIPT_ITEMS = [
    IngredientDraft(name="tomato", quantity=3, unit="pcs"),
    IngredientDraft(name="flour", quantity=500, unit="g"),
]

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ARRAY = re.compile(r"\[[\s\S]*\]")


def strip_markdown_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def parse_json_array(text: str) -> Optional[List[Any]]:
    """
    Best-effort parse of a model reply into a JSON array.

    Tries the whole text, then the outermost [...] span. Returns None when
    neither yields a list.
    """
    try:
        direct = json.loads(text)
        if isinstance(direct, list):
            return direct
    except ValueError:
        pass
    match = _ARRAY.search(text)
    if match:
        try:
            arr = json.loads(match.group(0))
            if isinstance(arr, list):
                return arr
        except ValueError:
            pass
    return None


def normalize_receipt_item(raw: dict) -> IngredientDraft:
    qty = raw.get("quantity")
    if isinstance(qty, bool) or not isinstance(qty, (int, float)) or math.isnan(qty):
        qty = 1
    return IngredientDraft(
        name=normalize_name(raw["name"]),
        quantity=qty,
        unit=normalize_unit(raw.get("unit")),
    )


def _valid_idea(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and isinstance(obj.get("id"), str)
        and isinstance(obj.get("title"), str)
        and isinstance(obj.get("ingredients"), list)
        and isinstance(obj.get("steps"), list)
    )


class ReceiptReader:
    """Interface-like base: receipt image bytes -> candidate ingredients."""
    def read(self, image: bytes, mime_type: str = "image/jpeg") -> List[IngredientDraft]:  # pragma: no cover - interface
        raise NotImplementedError


class RecipeSuggester:
    def suggest(self, ingredients: List[str]) -> List[RecipeIdea]:  # pragma: no cover - interface
        raise NotImplementedError


def _client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise LLMError("Missing OPENAI_API_KEY")
    try:
        return OpenAI(api_key=settings.openai_api_key)
    except Exception as e:
        raise LLMError("Could not initialize OpenAI client") from e


class OpenAIReceiptReader(ReceiptReader):
    PROMPT = (
        "You are an OCR + ingredient normalization assistant.\n"
        "Extract a concise list of grocery ingredients from the receipt image.\n"
        "Return ONLY valid JSON array of objects: { name: string, quantity: number, unit: string }.\n"
        "Normalize units (g, kg, ml, l, pcs). If quantity missing, set quantity=1 and unit='pcs'. No extra keys."
    )

    def __init__(self, settings: Settings):
        self._client = _client(settings)
        self._model = settings.openai_model_ocr

    def read(self, image: bytes, mime_type: str = "image/jpeg") -> List[IngredientDraft]:
        try:
            data_url = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
            resp = self._client.chat.completions.create(
                model=self._model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.PROMPT},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }],
            )
            text = (resp.choices[0].message.content or "").strip()
        except Exception as e:
            raise LLMError(f"OpenAI OCR failed: {e}") from e

        parsed = parse_json_array(text) or parse_json_array(strip_markdown_fences(text))
        if parsed is None:
            raise LLMError("Parse error")
        cleaned = [normalize_receipt_item(i) for i in parsed if isinstance(i, dict) and isinstance(i.get("name"), str)]
        if not cleaned:
            raise LLMError("No valid items")
        return cleaned


class OpenAIRecipeSuggester(RecipeSuggester):
    def __init__(self, settings: Settings):
        self._client = _client(settings)
        self._model = settings.openai_model_recipes

    def _complete(self, prompt: str) -> str:
        resp = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
        )
        return (resp.choices[0].message.content or "").strip()

    def suggest(self, ingredients: List[str]) -> List[RecipeIdea]:
        listing = ", ".join(ingredients)
        prompt = (
            f"You are a helpful cooking assistant. Given the user's current ingredients: [{listing}]. "
            "Generate 3 diverse recipe ideas that use ONLY these ingredients plus pantry staples "
            "(salt, pepper, oil, water). Respond ONLY with a strict, raw JSON array (no backticks, no prose) "
            "of exactly 3 objects shaped: {id: string (slug), title: string, ingredients: string[], steps: string[]}."
        )
        try:
            ideas = parse_json_array(self._complete(prompt))
            if ideas is None:
                # One stricter retry before giving up
                repair = f"{prompt}\nThe previous output was invalid. Re-output ONLY valid JSON array now."
                ideas = parse_json_array(self._complete(repair))
        except Exception as e:
            raise LLMError(f"OpenAI suggest failed: {e}") from e

        if ideas is None:
            raise LLMError("Model JSON parse failed")
        out = [
            RecipeIdea(
                id=r["id"],
                title=r["title"],
                ingredients=[str(i) for i in r["ingredients"]],
                steps=[str(s) for s in r["steps"]],
                missing=[str(m) for m in r["missing"]] if isinstance(r.get("missing"), list) else None,
            )
            for r in ideas if _valid_idea(r)
        ]
        if not out:
            raise LLMError("Model JSON produced no valid entries")
        return out


class SimpleRecipeSuggester(RecipeSuggester):
    """Offline fallback so the UI keeps working when OpenAI is unavailable."""

    def suggest(self, ingredients: List[str]) -> List[RecipeIdea]:
        return [
            RecipeIdea(
                id="fallback-1",
                title="Mixed Bowl",
                ingredients=list(ingredients[:3]),
                steps=["Combine ingredients", "Season & serve"],
            )
        ]
