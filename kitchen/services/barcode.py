"""Barcode product lookup against Open Food Facts."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional, Tuple
from urllib.parse import quote

import httpx

from kitchen.config import Settings
from kitchen.core.models import COMMON_UNITS, BarcodeGuess
from kitchen.services.exceptions import LookupFailed

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404

NAME_FIELDS = (
    "product_name",
    "product_name_en",
    "product_name_es",
    "product_name_fr",
    "generic_name",
    "generic_name_en",
    "generic_name_es",
    "generic_name_fr",
    "brands",
)

_LEADING_AMOUNT = re.compile(r"^(\d+(?:\.\d+)?)\s*(\w+)")


def pick_name(product: dict[str, Any]) -> str:
    for field in NAME_FIELDS:
        value = product.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return "Unknown product"


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        match = re.match(r"^\s*(\d+(?:\.\d+)?)", str(value))
        return float(match.group(1)) if match else None


def guess_quantity_and_unit(product: dict[str, Any]) -> Tuple[float, str]:
    """
    Guess a pack size from product_quantity/product_quantity_unit, or from a
    leading "<number> <unit>" in the free-text quantity. Defaults to 1 pcs.
    """
    quantity, unit = 1.0, "pcs"
    if product.get("product_quantity"):
        q = _as_float(product["product_quantity"])
        if q is not None and q > 0:
            quantity = q
            raw_unit = product.get("product_quantity_unit")
            if isinstance(raw_unit, str) and raw_unit.strip().lower() in COMMON_UNITS:
                unit = raw_unit.strip().lower()
    elif isinstance(product.get("quantity"), str):
        m = _LEADING_AMOUNT.match(product["quantity"].lower())
        if m:
            q = float(m.group(1))
            if q > 0:
                quantity = q
            if m.group(2) in COMMON_UNITS:
                unit = m.group(2)
    return quantity, unit


class OpenFoodFactsClient:
    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.openfoodfacts_url.rstrip("/")
        self.timeout = settings.request_timeout_seconds
        self._client = client

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.get(url)

    async def lookup(self, code: str) -> Optional[BarcodeGuess]:
        """Return a guess for `code`, or None when the product is unknown."""
        url = f"{self.base_url}/api/v2/product/{quote(code, safe='')}.json"
        try:
            response = await self._get(url)
            if response.status_code == HTTP_NOT_FOUND:
                return None
            response.raise_for_status()
            product = response.json().get("product")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Barcode lookup failed for %s: %s", code, e)
            raise LookupFailed(f"Lookup failed for {code}") from e

        if not product:
            return None
        quantity, unit = guess_quantity_and_unit(product)
        return BarcodeGuess(found=True, name=pick_name(product), quantity_guess=quantity, unit_guess=unit)
