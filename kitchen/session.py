"""Client-side composition root: wires the HTTP client, API wrapper and cache."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from kitchen.config import Settings
from kitchen.core.cache import InventoryCache
from kitchen.core.logging import configure_logging
from kitchen.services.inventory_api import InventoryAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_inventory(
    settings: Optional[Settings] = None,
    *,
    load: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[InventoryCache]:
    """
    Yield a ready InventoryCache bound to the configured persistence API.

    On exit, in-flight operations are drained before the HTTP client closes,
    so every optimistic change has reconciled by the time the block ends.
    `transport` lets tests route requests to an in-process app.
    """
    settings = settings or Settings()
    configure_logging(settings)
    async with httpx.AsyncClient(
        base_url=settings.inventory_api_url,
        timeout=settings.request_timeout_seconds,
        transport=transport,
    ) as client:
        cache = InventoryCache(InventoryAPI(client))
        if load:
            await cache.load()
        try:
            yield cache
        finally:
            results = await cache.drain()
            if results:
                logger.debug("Drained %d pending inventory operations", len(results))
