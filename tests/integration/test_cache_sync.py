"""The cache driving the real API in-process through httpx.ASGITransport."""

import httpx

from kitchen.config import Settings
from kitchen.main import create_app
from kitchen.session import open_inventory


def session(app):
    return open_inventory(Settings(inventory_api_url="http://test"), transport=httpx.ASGITransport(app=app))


async def test_optimistic_changes_reach_the_server(data_env):
    app = create_app()

    async with session(app) as cache:
        assert cache.ingredients == []

        task = cache.add({"name": "eggs", "quantity": 12, "unit": "pcs"})
        assert cache.is_pending(cache.ingredients[0].id)
        added = await task
        assert added.success is True
        assert cache.ingredients[0].id == added.record_id

        updated = await cache.update(added.record_id, {"quantity": 10})
        assert updated.success is True
        assert cache.get(added.record_id).quantity == 10

        cache.add({"name": "milk", "quantity": 1, "unit": "l"})

    # A fresh session sees what the first one committed
    async with session(app) as cache:
        assert [(r.name, r.quantity, r.unit) for r in cache.ingredients] == [("eggs", 10, "pcs"), ("milk", 1, "l")]
        assert all(r.added_at > 0 for r in cache.ingredients)


async def test_rejected_create_is_discarded(data_env):
    app = create_app()

    async with session(app) as cache:
        result = await cache.add({"name": "   "})

        assert result.success is False
        assert cache.ingredients == []


async def test_failed_remove_rolls_back(data_env):
    app = create_app()

    async with session(app) as cache:
        await cache.add({"name": "rice", "quantity": 2, "unit": "kg"})
        before = cache.ingredients

        result = await cache.remove("ghost")

        assert result.success is False
        assert cache.ingredients == before


async def test_clear_all_empties_the_server(data_env):
    app = create_app()

    async with session(app) as cache:
        await cache.add({"name": "a"})
        await cache.add({"name": "b"})
        result = await cache.clear_all()
        assert result.success is True

    async with session(app) as cache:
        assert cache.ingredients == []


async def test_load_failure_keeps_state(data_env):
    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    settings = Settings(inventory_api_url="http://test")
    async with open_inventory(settings, transport=httpx.MockTransport(broken)) as cache:
        assert cache.ingredients == []
        result = await cache.load()
        assert result.success is False
