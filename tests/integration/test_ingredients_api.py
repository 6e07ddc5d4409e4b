import json

from fastapi.testclient import TestClient
from kitchen.main import create_app


def test_create_list_update_delete(data_env):
    client = TestClient(create_app())

    # Create
    resp = client.post("/api/ingredients", json={"name": "  Eggs ", "quantity": 12, "unit": "pcs"})
    assert resp.status_code == 201
    created = resp.json()
    assert created["name"] == "Eggs"
    assert created["quantity"] == 12
    assert created["id"]
    assert isinstance(created["addedAt"], str)

    # List
    resp = client.get("/api/ingredients")
    assert resp.status_code == 200
    assert resp.json() == [created]

    # Update (partial)
    resp = client.put("/api/ingredients", json={"id": created["id"], "quantity": 6})
    assert resp.status_code == 200
    assert resp.json() == {**created, "quantity": 6}

    # Delete
    resp = client.delete("/api/ingredients", params={"id": created["id"]})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert client.get("/api/ingredients").json() == []


def test_create_defaults_quantity_and_unit(data_env):
    client = TestClient(create_app())
    resp = client.post("/api/ingredients", json={"name": "salt"})
    assert resp.status_code == 201
    assert (resp.json()["quantity"], resp.json()["unit"]) == (0, "pcs")


def test_invalid_requests_are_rejected(data_env):
    client = TestClient(create_app())
    assert client.post("/api/ingredients", json={"name": "   "}).status_code == 422
    assert client.post("/api/ingredients", json={"quantity": 2}).status_code == 422
    assert client.put("/api/ingredients", json={"quantity": 2}).status_code == 422
    assert client.delete("/api/ingredients").status_code == 422


def test_unknown_ids_are_not_found(data_env):
    client = TestClient(create_app())
    assert client.put("/api/ingredients", json={"id": "ghost", "quantity": 1}).status_code == 404
    assert client.delete("/api/ingredients", params={"id": "ghost"}).status_code == 404


def test_list_is_ordered_by_added_at(data_env):
    client = TestClient(create_app())
    names = ["milk", "eggs", "rice"]
    for n in names:
        client.post("/api/ingredients", json={"name": n})
    assert [r["name"] for r in client.get("/api/ingredients").json()] == names


def test_mutations_are_audited(data_env):
    client = TestClient(create_app())
    item = client.post("/api/ingredients", json={"name": "milk"}).json()
    client.delete("/api/ingredients", params={"id": item["id"]})

    lines = (data_env / "inventory_log.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["type"] for line in lines] == ["create", "delete"]
