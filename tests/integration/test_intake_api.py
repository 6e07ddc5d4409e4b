import base64

from fastapi.testclient import TestClient
from kitchen.main import create_app


FALLBACK = [
    {"name": "tomato", "quantity": 3, "unit": "pcs"},
    {"name": "flour", "quantity": 500, "unit": "g"},
]


def test_ocr_without_key_returns_fallback(data_env):
    client = TestClient(create_app())
    resp = client.post("/api/ocr", files={"image": ("receipt.jpg", b"\xff\xd8fake", "image/jpeg")})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ingredients"] == FALLBACK
    assert "OPENAI_API_KEY" in body["note"]


def test_ocr_accepts_base64_json(data_env):
    client = TestClient(create_app())
    payload = {"imageBase64": base64.b64encode(b"\xff\xd8fake").decode()}
    resp = client.post("/api/ocr", json=payload)
    assert resp.status_code == 200
    assert resp.json()["ingredients"] == FALLBACK


def test_ocr_missing_image_reports_error(data_env):
    client = TestClient(create_app())
    resp = client.post("/api/ocr", json={})
    assert resp.status_code == 200
    assert resp.json()["error"] == "Missing imageBase64"


def test_ocr_rejects_other_content_types(data_env):
    client = TestClient(create_app())
    resp = client.post("/api/ocr", content=b"hello", headers={"content-type": "text/plain"})
    assert resp.status_code == 415


def test_recipes_fall_back_without_key(data_env):
    client = TestClient(create_app())
    resp = client.post("/api/recipes", json={"ingredients": ["eggs", "milk", "flour", "sugar"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["note"] == "fallback used"
    assert body["ideas"] == [
        {"id": "fallback-1", "title": "Mixed Bowl", "ingredients": ["eggs", "milk", "flour"],
         "steps": ["Combine ingredients", "Season & serve"]},
    ]


def test_recipes_require_string_list(data_env):
    client = TestClient(create_app())
    assert client.post("/api/recipes", json={"ingredients": "eggs"}).status_code == 400
    assert client.post("/api/recipes", json={"ingredients": [1, 2]}).status_code == 400


def test_barcode_requires_code(data_env):
    client = TestClient(create_app())
    assert client.get("/api/barcode").status_code == 400


def test_healthz(data_env):
    client = TestClient(create_app())
    assert client.get("/healthz").json() == {"status": "ok"}
