"""Shared fixtures."""

import pytest


@pytest.fixture
def data_env(tmp_path, monkeypatch):
    """Point every storage setting at a throwaway data dir."""
    d = tmp_path / "data"
    d.mkdir()
    monkeypatch.setenv("DATA_DIR", str(d))
    monkeypatch.setenv("INGREDIENTS_FILE", str(d / "ingredients.json"))
    monkeypatch.setenv("EVENTS_FILE", str(d / "inventory_log.jsonl"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return d
