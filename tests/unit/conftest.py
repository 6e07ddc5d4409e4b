"""Fixtures for unit tests."""

import pytest

from tests.unit.fakes import FakeInventoryAPI


@pytest.fixture
def fake_api():
    return FakeInventoryAPI()
