# tests/conftest.py

import pytest
from fastapi.testclient import TestClient

from reconciler.dependencies import get_store
from reconciler.main import app
from reconciler.store import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
