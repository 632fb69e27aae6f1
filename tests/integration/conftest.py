"""Integration test fixtures.

The API is exercised through FastAPI's TestClient with the service
container overridden by the in-process services from tests/conftest.py.
"""

import pytest
from fastapi.testclient import TestClient

from inbox_relay.api.dependencies import get_services, get_settings
from inbox_relay.main import app


@pytest.fixture
def client(services, test_settings):
    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
