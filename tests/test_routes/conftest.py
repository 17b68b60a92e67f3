import pytest
from fastapi.testclient import TestClient

from catalog_proxy.core.config import get_settings
from catalog_proxy.dependencies import get_kv_store
from catalog_proxy.main import app


@pytest.fixture
def client_for(mock_kv):
    """TestClient factory bound to the given settings; lifespan is not run"""
    def _client(settings) -> TestClient:
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_kv_store] = lambda: mock_kv
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()
