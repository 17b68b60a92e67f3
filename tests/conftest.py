# tests/conftest.py
import pytest
from unittest.mock import AsyncMock, MagicMock

from catalog_proxy.core.config import Settings
from catalog_proxy.database import Base, build_engine, build_sessionmaker
from catalog_proxy.services.catalog_store import CatalogStore
from catalog_proxy.services.kv_store import KVStore
from tests.mocks.mock_kv_store import MockKVStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_SETTINGS = dict(
    DATABASE_URL=TEST_DATABASE_URL,
    MELI_APP_ID="test-app-id",
    MELI_CLIENT_SECRET="test-client-secret",
    MELI_REFRESH_TOKEN="TG-configured-refresh",
    MELI_SELLER_ID="123456",
    MELI_PAGE_DELAY_SECONDS=0,
    MELI_BATCH_DELAY_SECONDS=0,
    MELI_BACKOFF_BASE_SECONDS=1.0,
    SYNC_ADMIN_SECRET="",
    ENVIRONMENT="development",
)


@pytest.fixture
def make_settings():
    """Factory for settings that ignore the local .env file"""
    def _make(**overrides) -> Settings:
        values = {**BASE_SETTINGS, **overrides}
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine with the kv table created (function-scoped)."""
    engine = build_engine(TEST_DATABASE_URL)
    # Import models so they register with Base
    from catalog_proxy import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def kv_store(test_engine):
    return KVStore(build_sessionmaker(test_engine))


@pytest.fixture
def mock_kv():
    return MockKVStore()


@pytest.fixture
def catalog_store(mock_kv, settings):
    return CatalogStore(mock_kv, settings)


@pytest.fixture
def mock_auth_manager():
    auth_manager = MagicMock()
    auth_manager.get_access_token = AsyncMock(return_value="APP_USR-test-token")
    auth_manager.invalidate = AsyncMock()
    return auth_manager

