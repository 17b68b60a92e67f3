# tests/unit/core/test_config.py
import pytest

from catalog_proxy.core.config import SYNC_SETTINGS, Settings
from catalog_proxy.core.enums import PaginationStrategy

ALIASED_VARS = (
    "MELI_APP_ID", "APP_ID", "CLIENT_ID",
    "MELI_CLIENT_SECRET", "CLIENT_SECRET", "MELI_SECRET", "SECRET",
    "MELI_REFRESH_TOKEN", "REFRESH_TOKEN",
    "MELI_SELLER_ID", "SELLER_ID", "USER_ID",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ALIASED_VARS:
        monkeypatch.delenv(name, raising=False)


def test_alias_precedence(monkeypatch):
    monkeypatch.setenv("CLIENT_ID", "from-client-id")
    monkeypatch.setenv("APP_ID", "from-app-id")
    monkeypatch.setenv("SECRET", "from-secret")
    monkeypatch.setenv("MELI_SECRET", "from-meli-secret")
    monkeypatch.setenv("USER_ID", "42")

    settings = Settings(_env_file=None)

    assert settings.MELI_APP_ID == "from-app-id"
    assert settings.MELI_CLIENT_SECRET == "from-meli-secret"
    assert settings.MELI_SELLER_ID == "42"

    monkeypatch.setenv("MELI_APP_ID", "from-meli-app-id")
    assert Settings(_env_file=None).MELI_APP_ID == "from-meli-app-id"


def test_missing_lists_empty_required_settings(monkeypatch):
    monkeypatch.setenv("MELI_APP_ID", "app")
    monkeypatch.setenv("REFRESH_TOKEN", "   ")

    settings = Settings(_env_file=None)

    assert settings.missing(SYNC_SETTINGS) == ["MELI_CLIENT_SECRET", "MELI_REFRESH_TOKEN", "MELI_SELLER_ID"]


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.MELI_PAGINATION_STRATEGY == PaginationStrategy.SCAN
    assert settings.MELI_BATCH_SIZE == 20
    assert settings.SNAPSHOT_TTL_SECONDS is None
    assert settings.token_safety_margin == 300


@pytest.mark.parametrize("configured,expected", [(0, 60), (120, 120), (900, 300)])
def test_safety_margin_is_clamped(configured, expected):
    assert Settings(_env_file=None, TOKEN_SAFETY_MARGIN_SECONDS=configured).token_safety_margin == expected


def test_async_database_url():
    settings = Settings(_env_file=None, DATABASE_URL="postgresql://user:pass@db/catalog")

    assert settings.async_database_url == "postgresql+asyncpg://user:pass@db/catalog"
