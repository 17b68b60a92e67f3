# catalog_proxy/core/config.py

import os
from functools import lru_cache
from typing import Iterable, List, Optional

from pydantic import AliasChoices, ConfigDict, Field
from pydantic_settings import BaseSettings

from catalog_proxy.core.enums import PaginationStrategy

# Credentials the token provider cannot work without
TOKEN_SETTINGS = ("MELI_APP_ID", "MELI_CLIENT_SECRET", "MELI_REFRESH_TOKEN")
# Everything a full catalog sync needs
SYNC_SETTINGS = TOKEN_SETTINGS + ("MELI_SELLER_ID",)


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file).

    Aliased variables are resolved in the order listed in their AliasChoices,
    so MELI_APP_ID wins over APP_ID, which wins over CLIENT_ID.
    """
    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./catalog.db"

    # MercadoLibre OAuth
    MELI_APP_ID: str = Field("", validation_alias=AliasChoices("MELI_APP_ID", "APP_ID", "CLIENT_ID"))
    MELI_CLIENT_SECRET: str = Field(
        "", validation_alias=AliasChoices("MELI_CLIENT_SECRET", "CLIENT_SECRET", "MELI_SECRET", "SECRET")
    )
    MELI_REFRESH_TOKEN: str = Field("", validation_alias=AliasChoices("MELI_REFRESH_TOKEN", "REFRESH_TOKEN"))
    MELI_SELLER_ID: str = Field("", validation_alias=AliasChoices("MELI_SELLER_ID", "SELLER_ID", "USER_ID"))
    TOKEN_SAFETY_MARGIN_SECONDS: int = 300

    # MercadoLibre API
    MELI_API_BASE_URL: str = "https://api.mercadolibre.com"
    MELI_REQUEST_TIMEOUT: float = 30.0
    MELI_MAX_RETRIES: int = 5           # attempts per request on HTTP 429
    MELI_BACKOFF_BASE_SECONDS: float = 1.0

    # Pagination
    MELI_PAGINATION_STRATEGY: PaginationStrategy = PaginationStrategy.SCAN
    MELI_PAGE_SIZE: int = 50
    MELI_MAX_PAGES: int = 200           # per pass
    MELI_MAX_ITEMS: int = 20000
    MELI_PAGE_DELAY_SECONDS: float = 0.1

    # Multi-get enrichment
    MELI_BATCH_SIZE: int = 20
    MELI_BATCH_DELAY_SECONDS: float = 0.1

    # Sync guard / scheduling
    SYNC_ADMIN_SECRET: str = ""
    SYNC_MIN_INTERVAL_SECONDS: int = 3600
    SYNC_SCHEDULE: str = "0 */6 * * *"
    SYNC_SCHEDULE_ENABLED: bool = False

    # Cache expiry (seconds, None = never expires)
    SNAPSHOT_TTL_SECONDS: Optional[int] = None
    ACTIVE_VIEW_TTL_SECONDS: Optional[int] = None
    ITEM_DETAIL_TTL_SECONDS: int = 604800
    ORDER_TTL_SECONDS: int = 2592000
    WEBHOOK_TTL_SECONDS: int = 86400
    STOCK_TTL_SECONDS: int = 3600

    # Read side
    SEARCH_RESULT_LIMIT: int = 50
    TRANSFER_DISCOUNT_PERCENT: float = 12.0
    STATIC_SNAPSHOT_PATH: Optional[str] = None

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    def missing(self, names: Iterable[str] = SYNC_SETTINGS) -> List[str]:
        """Return every required setting in ``names`` that is empty."""
        return [name for name in names if not str(getattr(self, name, "") or "").strip()]

    @property
    def token_safety_margin(self) -> int:
        """Safety margin clamped to the 60-300 second window."""
        return max(60, min(300, self.TOKEN_SAFETY_MARGIN_SECONDS))

    @property
    def async_database_url(self) -> str:
        url = self.DATABASE_URL or os.environ.get('DATABASE_URL', '')
        # Convert postgresql:// to postgresql+asyncpg:// for async support
        if url.startswith('postgresql://'):
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return url


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
