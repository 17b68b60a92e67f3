from fastapi import Depends, Request

from catalog_proxy.core.config import Settings, get_settings
from catalog_proxy.database import async_session
from catalog_proxy.services.catalog_reader import CatalogReader
from catalog_proxy.services.catalog_store import CatalogStore
from catalog_proxy.services.kv_store import KVStore
from catalog_proxy.services.mercadolibre.auth import MercadoLibreAuthManager
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.mercadolibre.token_manager import TokenCache
from catalog_proxy.services.sync_service import CatalogSyncService
from catalog_proxy.services.webhook_processor import WebhookProcessor


def get_kv_store() -> KVStore:
    """Dependency for the key-value store."""
    return KVStore(async_session)


def get_token_cache(request: Request) -> TokenCache:
    """The process-wide token cache created with the app."""
    cache = getattr(request.app.state, "token_cache", None)
    if cache is None:
        cache = request.app.state.token_cache = TokenCache()
    return cache


def get_catalog_store(
    kv: KVStore = Depends(get_kv_store),
    settings: Settings = Depends(get_settings),
) -> CatalogStore:
    return CatalogStore(kv, settings)


def get_meli_client(
    kv: KVStore = Depends(get_kv_store),
    cache: TokenCache = Depends(get_token_cache),
    settings: Settings = Depends(get_settings),
) -> MercadoLibreClient:
    return MercadoLibreClient(settings, MercadoLibreAuthManager(settings, cache, kv))


def get_sync_service(
    store: CatalogStore = Depends(get_catalog_store),
    client: MercadoLibreClient = Depends(get_meli_client),
    settings: Settings = Depends(get_settings),
) -> CatalogSyncService:
    return CatalogSyncService(settings, store, client.auth_manager, client)


def get_catalog_reader(
    store: CatalogStore = Depends(get_catalog_store),
    client: MercadoLibreClient = Depends(get_meli_client),
    settings: Settings = Depends(get_settings),
) -> CatalogReader:
    return CatalogReader(settings, store, client)


def get_webhook_processor(
    kv: KVStore = Depends(get_kv_store),
    store: CatalogStore = Depends(get_catalog_store),
    client: MercadoLibreClient = Depends(get_meli_client),
    settings: Settings = Depends(get_settings),
) -> WebhookProcessor:
    return WebhookProcessor(settings, kv, store, client)
