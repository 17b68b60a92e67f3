# catalog_proxy/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_proxy.core.config import SYNC_SETTINGS, get_settings
from catalog_proxy.core.logging_config import configure_logging
from catalog_proxy.database import create_tables
from catalog_proxy.routes import catalog, health, sync, webhooks
from catalog_proxy.scheduler import start_scheduler, stop_scheduler
from catalog_proxy.services.mercadolibre.token_manager import TokenCache

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    missing = settings.missing(SYNC_SETTINGS)
    if missing:
        logger.warning(f"Missing configuration, sync will fail until set: {', '.join(missing)}")

    await create_tables()
    await start_scheduler(settings, app.state.token_cache)
    try:
        yield
    finally:
        await stop_scheduler()


app = FastAPI(
    title="Catalog Proxy",
    lifespan=lifespan
)
app.state.token_cache = TokenCache()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health.router)  # Health check should be accessible without auth
app.include_router(catalog.router)
app.include_router(sync.router)  # Admin gate applied on the router
app.include_router(webhooks.router)  # Webhooks need to be accessible without auth
