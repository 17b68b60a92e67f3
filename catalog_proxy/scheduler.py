"""
Timer-triggered catalog sync.
The scheduler runs inside the FastAPI process and calls the sync service
directly; max_instances=1 keeps runs from overlapping in this process.
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from catalog_proxy.core.config import Settings, get_settings
from catalog_proxy.core.exceptions import StoreError, SyncCooldownError
from catalog_proxy.database import async_session
from catalog_proxy.services.catalog_store import CatalogStore
from catalog_proxy.services.kv_store import KVStore
from catalog_proxy.services.mercadolibre.auth import MercadoLibreAuthManager
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.mercadolibre.token_manager import TokenCache
from catalog_proxy.services.sync_service import CatalogSyncService

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def build_sync_service(settings: Settings, token_cache: TokenCache, kv: Optional[KVStore] = None) -> CatalogSyncService:
    kv = kv or KVStore(async_session)
    auth_manager = MercadoLibreAuthManager(settings, token_cache, kv)
    client = MercadoLibreClient(settings, auth_manager)
    return CatalogSyncService(settings, CatalogStore(kv, settings), auth_manager, client)


async def sync_catalog_task(token_cache: TokenCache):
    """Scheduled catalog sync"""
    logger.info("=== SCHEDULED SYNC STARTING ===")
    service = build_sync_service(get_settings(), token_cache)
    try:
        result = await service.run_sync()
    except SyncCooldownError as e:
        logger.info(f"Scheduled sync skipped: {str(e)}")
        return

    stats = result.stats
    logger.info(
        f"Scheduled sync finished with {result.status.value}"
        + (f": {stats.total} items ({stats.active} active) in {stats.duration_seconds}s" if stats else "")
    )
    if result.error:
        logger.error(f"Scheduled sync error: {result.error}")


async def purge_expired_keys_task():
    """Drop expired cache rows"""
    try:
        deleted = await KVStore(async_session).purge_expired()
        logger.info(f"Cleanup completed: {deleted} expired keys deleted")
    except StoreError as e:
        logger.error(f"Error in cleanup task: {str(e)}")


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler(settings: Settings, token_cache: TokenCache) -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    global scheduler

    if scheduler is not None:
        return scheduler

    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    if settings.SYNC_SCHEDULE_ENABLED:
        scheduler.add_job(
            sync_catalog_task,
            CronTrigger.from_crontab(settings.SYNC_SCHEDULE),
            args=[token_cache],
            id="sync_catalog",
            name="Sync Catalog",
            replace_existing=True,
            max_instances=1,  # Only one sync at a time
            misfire_grace_time=3600
        )
        logger.info(f"Scheduled sync job added with schedule: {settings.SYNC_SCHEDULE}")
    else:
        logger.info("Scheduled sync is disabled. Set SYNC_SCHEDULE_ENABLED=true to enable")

    # Runs whether or not the sync job is scheduled
    scheduler.add_job(
        purge_expired_keys_task,
        CronTrigger(hour=3, minute=0),
        id="purge_expired_keys",
        name="Purge Expired Keys",
        replace_existing=True,
        max_instances=1
    )

    return scheduler


async def start_scheduler(settings: Settings, token_cache: TokenCache):
    """Start the scheduler"""
    sched = create_scheduler(settings, token_cache)
    if not sched.running:
        sched.start()
        logger.info("Scheduler started successfully")
        for job in sched.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


async def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped successfully")
    scheduler = None
