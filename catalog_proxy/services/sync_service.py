# catalog_proxy/services/sync_service.py
"""
Catalog synchronization: token -> id enumeration -> batch enrichment ->
normalization -> snapshot. Returns a SyncResult instead of raising, so the
HTTP route, the CLI and the scheduler can all report the same envelope.
"""

import logging
import time
import traceback
from datetime import datetime, timezone
from typing import List

from catalog_proxy.core.config import SYNC_SETTINGS, Settings
from catalog_proxy.core.enums import ListingStatus, SyncStatus
from catalog_proxy.core.exceptions import ConfigurationError, SyncCooldownError
from catalog_proxy.schemas.catalog import CatalogSnapshot, ListingDetail, SyncResult, SyncStats
from catalog_proxy.services.catalog_store import CatalogStore
from catalog_proxy.services.mercadolibre.auth import MercadoLibreAuthManager
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.mercadolibre.enricher import BatchEnricher
from catalog_proxy.services.mercadolibre.enumerator import PageEnumerator
from catalog_proxy.services.sync_log import SyncLog

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5


class CatalogSyncService:
    """Runs one catalog sync. Keeps no state between runs besides the store and token cache."""

    def __init__(
        self,
        settings: Settings,
        store: CatalogStore,
        auth_manager: MercadoLibreAuthManager,
        client: MercadoLibreClient,
    ):
        self.settings = settings
        self.store = store
        self.auth_manager = auth_manager
        self.client = client

    def _build_enumerator(self) -> PageEnumerator:
        return PageEnumerator(
            self.client,
            seller_id=self.settings.MELI_SELLER_ID,
            strategy=self.settings.MELI_PAGINATION_STRATEGY,
            page_size=self.settings.MELI_PAGE_SIZE,
            max_pages=self.settings.MELI_MAX_PAGES,
            max_items=self.settings.MELI_MAX_ITEMS,
            page_delay=self.settings.MELI_PAGE_DELAY_SECONDS,
        )

    def _build_enricher(self) -> BatchEnricher:
        return BatchEnricher(
            self.client,
            batch_size=self.settings.MELI_BATCH_SIZE,
            batch_delay=self.settings.MELI_BATCH_DELAY_SECONDS,
        )

    async def check_cooldown(self):
        """Raise SyncCooldownError if the last run started within the minimum interval."""
        interval = self.settings.SYNC_MIN_INTERVAL_SECONDS
        if interval <= 0:
            return
        last_started = await self.store.get_last_started()
        if last_started is None:
            return
        elapsed = (datetime.now(timezone.utc) - last_started).total_seconds()
        if elapsed < interval:
            raise SyncCooldownError(retry_after=int(interval - elapsed) + 1)

    async def run_sync(self, force: bool = False, include_items: bool = False) -> SyncResult:
        """
        Run the full pipeline.

        Raises:
            SyncCooldownError: a run started less than SYNC_MIN_INTERVAL_SECONDS ago
                (not raised when ``force`` is set)
        """
        log = SyncLog(logger)
        started = time.monotonic()

        try:
            missing = self.settings.missing(SYNC_SETTINGS)
            if missing:
                raise ConfigurationError(missing)

            if not force:
                await self.check_cooldown()
            await self.store.mark_sync_started(datetime.now(timezone.utc))

            log.info("Obtaining access token...")
            await self.auth_manager.get_access_token()
            log.info("Token obtained")

            enumerator = self._build_enumerator()
            ids = await enumerator.list_all_ids(log)

            if not ids:
                duration = int(round(time.monotonic() - started))
                log.warning("No listings found, keeping the previous snapshot")
                return SyncResult(
                    status=SyncStatus.WARNING,
                    stats=SyncStats(
                        total=0,
                        total_reported=enumerator.total_reported,
                        last_sync=datetime.now(timezone.utc),
                        duration_seconds=duration,
                    ),
                    logs=log.lines,
                )

            enricher = self._build_enricher()
            items = await enricher.enrich(ids, log)

            duration = int(round(time.monotonic() - started))
            now = datetime.now(timezone.utc)
            stats = build_stats(items, now, duration)
            stats.total_reported = enumerator.total_reported
            stats.failed_batches = enricher.failed_batches

            if not items:
                log.warning(f"No listing could be enriched ({enricher.failed_batches} failed batches), keeping the previous snapshot")
                return SyncResult(status=SyncStatus.WARNING, stats=stats, logs=log.lines)

            snapshot = CatalogSnapshot(items=items, total=len(items), last_sync=now, duration_seconds=duration)
            await self.store.save_snapshot(snapshot)

            log.info(f"COMPLETED: {len(items)} items in {duration}s")
            return SyncResult(
                status=SyncStatus.SUCCESS,
                stats=stats,
                logs=log.lines,
                sample=items[:SAMPLE_SIZE],
                items=items if include_items else None,
            )

        except SyncCooldownError:
            raise
        except ConfigurationError as e:
            log.error(str(e))
            return self._error_result(e, log, missing=e.missing)
        except Exception as e:
            logger.exception("Catalog sync failed")
            log.error(str(e))
            return self._error_result(e, log)

    def _error_result(self, error: Exception, log: SyncLog, missing: List[str] = None) -> SyncResult:
        return SyncResult(
            status=SyncStatus.ERROR,
            error=str(error),
            logs=log.lines,
            missing=missing,
            traceback=traceback.format_exc() if self.settings.DEBUG else None,
        )


def build_stats(items: List[ListingDetail], last_sync: datetime, duration_seconds: int) -> SyncStats:
    """Counts by status over the final listing sequence"""
    return SyncStats(
        total=len(items),
        active=sum(1 for item in items if item.status == ListingStatus.ACTIVE),
        paused=sum(1 for item in items if item.status == ListingStatus.PAUSED),
        closed=sum(1 for item in items if item.status == ListingStatus.CLOSED),
        last_sync=last_sync,
        duration_seconds=duration_seconds,
    )
