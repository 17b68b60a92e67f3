import asyncio
import logging
from typing import List, Optional, Set

from catalog_proxy.core.enums import PaginationStrategy
from catalog_proxy.core.exceptions import TransientFetchError
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.sync_log import SyncLog

logger = logging.getLogger(__name__)

# The default search leaves paused listings out, so they get their own pass
STATUS_PASSES = (None, "paused")


class PageEnumerator:
    """
    Collects every listing id of the seller.

    Pages are requested one after another with a fixed delay in between.
    A failing page is logged and skipped; AuthError propagates.
    """

    def __init__(
        self,
        client: MercadoLibreClient,
        seller_id: str,
        strategy: PaginationStrategy = PaginationStrategy.SCAN,
        page_size: int = 50,
        max_pages: int = 200,
        max_items: int = 20000,
        page_delay: float = 0.1,
    ):
        self.client = client
        self.seller_id = seller_id
        self.strategy = PaginationStrategy(strategy)
        self.page_size = max(1, page_size)
        self.max_pages = max(1, max_pages)
        self.max_items = max(1, max_items)
        self.page_delay = page_delay
        self.total_reported = 0
        self._requests = 0

    async def list_all_ids(self, log: Optional[SyncLog] = None) -> List[str]:
        """All ids from the default pass and the paused pass, without duplicates."""
        if log is None:
            log = SyncLog(logger)
        ids: List[str] = []
        seen: Set[str] = set()
        self.total_reported = 0
        self._requests = 0

        log.info(f"Listing ids for seller {self.seller_id} ({self.strategy.value} pagination)")
        for status in STATUS_PASSES:
            label = status or "default"
            if len(ids) >= self.max_items:
                log.warning(f"Item cap of {self.max_items} reached, skipping {label} pass")
                break

            if self.strategy == PaginationStrategy.OFFSET:
                found = await self._offset_pass(status, log)
            else:
                found = await self._scan_pass(status, log)

            added = 0
            for listing_id in found:
                if listing_id in seen:
                    continue
                if len(ids) >= self.max_items:
                    break
                seen.add(listing_id)
                ids.append(listing_id)
                added += 1
            log.info(f"{label} pass: {len(found)} ids, {added} new")

        log.info(f"Total unique ids: {len(ids)}")
        return ids

    async def _offset_pass(self, status: Optional[str], log: SyncLog) -> List[str]:
        found: List[str] = []
        offset = 0
        total: Optional[int] = None

        for page in range(1, self.max_pages + 1):
            await self._throttle()
            try:
                data = await self.client.search_items(
                    self.seller_id, limit=self.page_size, offset=offset, status=status
                )
            except TransientFetchError as e:
                log.error(f"Page {page} (offset {offset}) failed: {str(e)}")
                if total is None:
                    # Without a reported total there is nothing to page against
                    break
                offset += self.page_size
                if offset >= total:
                    break
                continue

            results = _ids_from(data)
            found.extend(results)
            total = _paging_total(data, default=total)
            if status is None and total is not None:
                self.total_reported = max(self.total_reported, total)

            if len(results) < self.page_size:
                break
            if total is not None and offset + self.page_size >= total:
                break
            if len(found) >= self.max_items:
                log.warning(f"Item cap of {self.max_items} reached")
                break
            offset += self.page_size
        else:
            log.warning(f"Page cap of {self.max_pages} reached ({status or 'default'} pass)")

        return found

    async def _scan_pass(self, status: Optional[str], log: SyncLog) -> List[str]:
        found: List[str] = []
        scroll_id: Optional[str] = None

        for page in range(1, self.max_pages + 1):
            await self._throttle()
            try:
                data = await self.client.search_items(
                    self.seller_id, limit=self.page_size, status=status, scroll_id=scroll_id, scan=True
                )
            except TransientFetchError as e:
                # The cursor is lost with the failed page
                log.error(f"Page {page} failed, ending {status or 'default'} pass: {str(e)}")
                break

            results = _ids_from(data)
            found.extend(results)
            if status is None:
                total = _paging_total(data)
                if total is not None:
                    self.total_reported = max(self.total_reported, total)

            scroll_id = data.get("scroll_id") if isinstance(data, dict) else None
            if not scroll_id or not results:
                break
            if len(found) >= self.max_items:
                log.warning(f"Item cap of {self.max_items} reached")
                break
        else:
            log.warning(f"Page cap of {self.max_pages} reached ({status or 'default'} pass)")

        return found

    async def _throttle(self):
        if self._requests and self.page_delay > 0:
            await asyncio.sleep(self.page_delay)
        self._requests += 1


def _ids_from(data) -> List[str]:
    if not isinstance(data, dict):
        return []
    return [str(listing_id) for listing_id in data.get("results") or [] if listing_id]


def _paging_total(data, default: Optional[int] = None) -> Optional[int]:
    paging = data.get("paging") if isinstance(data, dict) else None
    if isinstance(paging, dict) and paging.get("total") is not None:
        try:
            return int(paging["total"])
        except (TypeError, ValueError):
            return default
    return default
