import asyncio
import logging
import math
from typing import List, Optional, Sequence, Set

from catalog_proxy.core.exceptions import TransientFetchError
from catalog_proxy.schemas.catalog import ListingDetail
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.mercadolibre.normalizer import normalize_item
from catalog_proxy.services.sync_log import SyncLog

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 50


class BatchEnricher:
    """
    Fetches full listing detail for a list of ids through the multi-get endpoint.

    A failing batch is logged and skipped so the other batches still make it
    into the result. Auth, configuration and store errors abort.
    """

    def __init__(self, client: MercadoLibreClient, batch_size: int = 20, batch_delay: float = 0.1):
        self.client = client
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.failed_batches = 0

    async def enrich(self, ids: Sequence[str], log: Optional[SyncLog] = None) -> List[ListingDetail]:
        if log is None:
            log = SyncLog(logger)
        items: List[ListingDetail] = []
        seen: Set[str] = set()
        self.failed_batches = 0

        total_batches = math.ceil(len(ids) / self.batch_size)
        log.info(f"Enriching {len(ids)} items in {total_batches} batches of {self.batch_size}")

        for index in range(0, len(ids), self.batch_size):
            batch = list(ids[index:index + self.batch_size])
            batch_number = index // self.batch_size + 1

            if index and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            try:
                entries = await self.client.get_items(batch)
            except TransientFetchError as e:
                self.failed_batches += 1
                log.error(f"Batch {batch_number}/{total_batches} failed ({', '.join(batch)}): {str(e)}")
                continue

            for entry in entries:
                if not isinstance(entry, dict) or entry.get("code") != 200:
                    logger.debug(f"Skipping entry with code {entry.get('code') if isinstance(entry, dict) else None}")
                    continue
                detail = normalize_item(entry.get("body"))
                if not detail.id or detail.id in seen:
                    continue
                seen.add(detail.id)
                items.append(detail)

            if batch_number % PROGRESS_EVERY == 0 or batch_number == total_batches:
                log.info(f"  -> Processed {batch_number}/{total_batches} batches ({len(items)} items)")

        log.info(f"Items enriched: {len(items)}")
        return items
