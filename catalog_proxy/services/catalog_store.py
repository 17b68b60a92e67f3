"""
Catalog persistence on top of the key-value store.

Key layout:
    full_catalog          last snapshot (items, total, last_sync, duration)
    home_catalog          active-only view of the snapshot
    item:{id}             per-listing detail
    sync:last_started     cooldown guard
    sync:last_success     timestamp of the last persisted snapshot
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from catalog_proxy.core.config import Settings
from catalog_proxy.schemas.catalog import CatalogSnapshot, ListingDetail
from catalog_proxy.services.kv_store import KVStore

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "full_catalog"
ACTIVE_VIEW_KEY = "home_catalog"
LAST_STARTED_KEY = "sync:last_started"
LAST_SUCCESS_KEY = "sync:last_success"


def item_key(listing_id: str) -> str:
    return f"item:{listing_id}"


class CatalogStore:
    def __init__(self, kv: KVStore, settings: Settings):
        self.kv = kv
        self.settings = settings

    # --- writes (sync orchestrator only) ---

    async def save_snapshot(self, snapshot: CatalogSnapshot) -> None:
        """Persist the snapshot and its derived views, each with its own expiry."""
        payload = snapshot.model_dump(mode="json")
        await self.kv.put_json(SNAPSHOT_KEY, payload, ttl_seconds=self.settings.SNAPSHOT_TTL_SECONDS)

        active = [item.model_dump(mode="json") for item in snapshot.active_items()]
        await self.kv.put_json(ACTIVE_VIEW_KEY, active, ttl_seconds=self.settings.ACTIVE_VIEW_TTL_SECONDS)

        await self.kv.put_many(
            {item_key(item["id"]): item for item in payload["items"]},
            ttl_seconds=self.settings.ITEM_DETAIL_TTL_SECONDS,
        )
        await self.kv.put_json(LAST_SUCCESS_KEY, snapshot.last_sync.isoformat())

        logger.info(f"Snapshot saved: {snapshot.total} items, {len(active)} active")

    async def save_item_detail(self, item: ListingDetail) -> None:
        await self.kv.put_json(
            item_key(item.id), item.model_dump(mode="json"), ttl_seconds=self.settings.ITEM_DETAIL_TTL_SECONDS
        )

    async def mark_sync_started(self, when: datetime) -> None:
        await self.kv.put_json(LAST_STARTED_KEY, when.isoformat())

    # --- reads ---

    async def get_snapshot(self) -> Optional[CatalogSnapshot]:
        raw = await self.kv.get_json(SNAPSHOT_KEY)
        if raw is None:
            return None
        try:
            return CatalogSnapshot.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Stored snapshot is unreadable: {str(e)}")
            return None

    async def get_active_view(self) -> Optional[List[Dict[str, Any]]]:
        raw = await self.kv.get_json(ACTIVE_VIEW_KEY)
        return raw if isinstance(raw, list) else None

    async def get_item_detail(self, listing_id: str) -> Optional[ListingDetail]:
        raw = await self.kv.get_json(item_key(listing_id))
        if raw is None:
            return None
        try:
            return ListingDetail.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Cached detail for {listing_id} is unreadable: {str(e)}")
            return None

    async def get_last_started(self) -> Optional[datetime]:
        return _parse_timestamp(await self.kv.get_json(LAST_STARTED_KEY))

    async def get_last_success(self) -> Optional[datetime]:
        return _parse_timestamp(await self.kv.get_json(LAST_SUCCESS_KEY))


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        logger.error(f"Invalid timestamp in store: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
