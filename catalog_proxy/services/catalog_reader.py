# catalog_proxy/services/catalog_reader.py
"""
Read-side views over the cached catalog. Never mutates the snapshot and
never lets a store or remote failure reach the caller: a miss is an empty
result.
"""

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from catalog_proxy.core.config import Settings
from catalog_proxy.core.enums import ListingStatus
from catalog_proxy.core.exceptions import CatalogProxyError, StoreError
from catalog_proxy.schemas.catalog import CatalogSnapshot, ListingDetail
from catalog_proxy.services.catalog_store import CatalogStore
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.mercadolibre.normalizer import normalize_item
from catalog_proxy.services.search_service import search_items

logger = logging.getLogger(__name__)


class CatalogReader:
    def __init__(self, settings: Settings, store: CatalogStore, client: Optional[MercadoLibreClient] = None):
        self.settings = settings
        self.store = store
        self.client = client

    async def _snapshot(self) -> Optional[CatalogSnapshot]:
        try:
            return await self.store.get_snapshot()
        except StoreError as e:
            logger.error(f"Snapshot unavailable: {str(e)}")
            return None

    async def catalog(self) -> Optional[Dict[str, Any]]:
        snapshot = await self._snapshot()
        return snapshot.model_dump(mode="json") if snapshot else None

    async def home(self) -> List[Dict[str, Any]]:
        """Active listings: active view, then the snapshot, then the static file."""
        try:
            view = await self.store.get_active_view()
        except StoreError as e:
            logger.error(f"Active view unavailable: {str(e)}")
            view = None
        if view is not None:
            return view

        snapshot = await self._snapshot()
        if snapshot:
            logger.info("Active view missing, deriving it from the snapshot")
            return [item.model_dump(mode="json") for item in snapshot.active_items()]

        return [item.model_dump(mode="json") for item in self._static_items() if item.status == ListingStatus.ACTIVE]

    async def books(self) -> List[Dict[str, Any]]:
        """Active listings with the bank transfer price and https images"""
        discount = Decimal(str(self.settings.TRANSFER_DISCOUNT_PERCENT)) / Decimal(100)
        books = []
        for entry in await self.home():
            book = dict(entry)
            price = book.get("price")
            if price is not None:
                original = Decimal(str(price))
                book["price_original"] = price
                book["price_transfer"] = int((original * (1 - discount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
            for field in ("image_url", "thumbnail_url"):
                if isinstance(book.get(field), str):
                    book[field] = book[field].replace("http://", "https://", 1)
            books.append(book)
        return books

    async def search(self, query: str) -> List[Dict[str, Any]]:
        if not (query or "").strip():
            return []
        snapshot = await self._snapshot()
        items = snapshot.items if snapshot else self._static_items()
        results = search_items(items, query, limit=self.settings.SEARCH_RESULT_LIMIT)
        return [item.model_dump(mode="json") for item in results]

    async def item_detail(self, listing_id: str) -> Optional[Dict[str, Any]]:
        """Per-item cache, then the snapshot, then a lazy remote fetch that is cached."""
        listing_id = (listing_id or "").strip()
        if not listing_id:
            return None

        try:
            cached = await self.store.get_item_detail(listing_id)
        except StoreError as e:
            logger.error(f"Item cache unavailable: {str(e)}")
            cached = None
        if cached:
            return cached.model_dump(mode="json")

        snapshot = await self._snapshot()
        if snapshot:
            for item in snapshot.items:
                if item.id == listing_id:
                    return item.model_dump(mode="json")

        return await self._fetch_and_cache(listing_id)

    async def _fetch_and_cache(self, listing_id: str) -> Optional[Dict[str, Any]]:
        if self.client is None:
            return None
        try:
            raw = await self.client.get_item(listing_id)
        except CatalogProxyError as e:
            logger.warning(f"Lazy fetch of {listing_id} failed: {str(e)}")
            return None

        detail = normalize_item(raw)
        if not detail.id:
            return None
        try:
            await self.store.save_item_detail(detail)
        except StoreError as e:
            logger.warning(f"Could not cache {listing_id}: {str(e)}")
        return detail.model_dump(mode="json")

    def _static_items(self) -> List[ListingDetail]:
        """Items from the bundled static snapshot, if one is configured"""
        path = self.settings.STATIC_SNAPSHOT_PATH
        if not path:
            return []
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Static snapshot {path} unreadable: {str(e)}")
            return []

        entries = raw.get("items", []) if isinstance(raw, dict) else raw
        items = []
        for entry in entries if isinstance(entries, list) else []:
            try:
                items.append(ListingDetail.model_validate(entry))
            except ValidationError:
                continue
        return items
