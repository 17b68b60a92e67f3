from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from catalog_proxy.core.enums import ListingStatus, SyncStatus


class ShippingInfo(BaseModel):
    mode: Optional[str] = None
    free_shipping: bool = False
    local_pick_up: bool = False
    logistic_type: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ListingDetail(BaseModel):
    """Normalized listing as stored in the snapshot and the per-item cache"""
    id: str
    title: str = ""
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    status: ListingStatus = ListingStatus.CLOSED
    condition: Optional[str] = None
    available_quantity: int = Field(0, ge=0)
    thumbnail_url: Optional[str] = None
    image_url: Optional[str] = None
    permalink: Optional[str] = None
    shipping: ShippingInfo = ShippingInfo()
    attributes: Dict[str, str] = {}

    model_config = ConfigDict(frozen=True)

    def attribute(self, *names: str) -> str:
        """First non-empty attribute among ``names``, matched case-insensitively."""
        lowered = {key.lower(): value for key, value in self.attributes.items()}
        for name in names:
            value = lowered.get(name.lower())
            if value:
                return value
        return ""


class CatalogSnapshot(BaseModel):
    items: List[ListingDetail] = []
    total: int = 0
    last_sync: datetime
    duration_seconds: int = 0

    def active_items(self) -> List[ListingDetail]:
        return [item for item in self.items if item.status == ListingStatus.ACTIVE]


class SyncStats(BaseModel):
    total: int = 0
    total_reported: int = 0
    active: int = 0
    paused: int = 0
    closed: int = 0
    failed_batches: int = 0
    last_sync: Optional[datetime] = None
    duration_seconds: int = 0


class SyncResult(BaseModel):
    status: SyncStatus
    stats: Optional[SyncStats] = None
    logs: List[str] = []
    sample: List[ListingDetail] = []
    items: Optional[List[ListingDetail]] = None
    error: Optional[str] = None
    missing: Optional[List[str]] = None
    traceback: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
