"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ListingStatus(str, Enum):
    """Listing status values kept in the snapshot"""
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"

    @classmethod
    def from_remote(cls, value) -> "ListingStatus":
        # Remote statuses that are temporarily not sellable count as paused
        remote = str(value or "").strip().lower()
        if remote == "active":
            return cls.ACTIVE
        if remote in ("paused", "under_review", "inactive", "not_yet_active", "payment_required"):
            return cls.PAUSED
        return cls.CLOSED


class SyncStatus(str, Enum):
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class PaginationStrategy(str, Enum):
    """How the listing search is walked"""
    OFFSET = "offset"
    SCAN = "scan"   # scroll_id continuation


class WebhookTopic(str, Enum):
    ITEMS = "items"
    ORDERS = "orders_v2"
    STOCK = "stock_locations"
