"""
Core module exports.
"""
from .enums import (
    ListingStatus,
    SyncStatus,
    PaginationStrategy,
    WebhookTopic
)

from .exceptions import (
    CatalogProxyError,
    ConfigurationError,
    AuthError,
    TransientFetchError,
    RateLimitError,
    StoreError,
    SyncCooldownError
)
