from typing import List, Optional


class CatalogProxyError(Exception):
    """Base exception for all service-related errors."""
    pass


class ConfigurationError(CatalogProxyError):
    """Raised when required settings are missing."""

    def __init__(self, missing: List[str], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(message or f"Missing required configuration: {', '.join(self.missing)}")


class AuthError(CatalogProxyError):
    """Raised when the remote token endpoint or API rejects our credentials."""
    pass


class TransientFetchError(CatalogProxyError):
    """Raised when a single page or batch request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimitError(TransientFetchError):
    """Raised when HTTP 429 persists after the bounded backoff."""
    pass


class StoreError(CatalogProxyError):
    """Raised when the key-value store cannot be read or written."""
    pass


class SyncCooldownError(CatalogProxyError):
    """Raised when a sync is requested before the minimum interval elapsed."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"A sync ran recently, try again in {retry_after}s")
