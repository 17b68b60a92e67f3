import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from catalog_proxy.core.config import Settings
from catalog_proxy.core.exceptions import AuthError, RateLimitError, TransientFetchError
from catalog_proxy.services.mercadolibre.auth import MercadoLibreAuthManager

logger = logging.getLogger(__name__)

# Fields requested from the multi-get endpoint
ITEM_ATTRIBUTES = (
    "id,title,price,currency_id,status,condition,available_quantity,"
    "thumbnail,secure_thumbnail,pictures,permalink,shipping,attributes"
)


class MercadoLibreClient:
    """
    Async client for the MercadoLibre REST API.

    Every call goes through _make_request, which adds the bearer token, retries
    HTTP 429 with a bounded exponential backoff, refreshes the token once on a
    401 and maps failures onto the sync error taxonomy:

        401/403         -> AuthError (aborts a sync)
        429 exhausted   -> RateLimitError
        anything else   -> TransientFetchError (skipped by the caller)
    """

    def __init__(self, settings: Settings, auth_manager: MercadoLibreAuthManager):
        self.settings = settings
        self.auth_manager = auth_manager
        self.BASE_URL = settings.MELI_API_BASE_URL.rstrip("/")
        self.timeout = settings.MELI_REQUEST_TIMEOUT
        self.max_retries = max(1, settings.MELI_MAX_RETRIES)
        self.backoff_base = settings.MELI_BACKOFF_BASE_SECONDS

    async def _get_headers(self) -> Dict[str, str]:
        """Get headers with auth token for API requests"""
        token = await self.auth_manager.get_access_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    async def _make_request(self, method: str, endpoint: str, params: Optional[Dict] = None) -> Any:
        """
        Make a request to the MercadoLibre API

        Args:
            method: HTTP method
            endpoint: API path (without base URL)
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            AuthError, RateLimitError, TransientFetchError
        """
        url = f"{self.BASE_URL}/{endpoint.lstrip('/')}"
        delay = self.backoff_base
        attempt = 0
        token_refreshed = False

        while True:
            attempt += 1
            headers = await self._get_headers()
            logger.debug(f"{method} {url} params={params} (attempt {attempt})")

            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method=method, url=url, headers=headers, params=params)
            except httpx.RequestError as e:
                logger.error(f"Network error calling {endpoint}: {str(e)}")
                raise TransientFetchError(f"Network error calling {endpoint}: {str(e)}") from e

            if response.status_code == 429:
                if attempt >= self.max_retries:
                    raise RateLimitError(
                        f"Rate limited on {endpoint} after {attempt} attempts", status_code=429
                    )
                logger.warning(f"Rate limited on {endpoint}, retrying in {delay:.1f}s ({attempt}/{self.max_retries})")
                await asyncio.sleep(delay)
                delay *= 2
                continue

            if response.status_code == 401 and not token_refreshed:
                logger.warning(f"401 from {endpoint}, refreshing access token once")
                await self.auth_manager.invalidate()
                token_refreshed = True
                continue

            if response.status_code in (401, 403):
                raise AuthError(f"MercadoLibre rejected credentials on {endpoint}: {response.status_code}")

            if response.status_code not in (200, 206):
                logger.error(f"MercadoLibre API error {response.status_code} on {endpoint}: {response.text[:500]}")
                raise TransientFetchError(
                    f"HTTP {response.status_code} from {endpoint}", status_code=response.status_code
                )

            try:
                return response.json()
            except ValueError as e:
                raise TransientFetchError(f"Invalid JSON from {endpoint}") from e

    async def search_items(
        self,
        seller_id: str,
        limit: int,
        offset: Optional[int] = None,
        status: Optional[str] = None,
        scroll_id: Optional[str] = None,
        scan: bool = False,
    ) -> Dict:
        """
        One page of the seller's listing ids.

        Offset mode sends offset/limit; scan mode sends search_type=scan and
        the scroll_id returned by the previous page.
        """
        params: Dict[str, Any] = {"limit": limit}
        if scan:
            params["search_type"] = "scan"
            if scroll_id:
                params["scroll_id"] = scroll_id
        elif offset is not None:
            params["offset"] = offset
        if status:
            params["status"] = status

        return await self._make_request("GET", f"/users/{seller_id}/items/search", params=params)

    async def get_items(self, item_ids: Sequence[str]) -> List[Dict]:
        """Multi-get: one entry per id, each shaped {"code": 200, "body": {...}}"""
        params = {"ids": ",".join(item_ids), "attributes": ITEM_ATTRIBUTES}
        data = await self._make_request("GET", "/items", params=params)
        if not isinstance(data, list):
            raise TransientFetchError("Multi-get returned an unexpected payload")
        return data

    async def get_item(self, item_id: str) -> Dict:
        return await self._make_request("GET", f"/items/{item_id}")

    async def get_order(self, order_id: str) -> Dict:
        return await self._make_request("GET", f"/orders/{order_id}")
