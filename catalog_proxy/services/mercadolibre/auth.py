"""
MercadoLibre OAuth: exchanges the long-lived refresh token for a short-lived
access token and caches it in memory and in the key-value store.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

import httpx

from catalog_proxy.core.config import TOKEN_SETTINGS, Settings
from catalog_proxy.core.exceptions import AuthError, ConfigurationError, StoreError
from catalog_proxy.services.kv_store import KVStore
from catalog_proxy.services.mercadolibre.token_manager import AccessCredential, TokenCache

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "meli_access_token"
REFRESH_TOKEN_KEY = "meli_refresh_token"


class MercadoLibreAuthManager:
    """
    Token provider for the MercadoLibre API.

    Lookup order: memory cache, persisted token in the KV store, then a
    refresh_token grant against /oauth/token.
    """

    def __init__(self, settings: Settings, cache: TokenCache, kv: Optional[KVStore] = None):
        self.settings = settings
        self.cache = cache
        self.kv = kv
        self.token_url = f"{settings.MELI_API_BASE_URL.rstrip('/')}/oauth/token"

    async def get_access_token(self) -> str:
        """
        Get a valid access token, refreshing if necessary

        Raises:
            ConfigurationError: app id, client secret or refresh token missing
            AuthError: the token endpoint rejected the refresh or was unreachable
        """
        missing = self.settings.missing(TOKEN_SETTINGS)
        if missing:
            raise ConfigurationError(missing)

        credential = self.cache.get()
        if credential:
            logger.debug("Using cached access token from memory")
            return credential.token

        async with self.cache.lock:
            # Another caller may have refreshed while we waited
            credential = self.cache.get() or await self._load_persisted_token()
            if credential:
                self.cache.save(credential)
                return credential.token

            logger.info("No valid access token cached, refreshing...")
            credential = await self._refresh()
            self.cache.save(credential)
            await self._persist_access_token(credential)
            return credential.token

    async def invalidate(self):
        """Forget the current access token (e.g. after a 401)"""
        self.cache.clear()
        if self.kv:
            try:
                await self.kv.delete(ACCESS_TOKEN_KEY)
            except StoreError as e:
                logger.warning(f"Could not delete persisted access token: {str(e)}")

    async def _refresh(self) -> AccessCredential:
        configured = self.settings.MELI_REFRESH_TOKEN
        current = await self._current_refresh_token()

        try:
            token_data = await self._request_token(current)
        except AuthError as e:
            # A stale rotated token is retried with the configured one
            if current == configured or "invalid_grant" not in str(e):
                raise
            logger.warning("Stored refresh token rejected, retrying with configured refresh token")
            current = configured
            self.cache.refresh_token = configured
            token_data = await self._request_token(configured)

        access_token = token_data.get("access_token")
        if not access_token:
            raise AuthError("Token endpoint returned an empty access_token")

        expires_in = int(token_data.get("expires_in") or 21600)
        lifetime = max(expires_in - self.settings.token_safety_margin, 1)

        new_refresh = token_data.get("refresh_token")
        if new_refresh and new_refresh != current:
            await self._persist_refresh_token(new_refresh)

        logger.info(f"Successfully refreshed access token (valid for {lifetime}s)")
        return AccessCredential.from_lifetime(access_token, lifetime)

    async def _request_token(self, refresh_token: str) -> Dict:
        refresh_data = {
            "grant_type": "refresh_token",
            "client_id": self.settings.MELI_APP_ID,
            "client_secret": self.settings.MELI_CLIENT_SECRET,
            "refresh_token": refresh_token,
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        try:
            async with httpx.AsyncClient(timeout=self.settings.MELI_REQUEST_TIMEOUT) as client:
                response = await client.post(self.token_url, data=refresh_data, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Network error refreshing token: {str(e)}")
            raise AuthError(f"Network error refreshing access token: {str(e)}") from e

        if response.status_code != 200:
            error_text = response.text
            logger.error(f"Token refresh failed ({response.status_code}): {error_text}")
            raise AuthError(f"Failed to refresh access token: {response.status_code} - {error_text}")

        try:
            return response.json()
        except ValueError as e:
            raise AuthError("Token endpoint returned a non-JSON body") from e

    async def _current_refresh_token(self) -> str:
        if self.cache.refresh_token:
            return self.cache.refresh_token
        if self.kv:
            try:
                stored = await self.kv.get_json(REFRESH_TOKEN_KEY)
            except StoreError as e:
                logger.warning(f"Could not read stored refresh token: {str(e)}")
                stored = None
            if stored:
                self.cache.refresh_token = stored
                return stored
        return self.settings.MELI_REFRESH_TOKEN

    async def _load_persisted_token(self) -> Optional[AccessCredential]:
        if not self.kv:
            return None
        try:
            stored = await self.kv.get_json(ACCESS_TOKEN_KEY)
        except StoreError as e:
            logger.warning(f"Could not read persisted access token: {str(e)}")
            return None
        if not isinstance(stored, dict):
            return None
        try:
            credential = AccessCredential(
                token=stored.get("access_token", ""),
                expires_at=datetime.fromisoformat(stored.get("expires_at", "")),
            )
        except (TypeError, ValueError):
            logger.error(f"Invalid persisted token record: {stored}")
            return None
        if credential.is_valid():
            logger.debug("Using persisted access token from store")
            return credential
        return None

    async def _persist_access_token(self, credential: AccessCredential):
        if not self.kv:
            return
        try:
            await self.kv.put_json(
                ACCESS_TOKEN_KEY,
                {"access_token": credential.token, "expires_at": credential.expires_at.isoformat()},
                ttl_seconds=credential.remaining_seconds(),
            )
        except StoreError as e:
            logger.warning(f"Could not persist access token: {str(e)}")

    async def _persist_refresh_token(self, refresh_token: str):
        self.cache.refresh_token = refresh_token
        if not self.kv:
            return
        try:
            await self.kv.put_json(REFRESH_TOKEN_KEY, refresh_token)
            logger.info("Stored rotated refresh token")
        except StoreError as e:
            logger.warning(f"Could not persist rotated refresh token: {str(e)}")
