"""
Process-wide token cache for the MercadoLibre API.

One TokenCache lives on the application state and is handed to every
MercadoLibreAuthManager. The access token is only kept until its expiry,
which already has the safety margin subtracted.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessCredential:
    token: str
    expires_at: datetime

    @classmethod
    def from_lifetime(cls, token: str, lifetime_seconds: int) -> "AccessCredential":
        return cls(token=token, expires_at=datetime.now(timezone.utc) + timedelta(seconds=lifetime_seconds))

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return bool(self.token) and now < self.expires_at

    def remaining_seconds(self) -> int:
        return max(0, int((self.expires_at - datetime.now(timezone.utc)).total_seconds()))


class TokenCache:
    """Access credential plus the most recent (rotated) refresh token"""

    def __init__(self):
        self._credential: Optional[AccessCredential] = None
        self.refresh_token: Optional[str] = None
        # Serializes refreshes so concurrent callers share one token request
        self.lock = asyncio.Lock()

    def get(self) -> Optional[AccessCredential]:
        credential = self._credential
        if credential and credential.is_valid():
            return credential
        if credential:
            logger.debug("Access token expired, dropping it from memory")
            self._credential = None
        return None

    def save(self, credential: AccessCredential):
        self._credential = credential
        logger.info(f"Saved access token to memory (expires: {credential.expires_at.isoformat()})")

    def clear(self):
        self._credential = None
        logger.info("Cleared access token from memory")
