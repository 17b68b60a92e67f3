"""
Admin gate for the sync endpoints
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from catalog_proxy.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Bearer secret check against SYNC_ADMIN_SECRET.

    With no secret configured the gate is open in development and refuses
    every request in production.
    """
    expected = settings.SYNC_ADMIN_SECRET

    if not expected:
        if settings.ENVIRONMENT == "production":
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Admin secret not configured"
            )
        logger.debug("SYNC_ADMIN_SECRET not set, admin gate open")
        return

    provided = credentials.credentials if credentials else ""
    if not secrets.compare_digest(provided.encode("utf8"), expected.encode("utf8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )
