# catalog_proxy/services/kv_store.py
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from catalog_proxy.core.exceptions import StoreError
from catalog_proxy.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)


def _expiry(ttl_seconds: Optional[int]) -> Optional[datetime]:
    if ttl_seconds is None:
        return None
    return datetime.now(timezone.utc) + timedelta(seconds=max(int(ttl_seconds), 1))


class KVStore:
    """
    Key-value store on top of a single SQL table.

    Values are JSON documents. Every put is one upsert committed in its own
    transaction, so readers see either the old or the new value of a key.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_json(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None when absent or expired."""
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(KVEntry.value).where(
                        KVEntry.key == key,
                        or_(KVEntry.expires_at.is_(None), KVEntry.expires_at > now)
                    )
                )
                raw = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"KV read failed for {key}: {str(e)}")
            raise StoreError(f"Failed to read {key}: {str(e)}") from e

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.error(f"Corrupt JSON stored under {key}, ignoring it")
            return None

    async def put_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        await self.put_many({key: value}, ttl_seconds=ttl_seconds)

    async def put_many(self, entries: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """Upsert several keys in one transaction, all with the same expiry."""
        if not entries:
            return
        expires_at = _expiry(ttl_seconds)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    for key, value in entries.items():
                        await session.merge(
                            KVEntry(
                                key=key,
                                value=json.dumps(value, default=str),
                                expires_at=expires_at,
                                updated_at=datetime.now(timezone.utc),
                            )
                        )
        except SQLAlchemyError as e:
            logger.error(f"KV write failed for {len(entries)} key(s): {str(e)}")
            raise StoreError(f"Failed to write {', '.join(list(entries)[:3])}: {str(e)}") from e

        logger.debug(f"Stored {len(entries)} key(s), expires_at={expires_at}")

    async def delete(self, key: str) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(KVEntry).where(KVEntry.key == key))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete {key}: {str(e)}") from e

    async def purge_expired(self) -> int:
        """Remove expired rows, returns how many were deleted"""
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(KVEntry).where(KVEntry.expires_at.is_not(None), KVEntry.expires_at <= now)
                    )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to purge expired keys: {str(e)}") from e
        return result.rowcount or 0

    async def ping(self) -> bool:
        """Connectivity check used by the health endpoint"""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"KV ping failed: {str(e)}")
            return False
