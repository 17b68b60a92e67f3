from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from catalog_proxy.database import Base


def utc_now():
    return datetime.now(timezone.utc)


class KVEntry(Base):
    """One cache key. Rows past expires_at are treated as absent."""
    __tablename__ = "kv_entries"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)          # JSON document
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<KVEntry key={self.key!r} expires_at={self.expires_at}>"
