# catalog_proxy/database.py

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from catalog_proxy.core.config import get_settings

Base = declarative_base()


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine, sharing one connection for in-memory SQLite."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url.rstrip("/").endswith(("sqlite+aiosqlite:", ":memory:")):
            kwargs["poolclass"] = StaticPool
        return create_async_engine(database_url, echo=False, future=True, **kwargs)

    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


settings = get_settings()

engine = build_engine(settings.async_database_url)
async_session = build_sessionmaker(engine)


async def create_tables(bind: AsyncEngine = None):
    """Create all tables registered on Base (the KV table)"""
    # Import models so they register with Base
    from catalog_proxy import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

