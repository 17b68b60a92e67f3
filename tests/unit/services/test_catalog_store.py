# tests/unit/services/test_catalog_store.py
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from catalog_proxy.core.enums import ListingStatus
from catalog_proxy.schemas.catalog import CatalogSnapshot
from catalog_proxy.services.catalog_store import (
    ACTIVE_VIEW_KEY,
    LAST_SUCCESS_KEY,
    SNAPSHOT_KEY,
    CatalogStore,
    item_key,
)
from tests.fixtures.catalog_fixtures import make_listing


def sample_snapshot():
    items = [
        make_listing("MLU1", price=Decimal("1290.50"), attributes={"ISBN": "9789974123456"}),
        make_listing("MLU2", status=ListingStatus.PAUSED),
        make_listing("MLU3", status=ListingStatus.CLOSED, price=None),
    ]
    return CatalogSnapshot(
        items=items, total=3, last_sync=datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc), duration_seconds=42
    )


@pytest.mark.asyncio
async def test_snapshot_round_trip(catalog_store):
    snapshot = sample_snapshot()

    await catalog_store.save_snapshot(snapshot)
    loaded = await catalog_store.get_snapshot()

    assert loaded == snapshot
    assert loaded.items[0].price == Decimal("1290.50")


@pytest.mark.asyncio
async def test_save_snapshot_writes_derived_views(catalog_store, mock_kv, settings):
    await catalog_store.save_snapshot(sample_snapshot())

    active = await catalog_store.get_active_view()
    assert [entry["id"] for entry in active] == ["MLU1"]

    detail = await catalog_store.get_item_detail("MLU2")
    assert detail.status == ListingStatus.PAUSED
    assert mock_kv.ttl_of(item_key("MLU2")) == settings.ITEM_DETAIL_TTL_SECONDS
    assert mock_kv.ttl_of(SNAPSHOT_KEY) is None

    assert await catalog_store.get_last_success() == datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_snapshot_ttl_from_settings(mock_kv, make_settings):
    store = CatalogStore(mock_kv, make_settings(SNAPSHOT_TTL_SECONDS=86400, ACTIVE_VIEW_TTL_SECONDS=3600))

    await store.save_snapshot(sample_snapshot())

    assert mock_kv.ttl_of(SNAPSHOT_KEY) == 86400
    assert mock_kv.ttl_of(ACTIVE_VIEW_KEY) == 3600
    assert mock_kv.ttl_of(LAST_SUCCESS_KEY) is None


@pytest.mark.asyncio
async def test_missing_and_unreadable_values(catalog_store, mock_kv):
    assert await catalog_store.get_snapshot() is None
    assert await catalog_store.get_last_started() is None

    await mock_kv.put_json(SNAPSHOT_KEY, {"items": "nope"})
    await mock_kv.put_json(ACTIVE_VIEW_KEY, {"not": "a list"})
    await mock_kv.put_json(item_key("MLU9"), {"title": "no id"})

    assert await catalog_store.get_snapshot() is None
    assert await catalog_store.get_active_view() is None
    assert await catalog_store.get_item_detail("MLU9") is None


@pytest.mark.asyncio
async def test_mark_sync_started(catalog_store):
    started = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)

    await catalog_store.mark_sync_started(started)

    assert await catalog_store.get_last_started() == started


@pytest.mark.asyncio
async def test_snapshot_against_sqlite(kv_store, settings):
    """Same round trip through the SQL-backed store"""
    store = CatalogStore(kv_store, settings)
    snapshot = sample_snapshot()

    await store.save_snapshot(snapshot)

    assert await store.get_snapshot() == snapshot
    assert (await store.get_item_detail("MLU1")).attribute("isbn") == "9789974123456"
