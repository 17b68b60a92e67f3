# tests/unit/services/test_webhook_processor.py
import pytest
from unittest.mock import AsyncMock, MagicMock

from catalog_proxy.core.enums import ListingStatus
from catalog_proxy.core.exceptions import TransientFetchError
from catalog_proxy.schemas.webhook import MercadoLibreNotification
from catalog_proxy.services.webhook_processor import WebhookProcessor, webhook_key
from tests.fixtures.catalog_fixtures import raw_item


def notification(topic="items", resource="/items/MLU1", user_id=123456, **kwargs):
    payload = {"_id": "abc-123", "topic": topic, "resource": resource, "user_id": user_id, "attempts": 1}
    payload.update(kwargs)
    return MercadoLibreNotification.model_validate(payload)


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.get_item = AsyncMock(return_value=raw_item("MLU1", status="paused"))
    client.get_order = AsyncMock(return_value={
        "id": 2000001,
        "status": "paid",
        "total_amount": 1290,
        "buyer": {"nickname": "LECTOR"},
        "date_created": "2026-10-18T10:00:00-03:00",
    })
    return client


@pytest.fixture
def processor(settings, mock_kv, catalog_store, mock_client):
    return WebhookProcessor(settings, mock_kv, catalog_store, mock_client)


def test_notification_parsing():
    parsed = notification(resource="/items/MLU1/")

    assert parsed.notification_id == "abc-123"
    assert parsed.resource_id == "MLU1"
    assert parsed.belongs_to("123456")
    assert webhook_key(parsed) == "webhook:items:abc-123"


@pytest.mark.asyncio
async def test_item_notification_refreshes_detail(processor, catalog_store, mock_kv, mock_client):
    handled = await processor.process(notification())

    assert handled is True
    mock_client.get_item.assert_awaited_once_with("MLU1")
    detail = await catalog_store.get_item_detail("MLU1")
    assert detail.status == ListingStatus.PAUSED
    record = await mock_kv.get_json("webhook:items:abc-123")
    assert record["processed"] is True


@pytest.mark.asyncio
async def test_order_notification_records_summary(processor, mock_kv):
    handled = await processor.process(notification(topic="orders_v2", resource="/orders/2000001"))

    assert handled is True
    order = await mock_kv.get_json("order:2000001")
    assert order["status"] == "paid"
    assert order["buyer"] == "LECTOR"


@pytest.mark.asyncio
async def test_stock_notification(processor, mock_kv, mock_client):
    resource = "/user-products/MLUU123/stock"

    assert await processor.process(notification(topic="stock_locations", resource=resource)) is True
    assert (await mock_kv.get_json(f"stock:{resource}"))["resource"] == resource
    mock_client.get_item.assert_not_awaited()


@pytest.mark.asyncio
async def test_other_seller_is_ignored(processor, mock_kv, mock_client):
    assert await processor.process(notification(user_id=999)) is False

    mock_client.get_item.assert_not_awaited()
    assert mock_kv.data == {}


@pytest.mark.asyncio
async def test_unknown_topic_is_recorded(processor, mock_kv):
    assert await processor.process(notification(topic="questions", resource="/questions/1")) is True
    assert (await mock_kv.get_json("webhook:questions:abc-123"))["processed"] is True


@pytest.mark.asyncio
async def test_remote_failure_leaves_record_unprocessed(processor, mock_kv, mock_client):
    mock_client.get_item.side_effect = TransientFetchError("HTTP 500", status_code=500)

    assert await processor.process(notification()) is False
    assert (await mock_kv.get_json("webhook:items:abc-123"))["processed"] is False
