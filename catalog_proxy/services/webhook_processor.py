# catalog_proxy/services/webhook_processor.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from catalog_proxy.core.config import Settings
from catalog_proxy.core.enums import WebhookTopic
from catalog_proxy.core.exceptions import CatalogProxyError
from catalog_proxy.schemas.webhook import MercadoLibreNotification
from catalog_proxy.services.catalog_store import CatalogStore
from catalog_proxy.services.kv_store import KVStore
from catalog_proxy.services.mercadolibre.client import MercadoLibreClient
from catalog_proxy.services.mercadolibre.normalizer import normalize_item

logger = logging.getLogger(__name__)


def webhook_key(notification: MercadoLibreNotification) -> str:
    return f"webhook:{notification.topic}:{notification.notification_id or notification.resource_id}"


class WebhookProcessor:
    """
    Best-effort handling of MercadoLibre notifications.

    Runs after the HTTP response has been sent; failures are logged and the
    notification record stays unprocessed.
    """

    def __init__(self, settings: Settings, kv: KVStore, store: CatalogStore, client: MercadoLibreClient):
        self.settings = settings
        self.kv = kv
        self.store = store
        self.client = client

    async def process(self, notification: MercadoLibreNotification) -> bool:
        """Returns True when the notification was handled."""
        if not notification.belongs_to(self.settings.MELI_SELLER_ID):
            logger.info(f"Ignoring notification for another seller: {notification.user_id}")
            return False

        key = webhook_key(notification)
        record: Dict[str, Any] = {
            "topic": notification.topic,
            "resource": notification.resource,
            "received_at": datetime.now(timezone.utc).isoformat(),
            "processed": False,
        }

        try:
            await self.kv.put_json(key, record, ttl_seconds=self.settings.WEBHOOK_TTL_SECONDS)

            if notification.topic == WebhookTopic.ITEMS.value:
                await self._handle_item(notification.resource_id)
            elif notification.topic == WebhookTopic.ORDERS.value:
                await self._handle_order(notification.resource_id)
            elif notification.topic == WebhookTopic.STOCK.value:
                await self._handle_stock(notification.resource)
            else:
                logger.info(f"Topic not handled: {notification.topic}")

            record["processed"] = True
            record["processed_at"] = datetime.now(timezone.utc).isoformat()
            await self.kv.put_json(key, record, ttl_seconds=self.settings.WEBHOOK_TTL_SECONDS)
        except CatalogProxyError as e:
            logger.error(f"Error processing webhook {key}: {str(e)}")
            return False

        logger.info(f"Webhook processed: {key}")
        return True

    async def _handle_item(self, item_id: str):
        raw = await self.client.get_item(item_id)
        detail = normalize_item(raw)
        if not detail.id:
            logger.warning(f"Item notification {item_id} returned no id, skipping")
            return
        await self.store.save_item_detail(detail)
        logger.info(f"Item refreshed: {detail.id} ({detail.status.value})")

    async def _handle_order(self, order_id: str):
        order = await self.client.get_order(order_id)
        if not isinstance(order, dict):
            order = {}
        buyer = order.get("buyer") if isinstance(order.get("buyer"), dict) else {}
        await self.kv.put_json(
            f"order:{order_id}",
            {
                "id": order.get("id"),
                "status": order.get("status"),
                "total_amount": order.get("total_amount"),
                "buyer": buyer.get("nickname"),
                "created_at": order.get("date_created"),
                "paid_at": order.get("date_closed"),
            },
            ttl_seconds=self.settings.ORDER_TTL_SECONDS,
        )
        logger.info(f"Order recorded: {order_id}")

    async def _handle_stock(self, resource: str):
        await self.kv.put_json(
            f"stock:{resource}",
            {"resource": resource, "changed_at": datetime.now(timezone.utc).isoformat()},
            ttl_seconds=self.settings.STOCK_TTL_SECONDS,
        )
        logger.info(f"Stock change recorded: {resource}")
