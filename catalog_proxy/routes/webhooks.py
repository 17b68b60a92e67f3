import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from catalog_proxy.dependencies import get_webhook_processor
from catalog_proxy.schemas.webhook import MercadoLibreNotification
from catalog_proxy.services.webhook_processor import WebhookProcessor

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

logger = logging.getLogger(__name__)


@router.post("/mercadolibre")
async def mercadolibre_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """Acknowledge the notification right away and process it afterwards"""
    try:
        payload = await request.json()
        notification = MercadoLibreNotification.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Rejected webhook payload: {str(e)}")
        return JSONResponse({"status": "ERROR", "error": "Invalid notification payload"}, status_code=400)

    logger.info(
        f"Webhook received: topic={notification.topic} user_id={notification.user_id} "
        f"resource={notification.resource}"
    )
    background_tasks.add_task(processor.process, notification)
    return {"status": "received", "id": notification.notification_id}
