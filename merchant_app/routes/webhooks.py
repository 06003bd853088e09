import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.exceptions import SessionNotFoundError
from merchant_app.core.security import verify_shopify_webhook
from merchant_app.dependencies import get_db
from merchant_app.services.compliance import InventoryAutomationService
from merchant_app.services.session_resolver import SessionResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

# Shopify retries deliveries; the last 100 ids are remembered and skipped
RECENT_WEBHOOK_LIMIT = 100
recent_webhook_ids: Deque[str] = deque(maxlen=RECENT_WEBHOOK_LIMIT)


async def _product_changed(service: InventoryAutomationService, payload: Dict[str, Any]) -> Dict[str, Any]:
    return await service.ensure_product_compliance(product_id=payload.get("id"))


async def _inventory_level_changed(service: InventoryAutomationService, payload: Dict[str, Any]) -> Dict[str, Any]:
    return await service.ensure_product_compliance(inventory_item_id=payload.get("inventory_item_id"))


WEBHOOK_HANDLERS: Dict[str, Callable[[InventoryAutomationService, Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
    "products/create": _product_changed,
    "products/update": _product_changed,
    "inventory_levels/update": _inventory_level_changed,
}


def normalize_topic(topic: str) -> str:
    """``PRODUCTS_UPDATE`` and ``products/update`` both map to ``products/update``"""
    topic = (topic or "").strip().lower()
    for known in WEBHOOK_HANDLERS:
        if topic == known or topic == known.replace("/", "_"):
            return known
    return topic


@router.post("/webhooks")
async def shopify_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: None = Depends(verify_shopify_webhook),
):
    """Endpoint to receive Shopify product and inventory webhooks"""
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    webhook_id = request.headers.get("X-Shopify-Webhook-Id") or payload.get("id")
    if webhook_id is not None:
        webhook_id = str(webhook_id)
        if webhook_id in recent_webhook_ids:
            logger.info("Duplicate webhook %s ignored", webhook_id)
            return PlainTextResponse("OK")
        recent_webhook_ids.append(webhook_id)

    topic = normalize_topic(request.headers.get("X-Shopify-Topic", ""))
    shop = request.headers.get("X-Shopify-Shop-Domain", "").strip()
    if not topic or not shop:
        logger.error("Invalid webhook payload: topic=%r shop=%r", topic, shop)
        return PlainTextResponse("Bad Request", status_code=400)

    handler = WEBHOOK_HANDLERS.get(topic)
    if handler is None:
        return PlainTextResponse("OK")

    logger.info("Webhook received: %s from %s", topic, shop)
    try:
        client = await SessionResolver(db).client_for(shop)
    except SessionNotFoundError as exc:
        logger.warning("Webhook %s for %s skipped: %s", topic, shop, exc)
        return PlainTextResponse("OK")

    result = await handler(InventoryAutomationService(db, client), payload)
    logger.info("Webhook %s result: %s", topic, result.get("status"))
    return PlainTextResponse("OK")
