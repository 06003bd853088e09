"""
Admin endpoints for inventory automation, webhook diagnostics and the
store value report.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.config import get_settings
from merchant_app.dependencies import get_db, get_shop_domain, get_shopify_client
from merchant_app.services.compliance import InventoryAutomationService
from merchant_app.services.email_service import get_email_service
from merchant_app.services.session_resolver import SessionResolver
from merchant_app.services.shopify.client import ShopifyAdminClient
from merchant_app.services.store_value import calculate_and_save, recent_snapshots

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["automation"])

INVENTORY_WEBHOOK_TOPIC = "INVENTORY_LEVELS_UPDATE"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _run_draft_automation(db: AsyncSession, client: ShopifyAdminClient, message: Optional[str] = None):
    location_id = await client.get_primary_location_id()
    if not location_id:
        return JSONResponse(status_code=400, content={"error": "No location found"})

    result = await InventoryAutomationService(db, client).check_all_products(location_id)
    processed = result.get("items_processed") or 0
    return {
        "success": True,
        "result": result,
        "message": message or f"Draft automation completed. Processed {processed} items.",
        "timestamp": _timestamp(),
    }


@router.post("/automation/manual-draft")
async def manual_draft(
    db: AsyncSession = Depends(get_db),
    client: ShopifyAdminClient = Depends(get_shopify_client),
):
    """Run the inventory compliance scan now"""
    return await _run_draft_automation(db, client)


@router.post("/test-draft-automation")
async def test_draft_automation(
    db: AsyncSession = Depends(get_db),
    client: ShopifyAdminClient = Depends(get_shopify_client),
):
    return await _run_draft_automation(db, client)


@router.post("/test-inventory")
async def test_inventory(
    db: AsyncSession = Depends(get_db),
    client: ShopifyAdminClient = Depends(get_shopify_client),
):
    return await _run_draft_automation(db, client, "Inventory automation test completed successfully")


@router.post("/test-webhook")
async def test_webhook(client: ShopifyAdminClient = Depends(get_shopify_client)):
    webhooks = await client.list_webhook_subscriptions(first=10)
    inventory_webhook = next((w for w in webhooks if w.get("topic") == INVENTORY_WEBHOOK_TOPIC), None)
    return {
        "success": True,
        "webhooks": webhooks,
        "inventoryWebhook": inventory_webhook,
        "message": (
            "INVENTORY_LEVELS_UPDATE webhook is properly configured"
            if inventory_webhook
            else "INVENTORY_LEVELS_UPDATE webhook is NOT configured"
        ),
    }


@router.post("/webhook-status")
async def webhook_status(client: ShopifyAdminClient = Depends(get_shopify_client)):
    """Check that the inventory webhook is subscribed and points at this app"""
    webhooks = await client.list_webhook_subscriptions(first=20)
    inventory_webhook = next((w for w in webhooks if w.get("topic") == INVENTORY_WEBHOOK_TOPIC), None)
    correct_url = f"{(get_settings().APP_URL or '').rstrip('/')}/webhooks"

    if not inventory_webhook:
        message = "INVENTORY_LEVELS_UPDATE webhook is NOT configured - automation will not run"
    elif inventory_webhook.get("callbackUrl") != correct_url:
        message = f"Webhook URL mismatch! Expected: {correct_url}, Got: {inventory_webhook.get('callbackUrl')}"
    else:
        message = "INVENTORY_LEVELS_UPDATE webhook is properly configured"

    return {
        "success": True,
        "totalWebhooks": len(webhooks),
        "webhooks": webhooks,
        "inventoryWebhook": inventory_webhook,
        "inventoryWebhookActive": inventory_webhook is not None,
        "message": message,
        "timestamp": _timestamp(),
    }


@router.post("/inventory/calculate-and-save")
async def calculate_inventory_value(
    db: AsyncSession = Depends(get_db),
    client: ShopifyAdminClient = Depends(get_shopify_client),
):
    location_id = await client.get_primary_location_id()
    if not location_id:
        return JSONResponse(status_code=400, content={"error": "No location found"})

    logger.info("Starting inventory value calculation for %s", client.shop)
    result = await calculate_and_save(db, client, location_id, get_email_service())
    return {
        "success": True,
        "totalValue": result["value"],
        "emailed": result["emailed"],
        "message": "Inventory calculated and saved successfully",
        "timestamp": _timestamp(),
    }


@router.get("/analytics/store-value")
async def store_value_history(shop: str = Depends(get_shop_domain), db: AsyncSession = Depends(get_db)):
    """The last 30 saved store values for the shop, newest first"""
    rows = await recent_snapshots(db, shop)
    return {
        "count": len(rows),
        "values": [
            {
                "id": row.id,
                "value": row.value,
                "date": row.created_at.date().isoformat(),
                "createdAt": row.created_at.isoformat(),
            }
            for row in rows
        ],
    }


@router.get("/auth-health")
async def auth_health(shop: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    """Report whether an offline session exists for ``shop`` and whether it works"""
    shop = (shop or "").strip()
    if not shop:
        return JSONResponse(status_code=400, content={"ok": False, "error": "Missing ?shop=your-shop.myshopify.com"})

    session = await SessionResolver(db).resolve(shop)
    if session is None:
        return {
            "ok": True,
            "shop": shop,
            "offlineInfo": {"present": False},
            "graphqlTest": {"ok": False, "error": "Offline session not available"},
        }

    offline_info: Dict[str, Any] = {
        "present": True,
        "isOnline": session.is_online,
        "scope": session.scope,
        "expires": session.expires.isoformat() if session.expires else None,
        "tokenLength": len(session.access_token or ""),
    }
    try:
        data = await ShopifyAdminClient.from_session(session).get_shop()
        graphql_test: Dict[str, Any] = {"ok": True, "data": data}
    except Exception as exc:
        logger.warning("Auth health GraphQL check failed for %s: %s", shop, exc)
        graphql_test = {"ok": False, "error": str(exc)}

    return {"ok": True, "shop": shop, "offlineInfo": offline_info, "graphqlTest": graphql_test}


@router.get("/scheduler/status")
async def scheduler_status(request: Request):
    """Get scheduler and job worker status"""
    scheduler = getattr(request.app.state, "inventory_scheduler", None)
    worker = getattr(request.app.state, "job_worker", None)
    return {
        "scheduler": scheduler.status() if scheduler else {"status": "not_initialized", "jobs": []},
        "worker": await worker.status() if worker else {"running": False},
    }
