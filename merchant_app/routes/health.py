import logging
import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.config import get_settings
from merchant_app.dependencies import get_db
from merchant_app.services.session_resolver import SessionResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"ok": True, "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/session-purge")
async def session_purge(request: Request, db: AsyncSession = Depends(get_db)):
    """Delete every stored session for a shop, guarded by ADMIN_MAINTENANCE_SECRET"""
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    shop = str(body.get("shop") or "").strip()
    secret = str(body.get("secret") or "").strip()
    expected = get_settings().ADMIN_MAINTENANCE_SECRET

    if not expected:
        return JSONResponse(status_code=500, content={"ok": False, "error": "ADMIN_MAINTENANCE_SECRET not set on server"})
    if not shop:
        return JSONResponse(status_code=400, content={"ok": False, "error": "Missing 'shop' (e.g., my-shop.myshopify.com)"})
    if not secret or not secrets.compare_digest(secret.encode("utf8"), expected.encode("utf8")):
        return JSONResponse(status_code=403, content={"ok": False, "error": "Forbidden"})

    deleted = await SessionResolver(db).purge(shop)
    logger.warning("Purged %s session(s) for %s via maintenance endpoint", deleted, shop)
    return {"ok": True, "shop": shop, "deleted": deleted}
