"""
Public wishlist endpoint used by the customer account extension.

Every response, including errors, carries CORS headers for the extension
origin only.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.config import get_settings
from merchant_app.dependencies import get_db
from merchant_app.schemas.wishlist import WishlistAction
from merchant_app.services.wishlist_service import WishlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["wishlist"])

ALLOWED_HEADERS = "Content-Type, Access-Control-Allow-Headers, Authorization, access-control-allow-origin"


def cors_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": get_settings().WISHLIST_CORS_ORIGIN,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    }


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=cors_headers())


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return _json({"error": message}, status_code=status_code)


@router.options("/wishlist")
async def wishlist_preflight():
    return Response(status_code=204, headers=cors_headers())


@router.get("/wishlist")
async def get_wishlist(id: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """Get (or create) the customer's wishlist"""
    customer_id = (id or "").strip()
    if not customer_id:
        return _error("No id provided")

    service = WishlistService(db)
    wishlist = await service.get_or_create(customer_id)
    return _json(await service.to_response(wishlist))


@router.post("/wishlist")
async def update_wishlist(request: Request, db: AsyncSession = Depends(get_db)):
    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON body")
    if not isinstance(body, dict):
        return _error("Invalid JSON body")

    try:
        action = WishlistAction.model_validate(body)
    except PydanticValidationError:
        return _error("Invalid JSON body")
    if not action.id:
        return _error("No id provided")
    if not action.intent:
        return _error("No intent provided")

    service = WishlistService(db)
    wishlist = await service.get(action.id)
    if wishlist is None:
        return _error("No Wishlist found on account.", status_code=404)

    if action.intent == "add_keyword":
        if not (action.keyword or "").strip():
            return _error("No keyword provided")
        wishlist = await service.add_keyword(wishlist, action.keyword)
    elif action.intent == "remove_keyword":
        if not (action.keyword or "").strip():
            return _error("No keyword provided")
        wishlist = await service.remove_keyword(wishlist, action.keyword)
    elif action.intent == "set_email":
        if not (action.email or "").strip():
            return _error("No email provided")
        wishlist = await service.set_email(wishlist, action.email)
    elif action.intent == "unsubscribe":
        wishlist = await service.set_email(wishlist, None)
    else:
        return _error("Unknown intent...")

    logger.info("Wishlist %s: %s", action.id, action.intent)
    return _json(await service.to_response(wishlist))
