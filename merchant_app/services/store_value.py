"""Stock valuation at a location (sum of price x available)."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.models.store_value import StoreValueSnapshot
from merchant_app.services.email_service import EmailService
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)


async def calculate_store_value(client: ShopifyAdminClient, location_id: str) -> float:
    total = 0.0
    async for item in client.iter_inventory_items(location_id):
        price = item.get("price") or 0
        available = item.get("available") or 0
        if price > 0 and available > 0:
            total += price * available
    return round(total, 2)


async def calculate_and_save(
    db: AsyncSession,
    client: ShopifyAdminClient,
    location_id: str,
    email_service: Optional[EmailService] = None,
) -> Dict[str, Any]:
    value = await calculate_store_value(client, location_id)
    snapshot = StoreValueSnapshot(shop=client.shop, location_id=location_id, value=value)
    db.add(snapshot)
    await db.commit()
    logger.info("Store value for %s at %s: %.2f", client.shop, location_id, value)

    emailed = False
    if email_service is not None:
        emailed = await email_service.send_store_value_report(
            shop=client.shop,
            location_id=location_id,
            value=value,
            calculated_at=snapshot.created_at.isoformat(),
        )
    return {"value": value, "snapshot_id": snapshot.id, "emailed": emailed}


async def recent_snapshots(db: AsyncSession, shop: str, limit: int = 30) -> List[StoreValueSnapshot]:
    """Latest snapshots for ``shop``, newest first."""
    stmt = (
        select(StoreValueSnapshot)
        .where(StoreValueSnapshot.shop == shop)
        .order_by(StoreValueSnapshot.created_at.desc(), StoreValueSnapshot.id.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
