"""
Inventory-driven product status automation.

A product with no stock is moved to DRAFT so it disappears from the
storefront, and moved back to ACTIVE once it is restocked. Products on the
configured bypass list always stay ACTIVE. Every flip is recorded as an
AUTOMATION notification, and a DRAFT -> ACTIVE flip queues a restock email
for wishlist subscribers.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.config import Settings, get_settings
from merchant_app.core.enums import JobType, NotificationType, ProductStatus
from merchant_app.core.utils import to_gid, to_product_gid
from merchant_app.services import job_queue
from merchant_app.services.notification_service import NotificationService
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)


def evaluate_status(current_status: Optional[str], total_inventory: int, bypassed: bool = False) -> Optional[str]:
    """
    Return the status the product should move to, or None when it is
    already where it belongs. ARCHIVED products are never touched.
    """
    if current_status == ProductStatus.ARCHIVED.value:
        return None
    desired = ProductStatus.ACTIVE.value if (total_inventory or 0) > 0 or bypassed else ProductStatus.DRAFT.value
    if desired == current_status:
        return None
    return desired


def is_bypassed(product_id: str, bypass_ids: Iterable[str]) -> bool:
    bypass_ids = set(bypass_ids)
    if not bypass_ids:
        return False
    gid = to_product_gid(product_id)
    numeric = gid.rsplit("/", 1)[-1] if gid else None
    return bool({product_id, gid, numeric} & bypass_ids)


def is_raw_card(product: Dict[str, Any]) -> bool:
    for variant in ((product.get("variants") or {}).get("nodes") or []):
        for option in variant.get("selectedOptions") or []:
            if option.get("name") == "Condition":
                return True
    return False


class InventoryAutomationService:
    # shop -> new arrivals collection id, filled on first lookup by handle
    _collection_cache: Dict[str, str] = {}

    def __init__(
        self,
        db: AsyncSession,
        client: ShopifyAdminClient,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.client = client
        self.shop = client.shop
        self.settings = settings or get_settings()
        self.notifications = NotificationService(db)

    @property
    def bypass_ids(self) -> Set[str]:
        return self.settings.bypass_product_ids

    # ------------------------------------------------------------------
    # Full scan
    # ------------------------------------------------------------------
    async def check_all_products(self, location_id: str) -> Dict[str, Any]:
        """
        Walk every inventory item at ``location_id`` and bring each product's
        status in line with its stock.

        Stock is the product's ``totalInventory`` across all locations, the
        same measure ``ensure_product_compliance`` uses, so a product stocked
        only elsewhere is not drafted. The per-location sum is used only when
        Shopify does not report a total.

        A failure on one product is logged and the scan moves on.
        """
        totals: "OrderedDict[str, int]" = OrderedDict()
        statuses: Dict[str, Optional[str]] = {}
        shop_totals: Dict[str, int] = {}
        items_processed = 0

        async for item in self.client.iter_inventory_items(location_id):
            items_processed += 1
            product_id = item.get("product_id")
            if not product_id:
                continue
            totals[product_id] = totals.get(product_id, 0) + max(item.get("available") or 0, 0)
            statuses[product_id] = item.get("product_status")
            if item.get("product_total_inventory") is not None:
                shop_totals[product_id] = item["product_total_inventory"]
        totals.update(shop_totals)

        drafted = []
        activated = []
        errors = []
        for product_id, total in totals.items():
            desired = evaluate_status(statuses.get(product_id), total, is_bypassed(product_id, self.bypass_ids))
            if desired is None:
                continue
            try:
                if desired == ProductStatus.DRAFT.value:
                    await self._apply_status(product_id, statuses.get(product_id), desired)
                    drafted.append(product_id)
                else:
                    result = await self.ensure_product_compliance(product_id=product_id)
                    if result.get("status") == "FAILED":
                        errors.append({"product_id": product_id, "error": result.get("error")})
                    elif result.get("changed"):
                        activated.append(product_id)
            except Exception as exc:
                logger.error("Status automation failed for %s on %s: %s", product_id, self.shop, exc, exc_info=True)
                errors.append({"product_id": product_id, "error": str(exc)})

        logger.info(
            "Inventory check for %s at %s: %s items, %s drafted, %s activated, %s errors",
            self.shop, location_id, items_processed, len(drafted), len(activated), len(errors),
        )
        return {
            "status": "SUCCESS",
            "items_processed": items_processed,
            "products_checked": len(totals),
            "drafted": drafted,
            "activated": activated,
            "errors": errors,
        }

    # ------------------------------------------------------------------
    # Single product
    # ------------------------------------------------------------------
    async def ensure_product_compliance(
        self,
        product_id: Optional[str] = None,
        inventory_item_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Re-evaluate one product. Never raises; failures come back as a result."""
        try:
            if product_id:
                product_gid = to_product_gid(product_id)
            elif inventory_item_id:
                product_gid = await self.client.find_product_id_for_inventory_item(
                    to_gid("InventoryItem", inventory_item_id)
                )
            else:
                return {"status": "FAILED", "changed": False, "error": "No product or inventory item id"}

            if not product_gid:
                logger.warning("No product found for inventory item %s on %s", inventory_item_id, self.shop)
                return {"status": "FAILED", "changed": False, "error": "Product not found"}

            product = await self.client.get_product(product_gid)
            if not product:
                return {"status": "FAILED", "changed": False, "error": f"Product {product_gid} not found"}

            current = product.get("status")
            total = product.get("totalInventory") or 0
            desired = evaluate_status(current, total, is_bypassed(product_gid, self.bypass_ids))

            if desired is not None:
                await self._apply_status(product_gid, current, desired, product=product)

            if (desired or current) == ProductStatus.ACTIVE.value:
                await self._promote(product_gid, product, total)

            return {
                "status": "SUCCESS",
                "product_id": product_gid,
                "changed": desired is not None,
                "from": current,
                "to": desired or current,
            }
        except Exception as exc:
            logger.error(
                "ensure_product_compliance failed for product=%s inventory_item=%s on %s: %s",
                product_id, inventory_item_id, self.shop, exc, exc_info=True,
            )
            return {"status": "FAILED", "changed": False, "error": str(exc)}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _apply_status(
        self,
        product_id: str,
        current: Optional[str],
        desired: str,
        product: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.client.set_product_status(product_id, desired)
        title = (product or {}).get("title") or product_id
        logger.info("Product %s moved %s -> %s on %s", product_id, current, desired, self.shop)
        await self.notifications.record(f"{title} set to {desired.lower()}", NotificationType.AUTOMATION)

        if desired == ProductStatus.ACTIVE.value and product:
            await job_queue.enqueue_job(
                self.db,
                job_type=JobType.RESTOCK_EMAIL,
                payload={
                    "shop": self.shop,
                    "product_id": product_id,
                    "product_name": product.get("title") or "",
                    "quantity": product.get("totalInventory") or 0,
                },
            )
            await self.db.commit()

    async def _promote(self, product_id: str, product: Dict[str, Any], total: int) -> None:
        """Publish an ACTIVE product everywhere and pin it to new arrivals."""
        try:
            await self.client.publish_to_all(product_id)
        except Exception as exc:
            logger.warning("Publishing %s failed on %s: %s", product_id, self.shop, exc)

        if total <= 0 or is_raw_card(product):
            return

        collection_id = await self._new_arrivals_collection_id()
        if not collection_id:
            logger.warning("No new arrivals collection resolved for %s", self.shop)
            return
        try:
            await self.client.add_to_collection_front(collection_id, product_id)
        except Exception as exc:
            logger.warning("Adding %s to new arrivals failed on %s: %s", product_id, self.shop, exc)
            if "not found" in str(exc).lower() and self._collection_cache.pop(self.shop, None):
                logger.info("Dropped cached new arrivals collection for %s", self.shop)

    async def _new_arrivals_collection_id(self) -> Optional[str]:
        settings = self.settings
        if settings.NEW_ARRIVALS_COLLECTION_ID:
            return to_gid("Collection", settings.NEW_ARRIVALS_COLLECTION_ID)

        override = settings.collection_overrides.get(self.shop)
        if override:
            return to_gid("Collection", override)

        cached = self._collection_cache.get(self.shop)
        if cached:
            return cached

        collection_id = await self.client.get_collection_id_by_handle(settings.NEW_ARRIVALS_COLLECTION_HANDLE)
        if collection_id:
            self._collection_cache[self.shop] = collection_id
        return collection_id
