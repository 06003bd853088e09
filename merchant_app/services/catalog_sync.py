"""Mirror Shopify products into the local products tables."""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.models.product import Product, ProductVariant
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)


async def upsert_product(db: AsyncSession, node: Dict[str, Any]) -> Product:
    product = await db.get(Product, node["id"])
    if product is None:
        product = Product(id=node["id"])
        db.add(product)

    product.title = node.get("title") or ""
    product.handle = node.get("handle")
    product.description = node.get("description")
    product.product_type = node.get("productType")
    product.status = node.get("status")
    product.total_inventory = node.get("totalInventory") or 0

    seen = set()
    for variant_node in (node.get("variants") or {}).get("nodes") or []:
        seen.add(variant_node["id"])
        variant = await db.get(ProductVariant, variant_node["id"])
        if variant is None:
            variant = ProductVariant(id=variant_node["id"], product_id=node["id"])
            db.add(variant)
        variant.title = variant_node.get("title")
        variant.sku = variant_node.get("sku") or None
        # Shopify returns "" for missing barcodes
        variant.barcode = variant_node.get("barcode") or None
        price = variant_node.get("price")
        variant.price = float(price) if price not in (None, "") else None
        variant.inventory_quantity = variant_node.get("inventoryQuantity") or 0
        variant.inventory_item_id = (variant_node.get("inventoryItem") or {}).get("id")

    for variant in list(product.variants or []):
        if variant.id not in seen:
            await db.delete(variant)
    return product


async def sync_products(db: AsyncSession, client: ShopifyAdminClient) -> int:
    """Page through every product in the shop and upsert it locally."""
    cursor = None
    count = 0
    while True:
        page = await client.get_products_page(cursor)
        for edge in page.get("edges") or []:
            await upsert_product(db, edge["node"])
            count += 1
        await db.commit()

        page_info = page.get("pageInfo") or {}
        if not page_info.get("hasNextPage"):
            break
        cursor = page_info.get("endCursor")

    logger.info("Synced %s product(s) from %s", count, client.shop)
    return count
