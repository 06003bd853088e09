"""
Creating and restocking Shopify products from the three intake flows:
Troll & Toad scrapes, PSA cert lookups and manual entry.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.enums import CONDITION_OPTION_VALUES, CardCondition, NotificationType, ProductStatus
from merchant_app.core.exceptions import ShopifyAPIError
from merchant_app.core.utils import to_product_gid, variant_slug
from merchant_app.models.product import Product
from merchant_app.services.images import ImagePipeline
from merchant_app.services.notification_service import NotificationService
from merchant_app.services.scraping.psa import PSACard
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)

# Ship weight (lb) Troll & Toad lists for single cards
SINGLE_CARD_WEIGHT = 0.004
PSA_SLAB_WEIGHT_LB = 0.08
GRAMS_PER_POUND = 453.59237


def parse_ship_weight(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        weight = float(str(value).replace(" pounds", "").replace(" pound", "").strip())
    except ValueError:
        return 0.0
    return weight if math.isfinite(weight) else 0.0


def build_listing(
    *,
    title: str,
    description: str,
    price: float,
    condition: str = CardCondition.STANDARD.value,
    ship_weight: float = 0.0,
    product_type: str = "",
    barcode: str = "",
    tags: Optional[List[str]] = None,
    status: str = ProductStatus.DRAFT.value,
    with_conditions: Optional[bool] = None,
) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Build the productCreate input and the single variant to stock.

    Single cards get a "Condition" option with every grade and one variant
    for ``condition``; anything else gets the default "Title" option.
    ``with_conditions`` defaults to the single-card weight check.
    """
    if with_conditions is None:
        with_conditions = ship_weight == SINGLE_CARD_WEIGHT
    condition_value = None
    if with_conditions and condition != CardCondition.STANDARD.value:
        condition_value = CardCondition(condition).option_value

    product_input: Dict[str, Any] = {
        "title": title,
        "descriptionHtml": (description or "").replace("(Pokemon)", ""),
        "productType": product_type or "",
        "vendor": "",
        "tags": tags or [],
        "status": status,
    }

    variant: Dict[str, Any] = {
        "price": round(float(price), 2),
        "inventoryPolicy": "DENY",
        "inventoryItem": {
            "tracked": True,
            "measurement": {"weight": {"unit": "POUNDS", "value": ship_weight}},
        },
    }
    if barcode:
        variant["barcode"] = barcode

    if condition_value:
        product_input["productOptions"] = [
            {"name": "Condition", "values": [{"name": value} for value in CONDITION_OPTION_VALUES]}
        ]
        variant["optionValues"] = [{"optionName": "Condition", "name": condition_value}]
    else:
        product_input["productOptions"] = [{"name": "Title", "values": [{"name": "Default Title"}]}]
        variant["optionValues"] = [{"optionName": "Title", "name": "Default Title"}]

    return product_input, [variant]


def variant_option_slug(variant: Dict[str, Any]) -> str:
    for option in variant.get("selectedOptions") or []:
        if option.get("name") in ("Title", "Condition"):
            return variant_slug(option.get("value"))
    return "default-title"


def _first_level(variant: Dict[str, Any]) -> Dict[str, Any]:
    nodes = ((variant.get("inventoryItem") or {}).get("inventoryLevels") or {}).get("nodes") or []
    return nodes[0] if nodes else {}


async def find_duplicate_products(db: AsyncSession, name: str) -> List[Product]:
    """Local products whose title contains ``name`` (case-insensitive)."""
    needle = (name or "").replace("(Pokemon)", "").strip()
    if not needle:
        return []
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    stmt = (
        select(Product)
        .where(Product.title.ilike(f"%{escaped}%", escape="\\"))
        .order_by(Product.title.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


class ProductImportService:
    def __init__(
        self,
        db: AsyncSession,
        client: ShopifyAdminClient,
        images: Optional[ImagePipeline] = None,
    ):
        self.db = db
        self.client = client
        self.images = images or ImagePipeline()
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Troll & Toad
    # ------------------------------------------------------------------
    async def import_troll_item(self, item: Dict[str, Any], existing_product_id: Optional[str] = None) -> Dict[str, Any]:
        name = item.get("name") or ""
        condition = item.get("variant") or CardCondition.STANDARD.value
        quantity = int(float(item.get("quantity") or 0))
        price = float(item.get("price") or 0)

        product_input, variants = build_listing(
            title=name,
            description=item.get("description") or "",
            price=price,
            condition=condition,
            ship_weight=parse_ship_weight(item.get("ship_weight")),
            product_type=item.get("card_type") or "",
            barcode=item.get("barcode") or "",
        )

        if existing_product_id:
            product = await self.client.get_product(to_product_gid(existing_product_id))
            if product:
                await self.restock_existing(product, condition, quantity, price, variants)
                await self.notifications.record("Product has been updated", NotificationType.TROLL)
                return {"status": "UPDATED", "product_id": product["id"]}
            logger.warning("Existing product %s not found; creating a new one", existing_product_id)

        media = []
        if item.get("image"):
            media.append(self._media(await self.images.process(item["image"]), name))

        product_id = await self.create_new(product_input, media, variants, quantity)
        await self.notifications.record(f"Product created: {name}", NotificationType.TROLL)
        return {"status": "CREATED", "product_id": product_id}

    # ------------------------------------------------------------------
    # Manual entry
    # ------------------------------------------------------------------
    async def create_manual_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        title = payload["title"]
        condition = payload.get("condition") or CardCondition.STANDARD.value
        quantity = int(payload.get("quantity") or 0)
        price = float(payload["price"])

        product_input, variants = build_listing(
            title=title,
            description=payload.get("description") or f"<p>{title}</p>",
            price=price,
            condition=condition,
            ship_weight=float(payload.get("ship_weight") or 0.0),
            product_type=payload.get("product_type") or "",
            tags=payload.get("tags") or [],
            status=ProductStatus.ACTIVE.value,
            with_conditions=payload.get("card_type") == "raw",
        )

        existing_id = payload.get("existing_product_id")
        if existing_id:
            product = await self.client.get_product(to_product_gid(existing_id))
            if product:
                await self.restock_existing(product, condition, quantity, price, variants)
                await self.notifications.record(f"{title} restocked", NotificationType.MANUAL)
                return {"status": "UPDATED", "product_id": product["id"]}

        media = []
        for index, source in enumerate(payload.get("images") or [], start=1):
            if source.startswith("data:"):
                url = await self.images.from_data_url(source)
            else:
                url = await self.images.process(source)
            if url:
                media.append(self._media(url, f"{title} - Image {index}"))

        product_id = await self.create_new(product_input, media, variants, quantity)
        await self.notifications.record(f"{title} created", NotificationType.MANUAL)
        return {"status": "CREATED", "product_id": product_id}

    # ------------------------------------------------------------------
    # PSA
    # ------------------------------------------------------------------
    async def create_psa_product(self, card: PSACard, price: float) -> Dict[str, Any]:
        media = []
        for image_url in card.images:
            media.append(self._media(await self.images.rehost(image_url), card.title))

        product = await self.client.create_product_with_media(
            {
                "title": card.title,
                "descriptionHtml": card.description_html(),
                "productType": card.card_type,
                "vendor": "",
                "tags": ["PSA"],
                "status": ProductStatus.DRAFT.value,
            },
            media,
        )
        product_id = product["id"]
        variant_nodes = (product.get("variants") or {}).get("nodes") or []
        if not variant_nodes:
            raise ShopifyAPIError(f"Product {product_id} was created without a default variant")
        variant = variant_nodes[0]

        await self.client.update_variant_rest(variant["id"], {
            "price": f"{float(price):.2f}",
            "weight": PSA_SLAB_WEIGHT_LB,
            "weight_unit": "lb",
            "grams": round(PSA_SLAB_WEIGHT_LB * GRAMS_PER_POUND),
            "inventory_policy": "deny",
            "inventory_management": "shopify",
            "barcode": card.cert_number,
        })

        inventory_item_id = (variant.get("inventoryItem") or {}).get("id")
        if inventory_item_id:
            await self.client.update_inventory_item_rest(inventory_item_id, {"tracked": True})
            location_id = await self.client.get_primary_location_id()
            if location_id:
                await self.client.set_inventory_quantity(inventory_item_id, location_id, 1)
            else:
                logger.warning("No location found for %s; PSA %s left unstocked", self.client.shop, card.cert_number)

        await self.notifications.record(f"{card.title} created", NotificationType.PSA)
        return {"status": "CREATED", "product_id": product_id, "title": card.title}

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------
    async def restock_existing(
        self,
        product: Dict[str, Any],
        condition: str,
        quantity: int,
        price: float,
        variants: List[Dict[str, Any]],
    ) -> bool:
        """
        Add ``quantity`` to the variant matching ``condition`` (or the default
        title variant) and update its price. When nothing matches, the new
        variant is created and stocked. Returns True when a variant matched.
        """
        found = False
        for variant in (product.get("variants") or {}).get("nodes") or []:
            slug = variant_option_slug(variant)
            if slug != condition and slug != "default-title":
                continue
            found = True
            level = _first_level(variant)
            location_id = (level.get("location") or {}).get("id") or await self.client.get_primary_location_id()
            quantities = level.get("quantities") or [{}]
            current = quantities[0].get("quantity") or 0
            await self.client.set_inventory_quantity(variant["inventoryItem"]["id"], location_id, current + quantity)
            await self.client.update_variant_prices(product["id"], [{"id": variant["id"], "price": round(price, 2)}])
            logger.info("Restocked %s variant %s to %s", product["id"], variant["id"], current + quantity)

        if not found:
            created = await self.client.create_bulk_variants(product["id"], variants, "DEFAULT")
            await self._stock_created(created, condition, quantity)
        return found

    async def create_new(
        self,
        product_input: Dict[str, Any],
        media: List[Dict[str, Any]],
        variants: List[Dict[str, Any]],
        quantity: int,
    ) -> str:
        product = await self.client.create_product_with_media(product_input, media)
        product_id = product["id"]
        created = await self.client.create_bulk_variants(product_id, variants, "REMOVE_STANDALONE_VARIANT")
        await self._stock_created(created, None, quantity)
        logger.info("Created product %s (%s)", product_id, product_input.get("title"))
        return product_id

    async def _stock_created(self, created: List[Dict[str, Any]], condition: Optional[str], quantity: int) -> None:
        for variant in created:
            if condition and variant_option_slug(variant) not in (condition, "default-title"):
                continue
            inventory_item_id = (variant.get("inventoryItem") or {}).get("id")
            if not inventory_item_id:
                continue
            location_id = (_first_level(variant).get("location") or {}).get("id") or await self.client.get_primary_location_id()
            if not location_id:
                logger.warning("No location to stock variant %s", variant.get("id"))
                continue
            await self.client.set_inventory_quantity(inventory_item_id, location_id, quantity)

    @staticmethod
    def _media(url: str, alt: str) -> Dict[str, str]:
        return {"alt": alt or "image", "mediaContentType": "IMAGE", "originalSource": url}
