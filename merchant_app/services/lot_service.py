"""
Lots are bulk card purchases. They carry the vendor debt still owed on
them and the products found inside, which are turned into draft Shopify
listings once counted.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.config import get_settings
from merchant_app.core.enums import ProductStatus, ShippingStatus
from merchant_app.core.exceptions import ShopifyServiceError, ValidationError
from merchant_app.core.utils import utcnow
from merchant_app.models.lot import DebtPayment, Lot, LotProduct, LotProductVariant
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)

DEFAULT_OPTION_VALUE = "Default Title"


class LotService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Lots
    # ------------------------------------------------------------------
    async def list_lots(self) -> List[Lot]:
        stmt = select(Lot).order_by(Lot.purchase_date.desc(), Lot.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_lot(self, lot_id: int) -> Optional[Lot]:
        return await self.db.get(Lot, lot_id)

    async def create_lot(self, fields: Dict[str, Any]) -> Lot:
        lot = Lot(**fields)
        self.db.add(lot)
        await self.db.commit()
        await self.db.refresh(lot, ["products", "payments"])
        logger.info("Created lot %s from %s", lot.id, lot.vendor or "unknown vendor")
        return lot

    async def update_lot(self, lot_id: int, fields: Dict[str, Any]) -> Optional[Lot]:
        lot = await self.get_lot(lot_id)
        if lot is None:
            return None
        for name, value in fields.items():
            setattr(lot, name, value)
        await self.db.commit()
        return lot

    async def delete_lot(self, lot_id: int) -> bool:
        lot = await self.get_lot(lot_id)
        if lot is None:
            return False
        await self.db.delete(lot)
        await self.db.commit()
        logger.info("Deleted lot %s", lot_id)
        return True

    async def mark_lot_converted(self, lot_id: int) -> Optional[Lot]:
        """Flag the whole lot as listed. Already converted lots keep their first timestamp."""
        lot = await self.get_lot(lot_id)
        if lot is None:
            return None
        if not lot.is_converted:
            lot.is_converted = True
            lot.converted_at = utcnow()
            await self.db.commit()
        return lot

    # ------------------------------------------------------------------
    # Vendor debt
    # ------------------------------------------------------------------
    async def record_debt_payment(
        self,
        lot_id: int,
        amount: float,
        payment_date: Optional[date] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[DebtPayment]:
        """
        Record a payment against the lot's debt. Payments larger than the
        remaining debt are capped at it, so the debt never goes negative.
        """
        lot = await self.get_lot(lot_id)
        if lot is None:
            return None
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")
        if lot.initial_debt <= 0:
            raise ValidationError("No debt to pay off")

        paid = min(amount, lot.initial_debt)
        payment = DebtPayment(
            payment_amount=paid,
            payment_date=payment_date or utcnow().date(),
            payment_method=payment_method,
            notes=notes,
        )
        lot.payments.append(payment)
        lot.initial_debt = max(0.0, round(lot.initial_debt - paid, 2))
        await self.db.commit()
        logger.info("Recorded payment of %.2f on lot %s, %.2f still owed", paid, lot_id, lot.initial_debt)
        return payment

    async def pay_off_debt(self, lot_id: int, payment_method: Optional[str] = None) -> Optional[DebtPayment]:
        lot = await self.get_lot(lot_id)
        if lot is None:
            return None
        if lot.initial_debt <= 0:
            raise ValidationError("No debt to pay off")
        return await self.record_debt_payment(
            lot_id, lot.initial_debt, payment_method=payment_method, notes="Paid in full"
        )

    async def debt_payment_stats(self, lot_id: int) -> Optional[Dict[str, Any]]:
        lot = await self.get_lot(lot_id)
        if lot is None:
            return None
        total_paid = round(sum(payment.payment_amount for payment in lot.payments), 2)
        remaining = lot.initial_debt
        original = round(total_paid + remaining, 2)
        return {
            "totalPaid": total_paid,
            "remainingDebt": remaining,
            "originalDebt": original,
            "paymentCount": len(lot.payments),
            "isFullyPaid": remaining <= 0,
            "paymentProgress": round(total_paid / original * 100, 1) if original > 0 else 100.0,
        }

    # ------------------------------------------------------------------
    # Products and variants inside a lot
    # ------------------------------------------------------------------
    async def get_product(self, lot_product_id: int) -> Optional[LotProduct]:
        return await self.db.get(LotProduct, lot_product_id)

    async def add_product(self, lot_id: int, fields: Dict[str, Any]) -> Optional[LotProduct]:
        lot = await self.get_lot(lot_id)
        if lot is None:
            return None
        product = LotProduct(**fields)
        # Products linked to an existing listing need no conversion
        if product.shopify_product_id:
            product.is_converted = True
            product.converted_at = utcnow()
        lot.products.append(product)
        await self.db.commit()
        await self.db.refresh(product, ["variants"])
        return product

    async def update_product(self, lot_product_id: int, fields: Dict[str, Any]) -> Optional[LotProduct]:
        product = await self.get_product(lot_product_id)
        if product is None:
            return None
        for name, value in fields.items():
            setattr(product, name, value)
        await self.db.commit()
        return product

    async def delete_product(self, lot_product_id: int) -> bool:
        product = await self.get_product(lot_product_id)
        if product is None:
            return False
        lot = await self.get_lot(product.lot_id)
        lot.products.remove(product)
        await self.db.commit()
        return True

    async def add_variant(self, lot_product_id: int, fields: Dict[str, Any]) -> Optional[LotProductVariant]:
        product = await self.get_product(lot_product_id)
        if product is None:
            return None
        variant = LotProductVariant(**fields)
        product.variants.append(variant)
        await self.db.commit()
        return variant

    async def update_variant(self, variant_id: int, fields: Dict[str, Any]) -> Optional[LotProductVariant]:
        variant = await self.db.get(LotProductVariant, variant_id)
        if variant is None:
            return None
        for name, value in fields.items():
            setattr(variant, name, value)
        await self.db.commit()
        return variant

    async def delete_variant(self, variant_id: int) -> bool:
        variant = await self.db.get(LotProductVariant, variant_id)
        if variant is None:
            return False
        product = await self.get_product(variant.lot_product_id)
        product.variants.remove(variant)
        await self.db.commit()
        return True

    # ------------------------------------------------------------------
    # Conversion to Shopify
    # ------------------------------------------------------------------
    async def convert_product_to_shopify(
        self,
        lot_product_id: int,
        client: ShopifyAdminClient,
        default_price: float = 0.0,
    ) -> Optional[Dict[str, Any]]:
        """
        Create a DRAFT Shopify product for a lot product and stock it at the
        primary location. Each lot variant becomes one option value; a
        product without variants is stocked with its estimated quantity.

        Returns None when the lot product does not exist. Shopify failures
        propagate as ShopifyServiceError.
        """
        product = await self.get_product(lot_product_id)
        if product is None:
            return None
        if product.shopify_product_id:
            return {
                "success": True,
                "message": "Product already linked to Shopify",
                "shopifyProductId": product.shopify_product_id,
            }

        location_id = await client.get_primary_location_id()
        if not location_id:
            raise ShopifyServiceError("No primary location to stock the new product")

        stock = _variant_stock(product, default_price)
        product_input = {
            "title": product.product_name,
            "descriptionHtml": product.description or f"<p>{product.product_name}</p>",
            "vendor": get_settings().STORE_NAME,
            "status": ProductStatus.DRAFT.value,
            "productOptions": [{"name": "Title", "values": [{"name": label} for label in stock]}],
        }
        variants = []
        for label, (_, price) in stock.items():
            variant = {
                "price": round(price, 2),
                "inventoryPolicy": "DENY",
                "inventoryItem": {"tracked": True},
                "optionValues": [{"optionName": "Title", "name": label}],
            }
            if product.sku and len(stock) == 1:
                variant["barcode"] = product.sku
            variants.append(variant)

        created_product = await client.create_product_with_media(product_input, [])
        product_id = created_product["id"]
        created = await client.create_bulk_variants(product_id, variants, "REMOVE_STANDALONE_VARIANT")

        created_by_label = {variant.get("title"): variant for variant in created}
        for label, (quantity, _) in stock.items():
            inventory_item_id = ((created_by_label.get(label) or {}).get("inventoryItem") or {}).get("id")
            if not inventory_item_id:
                logger.warning("Shopify did not return variant %r for product %s", label, product_id)
                continue
            await client.set_inventory_quantity(inventory_item_id, location_id, quantity)

        converted_at = utcnow()
        for lot_variant in product.variants:
            shopify_variant = created_by_label.get(lot_variant.label)
            if shopify_variant:
                lot_variant.shopify_variant_id = shopify_variant.get("id")
                lot_variant.is_converted = True
                lot_variant.converted_at = converted_at
        product.shopify_product_id = product_id
        product.is_converted = True
        product.converted_at = converted_at
        await self.db.commit()

        logger.info("Converted lot product %s to Shopify product %s", lot_product_id, product_id)
        return {
            "success": True,
            "message": f"Created draft product with {len(created)} variant(s)",
            "shopifyProductId": product_id,
        }

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    async def lot_statistics(self) -> Dict[str, Any]:
        row = (await self.db.execute(
            select(
                func.count(Lot.id),
                func.coalesce(func.sum(Lot.total_cost), 0.0),
                func.coalesce(func.sum(Lot.lot_value), 0.0),
                func.coalesce(func.sum(Lot.initial_debt), 0.0),
            )
        )).one()
        total, total_cost, total_value, total_debt = row

        converted = await self.db.scalar(select(func.count(Lot.id)).where(Lot.is_converted.is_(True)))
        delivered = await self.db.scalar(
            select(func.count(Lot.id)).where(Lot.shipping_status == ShippingStatus.DELIVERED.value)
        )
        total_paid = await self.db.scalar(select(func.coalesce(func.sum(DebtPayment.payment_amount), 0.0)))

        return {
            "totalLots": total,
            "convertedLots": converted or 0,
            "pendingLots": total - (converted or 0),
            "deliveredLots": delivered or 0,
            "totalCost": round(total_cost, 2),
            "totalValue": round(total_value, 2),
            "totalDebt": round(total_debt, 2),
            "totalPaid": round(total_paid or 0.0, 2),
            "conversionRate": round((converted or 0) / total * 100, 1) if total else 0.0,
        }


def _variant_stock(product: LotProduct, default_price: float) -> Dict[str, tuple]:
    """
    Map each Shopify option value to (quantity, price). Lot variants with
    the same label are merged since Shopify rejects duplicate option values.
    """
    if not product.variants:
        return {DEFAULT_OPTION_VALUE: (product.estimated_quantity, default_price)}

    stock: Dict[str, tuple] = {}
    for variant in product.variants:
        price = variant.estimated_value if variant.estimated_value is not None else default_price
        quantity, first_price = stock.get(variant.label, (0, price))
        stock[variant.label] = (quantity + variant.quantity, first_price)
    return stock
