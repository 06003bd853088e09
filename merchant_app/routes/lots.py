"""
Lot bookkeeping for the merchant admin, plus conversion of a lot product
into a draft Shopify listing.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.exceptions import ShopifyServiceError
from merchant_app.dependencies import get_db, get_shopify_client, read_body
from merchant_app.schemas.lot import (
    DebtPaymentCreate,
    DebtPaymentRead,
    LotCreate,
    LotProductConvertRequest,
    LotProductCreate,
    LotProductRead,
    LotProductUpdate,
    LotRead,
    LotUpdate,
    LotVariantCreate,
    LotVariantRead,
    LotVariantUpdate,
)
from merchant_app.services.lot_service import LotService
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/app/lots", tags=["lots"])
convert_router = APIRouter(prefix="/api", tags=["lots"])


def _dump(schema, obj) -> dict:
    return schema.from_orm_model(obj).model_dump(mode="json")


def _found(obj, message: str):
    if obj is None:
        raise HTTPException(status_code=404, detail=message)
    return obj


@router.get("")
async def list_lots(db: AsyncSession = Depends(get_db)):
    lots = await LotService(db).list_lots()
    return {"lots": [_dump(LotRead, lot) for lot in lots]}


@router.post("")
async def create_lot(body: LotCreate, db: AsyncSession = Depends(get_db)):
    lot = await LotService(db).create_lot(body.model_dump())
    return {"success": True, "lot": _dump(LotRead, lot)}


@router.get("/stats")
async def lot_statistics(db: AsyncSession = Depends(get_db)):
    return await LotService(db).lot_statistics()


@router.get("/{lot_id}")
async def get_lot(lot_id: int, db: AsyncSession = Depends(get_db)):
    lot = _found(await LotService(db).get_lot(lot_id), "Lot not found")
    return {"lot": _dump(LotRead, lot)}


@router.patch("/{lot_id}")
async def update_lot(lot_id: int, body: LotUpdate, db: AsyncSession = Depends(get_db)):
    lot = _found(
        await LotService(db).update_lot(lot_id, body.model_dump(exclude_unset=True)),
        "Lot not found",
    )
    return {"success": True, "lot": _dump(LotRead, lot)}


@router.delete("/{lot_id}")
async def delete_lot(lot_id: int, db: AsyncSession = Depends(get_db)):
    if not await LotService(db).delete_lot(lot_id):
        raise HTTPException(status_code=404, detail="Lot not found")
    return {"success": True, "message": "Lot deleted successfully"}


@router.post("/{lot_id}/convert")
async def mark_lot_converted(lot_id: int, db: AsyncSession = Depends(get_db)):
    lot = _found(await LotService(db).mark_lot_converted(lot_id), "Lot not found")
    return {"success": True, "lot": _dump(LotRead, lot)}


# ------------------------------------------------------------------
# Vendor debt
# ------------------------------------------------------------------

@router.post("/{lot_id}/payments")
async def record_debt_payment(lot_id: int, body: DebtPaymentCreate, db: AsyncSession = Depends(get_db)):
    payment = _found(
        await LotService(db).record_debt_payment(
            lot_id,
            body.payment_amount,
            payment_date=body.payment_date,
            payment_method=body.payment_method,
            notes=body.notes,
        ),
        "Lot not found",
    )
    return {"success": True, "payment": _dump(DebtPaymentRead, payment)}


@router.post("/{lot_id}/payoff")
async def pay_off_debt(lot_id: int, db: AsyncSession = Depends(get_db)):
    payment = _found(await LotService(db).pay_off_debt(lot_id), "Lot not found")
    return {"success": True, "payment": _dump(DebtPaymentRead, payment)}


@router.get("/{lot_id}/payments/stats")
async def debt_payment_stats(lot_id: int, db: AsyncSession = Depends(get_db)):
    return _found(await LotService(db).debt_payment_stats(lot_id), "Lot not found")


# ------------------------------------------------------------------
# Products and variants
# ------------------------------------------------------------------

@router.post("/{lot_id}/products")
async def add_lot_product(lot_id: int, body: LotProductCreate, db: AsyncSession = Depends(get_db)):
    product = _found(await LotService(db).add_product(lot_id, body.model_dump()), "Lot not found")
    return {"success": True, "product": _dump(LotProductRead, product)}


@router.patch("/products/{product_id}")
async def update_lot_product(product_id: int, body: LotProductUpdate, db: AsyncSession = Depends(get_db)):
    product = _found(
        await LotService(db).update_product(product_id, body.model_dump(exclude_unset=True)),
        "Lot product not found",
    )
    return {"success": True, "product": _dump(LotProductRead, product)}


@router.delete("/products/{product_id}")
async def delete_lot_product(product_id: int, db: AsyncSession = Depends(get_db)):
    if not await LotService(db).delete_product(product_id):
        raise HTTPException(status_code=404, detail="Lot product not found")
    return {"success": True, "message": "Product deleted successfully"}


@router.post("/products/{product_id}/variants")
async def add_lot_variant(product_id: int, body: LotVariantCreate, db: AsyncSession = Depends(get_db)):
    variant = _found(await LotService(db).add_variant(product_id, body.model_dump()), "Lot product not found")
    return {"success": True, "variant": _dump(LotVariantRead, variant)}


@router.patch("/variants/{variant_id}")
async def update_lot_variant(variant_id: int, body: LotVariantUpdate, db: AsyncSession = Depends(get_db)):
    variant = _found(
        await LotService(db).update_variant(variant_id, body.model_dump(exclude_unset=True)),
        "Variant not found",
    )
    return {"success": True, "variant": _dump(LotVariantRead, variant)}


@router.delete("/variants/{variant_id}")
async def delete_lot_variant(variant_id: int, db: AsyncSession = Depends(get_db)):
    if not await LotService(db).delete_variant(variant_id):
        raise HTTPException(status_code=404, detail="Variant not found")
    return {"success": True, "message": "Variant deleted successfully"}


# ------------------------------------------------------------------
# Conversion to Shopify
# ------------------------------------------------------------------

@convert_router.post("/lotProduct/convert")
async def convert_lot_product(
    request: Request,
    db: AsyncSession = Depends(get_db),
    client: ShopifyAdminClient = Depends(get_shopify_client),
):
    """Create a draft Shopify product from a lot product. Accepts JSON or form posts."""
    try:
        body = LotProductConvertRequest.model_validate(await read_body(request))
    except PydanticValidationError as exc:
        logger.info("Rejected lot product conversion: %s", exc.errors())
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid request"})
    if body.lot_product_id is None:
        return JSONResponse(status_code=400, content={"success": False, "message": "Missing lotProductId"})

    try:
        result = await LotService(db).convert_product_to_shopify(body.lot_product_id, client, body.default_price)
    except ShopifyServiceError as exc:
        logger.error("Converting lot product %s failed: %s", body.lot_product_id, exc)
        return JSONResponse(
            status_code=502,
            content={"success": False, "message": f"Error creating Shopify product: {exc}"},
        )
    if result is None:
        return JSONResponse(status_code=404, content={"success": False, "message": "Lot product not found"})
    return result
