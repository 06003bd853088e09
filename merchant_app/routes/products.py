from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.utils import to_product_gid
from merchant_app.dependencies import get_db
from merchant_app.models.product import Product
from merchant_app.schemas.product import ProductRead

router = APIRouter(prefix="/api", tags=["products"])


@router.get("/product/{product_id:path}")
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    """Product from the local catalog mirror, variants ordered by title"""
    product = await db.get(Product, product_id)
    if product is None and not product_id.startswith("gid://"):
        product = await db.get(Product, to_product_gid(product_id))
    if product is None:
        return JSONResponse(status_code=404, content={"error": "Not found"})
    return ProductRead.from_orm_model(product).model_dump(by_alias=True)
