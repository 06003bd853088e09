from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.dependencies import get_db
from merchant_app.schemas.wishlist import (
    SuggestedKeywordBulkDelete,
    SuggestedKeywordCreate,
    SuggestedKeywordRead,
)
from merchant_app.services.keyword_service import SuggestedKeywordService

router = APIRouter(prefix="/app/keywords", tags=["keywords"])


def _read(keyword) -> dict:
    return SuggestedKeywordRead.from_orm_model(keyword).model_dump(mode="json")


@router.get("")
async def list_suggested_keywords(db: AsyncSession = Depends(get_db)):
    """Suggested keywords, newest first"""
    keywords = await SuggestedKeywordService(db).list_all()
    return {"suggestedKeywords": [_read(k) for k in keywords]}


@router.post("")
async def add_suggested_keyword(body: SuggestedKeywordCreate, db: AsyncSession = Depends(get_db)):
    keyword = await SuggestedKeywordService(db).add(body.keyword or "")
    return {"success": True, "message": "Keyword added successfully", "keyword": _read(keyword)}


@router.post("/bulk-delete")
async def bulk_delete_suggested_keywords(body: SuggestedKeywordBulkDelete, db: AsyncSession = Depends(get_db)):
    deleted = await SuggestedKeywordService(db).bulk_delete(body.ids)
    return {"success": True, "deleted": deleted, "message": f"{deleted} keywords deleted successfully"}


@router.delete("/{keyword_id}")
async def delete_suggested_keyword(keyword_id: int, db: AsyncSession = Depends(get_db)):
    if not await SuggestedKeywordService(db).delete(keyword_id):
        raise HTTPException(status_code=404, detail="Keyword not found")
    return {"success": True, "message": "Keyword deleted successfully"}


@router.get("/stats")
async def keyword_stats(db: AsyncSession = Depends(get_db)):
    """Subscribers per wishlist keyword and the total number of subscribed emails"""
    return await SuggestedKeywordService(db).stats()
