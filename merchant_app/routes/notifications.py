from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.enums import NotificationType
from merchant_app.dependencies import get_db
from merchant_app.schemas.notification import NotificationRead
from merchant_app.services.notification_service import NotificationService

router = APIRouter(prefix="/app/events", tags=["notifications"])


@router.get("/fetch/{type}")
async def fetch_notifications(type: NotificationType, db: AsyncSession = Depends(get_db)):
    """Today's notifications of ``type`` that the admin has not shown yet"""
    results = await NotificationService(db).fetch_unshown(type)
    return {"results": [NotificationRead.from_orm_model(r).model_dump(mode="json") for r in results]}


@router.post("/clear/{notification_id}")
async def clear_notification(notification_id: int, db: AsyncSession = Depends(get_db)):
    notification = await NotificationService(db).mark_shown(notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"id": notification.id}
