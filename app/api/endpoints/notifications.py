from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_current_active_user
from app.models.agent import Agent
from app.schemas.notification import NotificationRead
from app.services import notification_service

router = APIRouter()


@router.get("", response_model=List[NotificationRead])
async def get_my_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    return await notification_service.get_notifications_for_user(db, current_user.id, unread_only, skip, limit)


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    if not await notification_service.mark_as_read(db, notification_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"message": "Notification marked as read"}
