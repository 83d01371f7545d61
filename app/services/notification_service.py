import logging
from typing import List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from app.models.notification import Notification

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    *,
    user_id: Union[int, str],
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    commit: bool = True,
) -> Notification:
    """Persist an in-app notification for one recipient."""
    db_notification = Notification(
        user_id=str(user_id),
        type=type,
        title=title,
        message=message,
        link=link,
    )
    db.add(db_notification)
    if commit:
        await db.commit()
        await db.refresh(db_notification)
    return db_notification


async def get_notifications_for_user(
    db: AsyncSession, user_id: Union[int, str], unread_only: bool = False, skip: int = 0, limit: int = 50
) -> List[Notification]:
    stmt = select(Notification).filter(Notification.user_id == str(user_id))
    if unread_only:
        stmt = stmt.filter(Notification.is_read == False)
    result = await db.execute(stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit))
    return result.scalars().all()


async def mark_as_read(db: AsyncSession, notification_id: int, user_id: Union[int, str]) -> bool:
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == str(user_id))
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount > 0
