from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import insert, select

from app.models.activity import TicketActivity

SYSTEM_ACTOR = "system"
SYSTEM_ACTOR_NAME = "System"


def build_activity(
    ticket_number: str,
    activity_type: str,
    *,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    performed_by: str = SYSTEM_ACTOR,
    performed_by_name: Optional[str] = SYSTEM_ACTOR_NAME,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "ticket_number": ticket_number,
        "activity_type": activity_type,
        "old_value": old_value,
        "new_value": new_value,
        "performed_by": performed_by,
        "performed_by_name": performed_by_name,
        "reason": reason,
    }


async def bulk_create_activities(db: AsyncSession, activities: List[Dict[str, Any]]) -> int:
    """Insert many activity rows in one statement. Does not commit."""
    if not activities:
        return 0
    await db.execute(insert(TicketActivity), activities)
    return len(activities)


async def log_activity(db: AsyncSession, activity: Dict[str, Any]) -> TicketActivity:
    db_activity = TicketActivity(**activity)
    db.add(db_activity)
    await db.commit()
    await db.refresh(db_activity)
    return db_activity


async def get_ticket_activities(
    db: AsyncSession, ticket_number: str, skip: int = 0, limit: int = 100
) -> List[TicketActivity]:
    result = await db.execute(
        select(TicketActivity)
        .filter(TicketActivity.ticket_number == ticket_number)
        .order_by(TicketActivity.created_at, TicketActivity.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()
