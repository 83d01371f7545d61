from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_current_active_user
from app.models.agent import Agent
from app.schemas.sla import SLATimerStatus
from app.services import sla_service

router = APIRouter()


@router.get("/timers", response_model=List[SLATimerStatus])
async def get_sla_timers(
    status: Optional[str] = Query(None),
    ticket_number: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    """SLA timers with elapsed and remaining time computed now, most urgent first"""
    return await sla_service.list_timers(db, status=status, ticket_number=ticket_number)
