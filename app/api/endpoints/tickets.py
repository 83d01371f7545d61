from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_current_active_user, check_workspace_access
from app.models.agent import Agent
from app.schemas.activity import TicketActivityRead
from app.schemas.task import Ticket, TicketCreate, TicketUpdate
from app.services import activity, ticket_service

router = APIRouter()


@router.get("", response_model=List[Ticket])
async def get_tickets(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    return await ticket_service.get_tickets(db, current_user.workspace_id, skip, limit)


@router.post("", response_model=Ticket, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    ticket_in: TicketCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    check_workspace_access(current_user, ticket_in.workspace_id)
    return await ticket_service.create_ticket(db, ticket_in)


@router.patch("/{task_id}", response_model=Ticket)
async def update_ticket(
    task_id: int,
    ticket_in: TicketUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    task = await ticket_service.get_ticket(db, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    check_workspace_access(current_user, task.workspace_id)
    return await ticket_service.update_ticket(db, task_id, ticket_in)


@router.get("/{task_id}/activities", response_model=List[TicketActivityRead])
async def get_ticket_activities(
    task_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    """Audit trail of a ticket, oldest first"""
    task = await ticket_service.get_ticket(db, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    check_workspace_access(current_user, task.workspace_id)
    return await activity.get_ticket_activities(db, task.ticket_number, skip, limit)
