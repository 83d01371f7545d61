from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_current_active_user, get_current_active_admin, check_self_or_admin
from app.models.agent import Agent, AGENT_ON_LEAVE
from app.schemas.leave import (
    AdminLeaveStatusRequest,
    LeaveHistoryList,
    LeaveHistoryRead,
    LeaveResult,
    LeaveStatusRequest,
    LeaveStatusResponse,
)
from app.services import leave_service
from app.utils.logger import leave_logger as logger

router = APIRouter()


async def _apply_leave_status(db: AsyncSession, agent_id: int, request: LeaveStatusRequest) -> LeaveStatusResponse:
    if request.status == AGENT_ON_LEAVE:
        result = await leave_service.set_agent_on_leave(db, agent_id, request.leave_from, request.leave_to)
    else:
        result = await leave_service.set_agent_active(db, agent_id)

    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)

    return _to_response(request.status, result)


def _to_response(requested_status: str, result: LeaveResult) -> LeaveStatusResponse:
    if requested_status == AGENT_ON_LEAVE:
        message = f"Set on leave. {result.unassigned_count or 0} tickets unassigned."
    else:
        message = "Set to active."
    return LeaveStatusResponse(
        message=message,
        status=result.status,
        leave_from=result.leave_from,
        leave_to=result.leave_to,
        unassigned_count=result.unassigned_count,
    )


@router.get("/agents/me/leave-status", response_model=LeaveStatusResponse)
async def get_my_leave_status(
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    result = await leave_service.get_agent_leave_status(db, current_user.id)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    return LeaveStatusResponse(status=result.status, leave_from=result.leave_from, leave_to=result.leave_to)


@router.post("/agents/me/leave-status", response_model=LeaveStatusResponse)
async def update_my_leave_status(
    request: LeaveStatusRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    """Toggle the caller's own leave status"""
    return await _apply_leave_status(db, current_user.id, request)


@router.post("/admin/agents/leave-status", response_model=LeaveStatusResponse)
async def update_agent_leave_status(
    request: AdminLeaveStatusRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    """Set any agent of the admin's workspace on leave or back to active"""
    agent = await db.get(Agent, request.agent_id)
    if not agent or agent.workspace_id != current_user.workspace_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent not found")

    logger.info(f"Admin {current_user.id} setting agent {request.agent_id} to {request.status}")
    return await _apply_leave_status(db, request.agent_id, request)


@router.get("/agents/{agent_id}/leave-history", response_model=LeaveHistoryList)
async def get_agent_leave_history(
    agent_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_user),
):
    check_self_or_admin(current_user, agent_id)
    history = await leave_service.get_leave_history(db, agent_id)
    return LeaveHistoryList(
        agent_id=agent_id,
        history=[LeaveHistoryRead.model_validate(record) for record in history],
    )
