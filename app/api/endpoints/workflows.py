from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_current_active_admin
from app.models.agent import Agent
from app.schemas.workflow import (
    Workflow,
    WorkflowCreate,
    WorkflowUpdate,
    WorkflowToggle,
    FieldDefinition,
)
from app.services.workflow_service import WorkflowService

router = APIRouter()


@router.get("/fields", response_model=List[FieldDefinition])
async def get_workflow_fields(
    current_user: Agent = Depends(get_current_active_admin),
):
    """Condition fields offered by the workflow builder"""
    return WorkflowService.get_available_fields()


@router.get("", response_model=List[Workflow])
async def get_workflows(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    return await WorkflowService.get_workflows(db, current_user.workspace_id, skip, limit)


@router.post("", response_model=Workflow, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    workflow_data: WorkflowCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    return await WorkflowService.create_workflow(db, workflow_data, current_user.workspace_id)


@router.get("/{workflow_id}", response_model=Workflow)
async def get_workflow(
    workflow_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    return await WorkflowService.get_workflow_or_404(db, workflow_id, current_user.workspace_id)


@router.put("/{workflow_id}", response_model=Workflow)
async def update_workflow(
    workflow_id: int,
    workflow_data: WorkflowUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    return await WorkflowService.update_workflow(db, workflow_id, workflow_data, current_user.workspace_id)


@router.patch("/{workflow_id}", response_model=Workflow)
async def toggle_workflow(
    workflow_id: int,
    toggle_data: WorkflowToggle,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    """Enable or disable a workflow"""
    return await WorkflowService.toggle_workflow(db, workflow_id, toggle_data.is_active, current_user.workspace_id)


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Agent = Depends(get_current_active_admin),
):
    await WorkflowService.delete_workflow(db, workflow_id, current_user.workspace_id)
    return {"message": "Workflow deleted successfully"}
