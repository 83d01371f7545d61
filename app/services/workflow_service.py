from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, select
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status
import logging

from app.automation.field_registry import FIELD_REGISTRY
from app.models.workflow import Workflow, WorkflowCondition, WorkflowAction
from app.schemas.workflow import WorkflowCreate, WorkflowUpdate, FieldDefinition
from app.utils.time import utc_now

logger = logging.getLogger(__name__)


class WorkflowService:

    @staticmethod
    def _build_children(db_workflow: Workflow, workflow_data: WorkflowCreate) -> None:
        db_workflow.conditions = [
            WorkflowCondition(field=c.field, operator=c.operator, value=c.value)
            for c in workflow_data.conditions
        ]
        # Actions without an explicit order keep their list position
        db_workflow.actions = [
            WorkflowAction(
                action_type=a.action_type,
                payload=a.payload,
                order=a.order if a.order is not None else index,
            )
            for index, a in enumerate(workflow_data.actions)
        ]

    @staticmethod
    async def get_workflows(db: AsyncSession, workspace_id: Optional[int] = None, skip: int = 0, limit: int = 100) -> List[Workflow]:
        """All workflows, newest first"""
        stmt = select(Workflow).options(selectinload(Workflow.conditions), selectinload(Workflow.actions))
        if workspace_id is not None:
            stmt = stmt.filter(Workflow.workspace_id == workspace_id)
        result = await db.execute(stmt.order_by(Workflow.created_at.desc(), Workflow.id.desc()).offset(skip).limit(limit))
        return result.scalars().all()

    @staticmethod
    async def get_workflow(db: AsyncSession, workflow_id: int, workspace_id: Optional[int] = None) -> Optional[Workflow]:
        stmt = select(Workflow).options(
            selectinload(Workflow.conditions), selectinload(Workflow.actions)
        ).filter(Workflow.id == workflow_id)
        if workspace_id is not None:
            stmt = stmt.filter(Workflow.workspace_id == workspace_id)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_workflow_or_404(db: AsyncSession, workflow_id: int, workspace_id: Optional[int]) -> Workflow:
        db_workflow = await WorkflowService.get_workflow(db, workflow_id, workspace_id)
        if not db_workflow:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Workflow not found"
            )
        return db_workflow

    @staticmethod
    async def _ensure_unique_name(db: AsyncSession, name: str, workspace_id: Optional[int], exclude_id: Optional[int] = None) -> None:
        stmt = select(Workflow.id).filter(and_(Workflow.name == name, Workflow.workspace_id == workspace_id))
        if exclude_id is not None:
            stmt = stmt.filter(Workflow.id != exclude_id)
        result = await db.execute(stmt)
        if result.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A workflow with this name already exists in this workspace"
            )

    @staticmethod
    async def create_workflow(db: AsyncSession, workflow_data: WorkflowCreate, workspace_id: Optional[int] = None) -> Workflow:
        await WorkflowService._ensure_unique_name(db, workflow_data.name, workspace_id)

        db_workflow = Workflow(
            name=workflow_data.name,
            description=workflow_data.description,
            trigger=workflow_data.trigger,
            is_active=workflow_data.is_active,
            workspace_id=workspace_id,
        )
        WorkflowService._build_children(db_workflow, workflow_data)

        db.add(db_workflow)
        await db.commit()

        logger.info(f"Created workflow {db_workflow.name} for workspace {workspace_id}")
        return await WorkflowService.get_workflow(db, db_workflow.id)

    @staticmethod
    async def update_workflow(db: AsyncSession, workflow_id: int, workflow_data: WorkflowUpdate, workspace_id: Optional[int] = None) -> Workflow:
        """Replace a workflow's fields, conditions and actions"""
        db_workflow = await WorkflowService.get_workflow_or_404(db, workflow_id, workspace_id)

        if workflow_data.name != db_workflow.name:
            await WorkflowService._ensure_unique_name(db, workflow_data.name, db_workflow.workspace_id, exclude_id=workflow_id)

        db_workflow.name = workflow_data.name
        db_workflow.description = workflow_data.description
        db_workflow.trigger = workflow_data.trigger
        if workflow_data.is_active is not None:
            db_workflow.is_active = workflow_data.is_active
        WorkflowService._build_children(db_workflow, workflow_data)
        db_workflow.updated_at = utc_now()

        await db.commit()

        logger.info(f"Updated workflow {db_workflow.name} for workspace {db_workflow.workspace_id}")
        db.expunge(db_workflow)
        return await WorkflowService.get_workflow(db, workflow_id)

    @staticmethod
    async def toggle_workflow(db: AsyncSession, workflow_id: int, is_active: bool, workspace_id: Optional[int] = None) -> Workflow:
        db_workflow = await WorkflowService.get_workflow_or_404(db, workflow_id, workspace_id)

        db_workflow.is_active = is_active
        db_workflow.updated_at = utc_now()
        await db.commit()

        status_text = "enabled" if is_active else "disabled"
        logger.info(f"Workflow {db_workflow.name} {status_text} for workspace {db_workflow.workspace_id}")
        return db_workflow

    @staticmethod
    async def delete_workflow(db: AsyncSession, workflow_id: int, workspace_id: Optional[int] = None) -> bool:
        db_workflow = await WorkflowService.get_workflow_or_404(db, workflow_id, workspace_id)

        await db.delete(db_workflow)
        await db.commit()

        logger.info(f"Deleted workflow {db_workflow.name} for workspace {db_workflow.workspace_id}")
        return True

    @staticmethod
    def get_available_fields() -> List[FieldDefinition]:
        return [FieldDefinition(key=key, **definition) for key, definition in FIELD_REGISTRY.items()]
