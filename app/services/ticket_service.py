import random
import string
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.automation.engine import run_automation
from app.models.task import Task
from app.models.workflow import TriggerType
from app.schemas.task import TicketCreate, TicketUpdate
from app.services import sla_service, webhook_service
from app.services.activity import build_activity, log_activity
from app.utils.logger import logger
from app.utils.time import utc_now

CLOSED_STATUSES = ("resolved", "closed")


def generate_ticket_number() -> str:
    """TKT-YYMM-DD-XXX with three random uppercase letters."""
    now = utc_now()
    suffix = "".join(random.choices(string.ascii_uppercase, k=3))
    return f"TKT-{now:%y%m}-{now:%d}-{suffix}"


def ticket_payload(task: Task) -> Dict[str, Any]:
    return {c.name: getattr(task, c.name) for c in Task.__table__.columns}


async def get_ticket(db: AsyncSession, task_id: int) -> Optional[Task]:
    result = await db.execute(select(Task).filter(Task.id == task_id))
    return result.scalars().first()


async def get_ticket_with_relations(db: AsyncSession, task_id: int) -> Task:
    """
    Load a ticket with the relations workflow conditions may walk
    (``assignee.name``, ``workspace.subdomain``). An instance already in
    the session is refreshed in place.
    """
    result = await db.execute(
        select(Task)
        .options(
            selectinload(Task.assignee),
            selectinload(Task.previous_owner),
            selectinload(Task.workspace),
        )
        .filter(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().one()


async def get_tickets(db: AsyncSession, workspace_id: int, skip: int = 0, limit: int = 100) -> List[Task]:
    result = await db.execute(
        select(Task).filter(Task.workspace_id == workspace_id).order_by(Task.created_at.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all()


async def create_ticket(db: AsyncSession, ticket_in: TicketCreate) -> Task:
    """Create a ticket, start its SLA clocks and fire TICKET_CREATED automations."""
    task = Task(**ticket_in.model_dump(), ticket_number=generate_ticket_number())
    db.add(task)
    await db.commit()
    await db.refresh(task)

    try:
        await sla_service.start_timers(db, task.ticket_number, task.priority, task.department_id, task.category)
    except Exception as e:
        logger.error(
            f"Error starting SLA timers for ticket {task.ticket_number}: {e}",
            extra={"task_id": task.id},
            exc_info=True,
        )
        await db.rollback()
        await db.refresh(task)

    task = await get_ticket_with_relations(db, task.id)
    result = await run_automation(db, task, TriggerType.TICKET_CREATED)
    if result.matched_workflows:
        logger.info(f"Executed workflows for ticket creation {task.id}: {result.matched_workflows}")

    # Actions write straight to the table
    task = await get_ticket_with_relations(db, task.id)
    await webhook_service.trigger_webhook(db, "ticket.created", ticket_payload(task))
    return task


async def update_ticket(db: AsyncSession, task_id: int, ticket_in: TicketUpdate) -> Optional[Task]:
    """
    Apply a partial update, then fire TICKET_UPDATED with the names of the
    columns that actually changed. Any assignee change, including
    unassignment, also fires TICKET_ASSIGNED.
    """
    task = await get_ticket(db, task_id)
    if not task:
        return None

    old_assignee_id = task.assignee_id
    update_data = ticket_in.model_dump(exclude_unset=True)
    changed_fields = [field for field, value in update_data.items() if getattr(task, field) != value]
    for field in changed_fields:
        setattr(task, field, update_data[field])

    if "assignee_id" in changed_fields:
        task.is_claimable = False
        task.unassigned_reason = None

    await db.commit()
    await db.refresh(task)

    if not changed_fields:
        return task

    if "assignee_id" in changed_fields:
        await log_activity(db, build_activity(
            task.ticket_number,
            "assigned" if task.assignee_id else "unassigned",
            old_value=str(old_assignee_id) if old_assignee_id else None,
            new_value=str(task.assignee_id) if task.assignee_id else None,
        ))

    if "status" in changed_fields and task.status in CLOSED_STATUSES:
        try:
            await sla_service.complete_timer(db, task.ticket_number)
        except Exception as e:
            logger.error(f"Error completing SLA timers for ticket {task.ticket_number}: {e}", exc_info=True)
            await db.rollback()
            await db.refresh(task)

    task = await get_ticket_with_relations(db, task_id)
    await run_automation(db, task, TriggerType.TICKET_UPDATED, changed_fields)
    if "assignee_id" in changed_fields:
        task = await get_ticket_with_relations(db, task_id)
        await run_automation(db, task, TriggerType.TICKET_ASSIGNED, changed_fields)

    task = await get_ticket_with_relations(db, task_id)
    await webhook_service.trigger_webhook(
        db, "ticket.updated", {**ticket_payload(task), "changed_fields": changed_fields}
    )
    return task


async def assign_ticket(db: AsyncSession, task_id: int, agent_id: Optional[int]) -> Optional[Task]:
    return await update_ticket(db, task_id, TicketUpdate(assignee_id=agent_id))
