"""
Leave management: agent availability and the ticket reassignment it causes.

Putting an agent on leave releases every open ticket they own back to the
claimable pool. The status change, the leave history row, the ticket
updates and their activity log rows are written in one transaction.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundException
from app.database.session import transaction
from app.models.agent import Agent, LeaveHistory, AGENT_ACTIVE, AGENT_ON_LEAVE, LEAVE_ON_LEAVE, LEAVE_RETURNED
from app.models.task import Task
from app.schemas.leave import AgentLeaveSnapshot, LeaveResult
from app.services.activity import build_activity, bulk_create_activities
from app.utils.logger import leave_logger as logger
from app.utils.time import utc_now, to_naive_utc

LEAVE_UNASSIGN_REASON_TEXT = "Agent marked on leave"


async def _lock_agent(db: AsyncSession, agent_id: int) -> Agent:
    result = await db.execute(select(Agent).filter(Agent.id == agent_id).with_for_update())
    agent = result.scalars().first()
    if not agent:
        raise NotFoundException("Agent not found")
    return agent


async def _open_leave_record(db: AsyncSession, agent_id: int) -> Optional[LeaveHistory]:
    result = await db.execute(
        select(LeaveHistory)
        .filter(
            LeaveHistory.agent_id == agent_id,
            LeaveHistory.status == LEAVE_ON_LEAVE,
            LeaveHistory.end_date.is_(None),
        )
        .order_by(LeaveHistory.id.desc())
    )
    return result.scalars().first()


async def set_agent_on_leave(
    db: AsyncSession,
    agent_id: int,
    leave_from: Optional[datetime] = None,
    leave_to: Optional[datetime] = None,
) -> LeaveResult:
    """
    Mark an agent ON_LEAVE and release their open tickets.

    Every ticket assigned to the agent whose status is not closed is
    unassigned, remembers the agent as previous owner and becomes
    claimable. Returns ``success=False`` with an error message on any
    failure, in which case nothing was written.
    """
    leave_from = to_naive_utc(leave_from)
    leave_to = to_naive_utc(leave_to)
    if leave_from and leave_to and leave_from > leave_to:
        return LeaveResult(success=False, error='"from" date must be before "to" date')

    try:
        async with transaction(db):
            agent = await _lock_agent(db, agent_id)

            agent.status = AGENT_ON_LEAVE
            agent.leave_from = leave_from
            agent.leave_to = leave_to
            await db.flush()

            # Keep a single open leave period per agent
            open_record = await _open_leave_record(db, agent_id)
            start_date = leave_from or utc_now()
            if open_record:
                open_record.start_date = start_date
            else:
                db.add(LeaveHistory(
                    agent_id=agent_id,
                    start_date=start_date,
                    end_date=None,
                    status=LEAVE_ON_LEAVE,
                ))

            result = await db.execute(
                select(Task).filter(
                    Task.assignee_id == agent_id,
                    func.lower(Task.status).not_in(settings.LEAVE_CLOSED_STATUSES),
                )
            )
            active_tickets = result.scalars().all()

            activity_logs = []
            for ticket in active_tickets:
                ticket.previous_owner_id = ticket.assignee_id
                ticket.assignee_id = None
                ticket.is_claimable = True
                ticket.unassigned_reason = settings.LEAVE_UNASSIGNED_REASON
                activity_logs.append(build_activity(
                    ticket.ticket_number,
                    "unassigned",
                    old_value=agent.name,
                    new_value=None,
                    reason=LEAVE_UNASSIGN_REASON_TEXT,
                ))

            await db.flush()
            unassigned_count = await bulk_create_activities(db, activity_logs)
            snapshot = AgentLeaveSnapshot.model_validate(agent)

    except NotFoundException as e:
        return LeaveResult(success=False, error=str(e))
    except Exception as e:
        logger.error(f"[Leave Service] Error setting agent on leave: {e}", extra={"agent_id": agent_id}, exc_info=True)
        return LeaveResult(success=False, error=str(e) or "Failed to set agent on leave")

    logger.info(f"[Leave Service] Agent {agent_id} set on leave. Unassigned {unassigned_count} tickets.")
    return LeaveResult(
        success=True,
        unassigned_count=unassigned_count,
        agent=snapshot,
        status=snapshot.status,
        leave_from=snapshot.leave_from,
        leave_to=snapshot.leave_to,
    )


async def set_agent_active(db: AsyncSession, agent_id: int) -> LeaveResult:
    """Return an agent from leave and close their open leave period."""
    try:
        async with transaction(db):
            agent = await _lock_agent(db, agent_id)

            agent.status = AGENT_ACTIVE
            agent.leave_from = None
            agent.leave_to = None

            await db.execute(
                update(LeaveHistory)
                .where(
                    LeaveHistory.agent_id == agent_id,
                    LeaveHistory.status == LEAVE_ON_LEAVE,
                    LeaveHistory.end_date.is_(None),
                )
                .values(end_date=utc_now(), status=LEAVE_RETURNED)
            )
            await db.flush()
            snapshot = AgentLeaveSnapshot.model_validate(agent)

    except NotFoundException as e:
        return LeaveResult(success=False, error=str(e))
    except Exception as e:
        logger.error(f"[Leave Service] Error setting agent active: {e}", extra={"agent_id": agent_id}, exc_info=True)
        return LeaveResult(success=False, error=str(e) or "Failed to set agent active")

    logger.info(f"[Leave Service] Agent {agent_id} set to active.")
    return LeaveResult(
        success=True,
        agent=snapshot,
        status=snapshot.status,
        leave_from=snapshot.leave_from,
        leave_to=snapshot.leave_to,
    )


async def get_agent_leave_status(db: AsyncSession, agent_id: int) -> LeaveResult:
    try:
        result = await db.execute(select(Agent).filter(Agent.id == agent_id))
        agent = result.scalars().first()
    except Exception as e:
        logger.error(f"[Leave Service] Error getting agent leave status: {e}", extra={"agent_id": agent_id}, exc_info=True)
        return LeaveResult(success=False, error=str(e) or "Failed to get agent leave status")

    if not agent:
        return LeaveResult(success=False, error="Agent not found")

    return LeaveResult(
        success=True,
        status=agent.status or AGENT_ACTIVE,
        leave_from=agent.leave_from,
        leave_to=agent.leave_to,
    )


async def get_leave_history(db: AsyncSession, agent_id: int) -> List[LeaveHistory]:
    result = await db.execute(
        select(LeaveHistory).filter(LeaveHistory.agent_id == agent_id).order_by(LeaveHistory.start_date.desc(), LeaveHistory.id.desc())
    )
    return result.scalars().all()
