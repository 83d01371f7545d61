"""
Workflow action execution.

Actions run strictly in the order they are given. Every action is its own
write: a bad payload, a missing field or a failing write skips that one
action and the rest of the list still runs.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.automation.conditions import get_field_value
from app.core.config import settings
from app.core.exceptions import NotFoundException
from app.services import notification_service
from app.models.task import Task
from app.models.workflow import ActionType
from app.schemas.automation import (
    ActionPayload,
    AssignAgentPayload,
    UpdateStatusPayload,
    SetPriorityPayload,
    AddTagPayload,
    SendEmailPayload,
    SendNotificationPayload,
    UpdateFieldPayload,
    PayloadError,
    parse_action_payload,
)
from app.utils.logger import automation_logger

# Columns an UPDATE_FIELD action may never overwrite
PROTECTED_TICKET_FIELDS = {"id", "ticket_number", "workspace_id", "created_at"}


@dataclass
class TicketRef:
    """How actions address the ticket row: by ticket number, falling back to id."""
    column: str
    value: Any

    @property
    def label(self) -> str:
        return str(self.value)

    def clause(self):
        return getattr(Task, self.column) == self.value


def resolve_ticket_ref(ticket: Any) -> Optional[TicketRef]:
    number = get_field_value(ticket, "ticket_number") or get_field_value(ticket, "ticketNumber")
    if number:
        return TicketRef("ticket_number", number)
    ticket_id = get_field_value(ticket, "id")
    if ticket_id is not None:
        return TicketRef("id", ticket_id)
    return None


def _coerce_id(value: Any) -> Any:
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


async def _update_ticket(db: AsyncSession, ref: TicketRef, values: Dict[str, Any]) -> None:
    result = await db.execute(update(Task).where(ref.clause()).values(**values))
    if result.rowcount == 0:
        raise NotFoundException(f"Ticket {ref.label} not found")
    await db.commit()


async def _assign_agent(db: AsyncSession, ref: TicketRef, payload: AssignAgentPayload, log: logging.Logger) -> bool:
    await _update_ticket(db, ref, {"assignee_id": _coerce_id(payload.agent_id)})
    log.info(f"[Automation] Assigned ticket {ref.label} to agent {payload.agent_id}")
    return True


async def _update_status(db: AsyncSession, ref: TicketRef, payload: UpdateStatusPayload, log: logging.Logger) -> bool:
    await _update_ticket(db, ref, {"status": payload.status})
    log.info(f"[Automation] Updated ticket {ref.label} status to {payload.status}")
    return True


async def _set_priority(db: AsyncSession, ref: TicketRef, payload: SetPriorityPayload, log: logging.Logger) -> bool:
    await _update_ticket(db, ref, {"priority": payload.priority})
    log.info(f"[Automation] Set ticket {ref.label} priority to {payload.priority}")
    return True


async def _add_tag(db: AsyncSession, ref: TicketRef, payload: AddTagPayload, log: logging.Logger) -> bool:
    # TODO: attach the tag once tickets have a tag relation
    log.info(f"[Automation] ADD_TAG: Not yet implemented for ticket {ref.label}")
    return False


async def _send_email(db: AsyncSession, ref: TicketRef, payload: SendEmailPayload, log: logging.Logger) -> bool:
    # TODO: route through the outbound mail service once it exists
    log.info(f"[Automation] SEND_EMAIL: Not yet implemented for ticket {ref.label}")
    return False


async def _send_notification(db: AsyncSession, ref: TicketRef, payload: SendNotificationPayload, log: logging.Logger) -> bool:
    await notification_service.create_notification(
        db,
        user_id=payload.user_id,
        type="automation",
        title=payload.title,
        message=payload.message,
        link=settings.AUTOMATION_NOTIFICATION_LINK.format(ticket_id=ref.label),
    )
    log.info(f"[Automation] Sent notification to user {payload.user_id} for ticket {ref.label}")
    return True


async def _update_field(db: AsyncSession, ref: TicketRef, payload: UpdateFieldPayload, log: logging.Logger) -> bool:
    if payload.field not in Task.__table__.columns or payload.field in PROTECTED_TICKET_FIELDS:
        log.warning(f"[Automation] UPDATE_FIELD: Field '{payload.field}' cannot be updated")
        return False

    await _update_ticket(db, ref, {payload.field: payload.value})
    log.info(f"[Automation] Updated ticket {ref.label} field {payload.field} to {payload.value}")
    return True


ActionHandler = Callable[[AsyncSession, TicketRef, ActionPayload, logging.Logger], Awaitable[bool]]

ACTION_HANDLERS: Dict[ActionType, ActionHandler] = {
    ActionType.ASSIGN_AGENT: _assign_agent,
    ActionType.UPDATE_STATUS: _update_status,
    ActionType.SET_PRIORITY: _set_priority,
    ActionType.ADD_TAG: _add_tag,
    ActionType.SEND_EMAIL: _send_email,
    ActionType.SEND_NOTIFICATION: _send_notification,
    ActionType.UPDATE_FIELD: _update_field,
}


def resolve_action_type(raw: Any) -> Optional[ActionType]:
    if isinstance(raw, ActionType):
        return raw
    try:
        return ActionType(str(raw).strip().upper())
    except ValueError:
        return None


async def execute_actions(
    db: AsyncSession,
    ticket: Any,
    actions: Optional[Iterable[Any]],
    workflow_id: Any,
    logger: Optional[logging.Logger] = None,
) -> List[str]:
    """
    Run a workflow's actions against a ticket, in the order given.

    Returns the action types that were applied. Never raises for a single
    action; failures are logged and the next action runs.
    """
    log = logger or automation_logger
    actions = list(actions or [])
    if not actions:
        log.info(f"[Automation] No actions to execute for workflow {workflow_id}")
        return []

    ref = resolve_ticket_ref(ticket)
    if ref is None:
        log.warning(f"[Automation] Ticket has no ticket_number or id, skipping actions of workflow {workflow_id}")
        return []

    applied: List[str] = []
    for action in actions:
        raw_type = get_field_value(action, "action_type")
        action_type = resolve_action_type(raw_type)
        if action_type is None:
            log.warning(f"[Automation] Unknown action type: {raw_type}")
            continue

        try:
            payload = parse_action_payload(action_type, get_field_value(action, "payload"))
        except PayloadError as e:
            log.error(
                f"[Automation] Failed to parse action payload: {e}",
                extra={"workflow_id": workflow_id, "action_type": action_type.value},
            )
            continue
        except ValidationError as e:
            log.warning(
                f"[Automation] {action_type.value}: {e.errors()[0].get('msg', 'invalid payload')}",
                extra={"workflow_id": workflow_id, "action_type": action_type.value},
            )
            continue

        try:
            log.info(f"[Automation] Executing action: {action_type.value} on ticket {ref.label}")
            if await ACTION_HANDLERS[action_type](db, ref, payload, log):
                applied.append(action_type.value)
        except Exception as e:
            log.error(
                f"[Automation] Error executing action {action_type.value}: {e}",
                extra={"workflow_id": workflow_id, "action_type": action_type.value, "ticket": ref.label},
                exc_info=True,
            )
            await db.rollback()
            continue

    return applied
