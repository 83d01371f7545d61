"""
Automation engine.

Called by ticket mutations after they commit. Loads the active workflows
for the trigger, checks each workflow's conditions against the ticket and
runs the actions of the ones that match. A broken workflow must never
block the ticket operation that fired it, so ``run`` reports failures in
its result instead of raising.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.automation.actions import execute_actions, resolve_ticket_ref
from app.automation.conditions import all_conditions_match, get_field_value, ticket_snapshot
from app.core.config import settings
from app.models.workflow import Workflow, TriggerType
from app.schemas.workflow import Workflow as WorkflowSchema
from app.utils.logger import automation_logger


@dataclass
class AutomationRunResult:
    trigger: str
    matched_workflows: List[str] = field(default_factory=list)
    skipped_workflows: List[str] = field(default_factory=list)
    executed_actions: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AutomationEngine:
    def __init__(self, db: AsyncSession, logger: Optional[logging.Logger] = None):
        self.db = db
        self.logger = logger or automation_logger

    async def load_workflows(self, trigger: str, workspace_id: Optional[int] = None) -> List[WorkflowSchema]:
        """Active workflows for a trigger, in creation order, as detached snapshots."""
        stmt = (
            select(Workflow)
            .options(selectinload(Workflow.conditions), selectinload(Workflow.actions))
            .filter(Workflow.trigger == trigger, Workflow.is_active == True)
            .order_by(Workflow.created_at, Workflow.id)
            .execution_options(populate_existing=True)
        )
        if workspace_id is not None:
            # Workflows without a workspace apply to every tenant
            stmt = stmt.filter(or_(Workflow.workspace_id == workspace_id, Workflow.workspace_id.is_(None)))

        result = await self.db.execute(stmt)
        workflows = result.scalars().all()
        # Snapshots survive the rollbacks a failing action may cause
        return [WorkflowSchema.model_validate(workflow) for workflow in workflows]

    async def run(
        self,
        ticket: Any,
        trigger_type: Union[TriggerType, str],
        changed_fields: Optional[Iterable[str]] = None,
    ) -> AutomationRunResult:
        trigger = trigger_type.value if isinstance(trigger_type, TriggerType) else str(trigger_type)
        run_result = AutomationRunResult(trigger=trigger)

        if not settings.AUTOMATION_ENABLED:
            self.logger.info(f"[Automation] Disabled, skipping trigger {trigger}")
            return run_result

        try:
            subject = ticket_snapshot(ticket)
            if changed_fields is not None:
                if isinstance(subject, dict):
                    subject = {**subject, "_changed_fields": list(changed_fields)}
                else:
                    setattr(subject, "_changed_fields", list(changed_fields))

            workflows = await self.load_workflows(trigger, get_field_value(subject, "workspace_id"))
            if not workflows:
                return run_result

            ref = resolve_ticket_ref(subject)
            ticket_label = ref.label if ref else "<unknown>"
            self.logger.info(f"[Automation] Found {len(workflows)} active workflow(s) for trigger: {trigger}")

            for workflow in workflows:
                try:
                    if all_conditions_match(subject, workflow.conditions, self.logger):
                        self.logger.info(f"[Automation] Workflow \"{workflow.name}\" matched for ticket {ticket_label}")
                        run_result.matched_workflows.append(workflow.name)
                        applied = await execute_actions(self.db, subject, workflow.actions, workflow.id, self.logger)
                        run_result.executed_actions.extend(applied)
                    else:
                        self.logger.info(f"[Automation] Workflow \"{workflow.name}\" did not match conditions")
                        run_result.skipped_workflows.append(workflow.name)
                except Exception as e:
                    self.logger.error(
                        f"[Automation] Error running workflow {workflow.id}: {e}",
                        extra={"workflow_id": workflow.id, "trigger": trigger},
                        exc_info=True,
                    )
                    continue

        except Exception as e:
            self.logger.error(
                f"[Automation] Error running automation for trigger {trigger}: {e}",
                extra={"trigger": trigger},
                exc_info=True,
            )
            run_result.error = str(e) or e.__class__.__name__
            await self._reset_session()

        return run_result

    async def _reset_session(self) -> None:
        # Leave the caller with a usable session after a failed query
        try:
            await self.db.rollback()
        except Exception as e:
            self.logger.error(f"[Automation] Could not roll back session: {e}", exc_info=True)


async def run_automation(
    db: AsyncSession,
    ticket: Any,
    trigger_type: Union[TriggerType, str],
    changed_fields: Optional[Iterable[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> AutomationRunResult:
    """
    Run every active workflow for ``trigger_type`` against ``ticket``.

    Never raises. Callers may ignore the result; ``result.error`` is set
    when the engine itself failed (for example the workflow query).
    """
    return await AutomationEngine(db, logger).run(ticket, trigger_type, changed_fields)
