from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import enum

from app.database.base_class import Base
from app.utils.time import utc_now


class TriggerType(str, enum.Enum):
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_UPDATED = "TICKET_UPDATED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"


class ActionType(str, enum.Enum):
    ASSIGN_AGENT = "ASSIGN_AGENT"
    UPDATE_STATUS = "UPDATE_STATUS"
    SET_PRIORITY = "SET_PRIORITY"
    ADD_TAG = "ADD_TAG"
    SEND_EMAIL = "SEND_EMAIL"
    SEND_NOTIFICATION = "SEND_NOTIFICATION"
    UPDATE_FIELD = "UPDATE_FIELD"


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    # Stored as plain strings so rows written by other tools never fail to load
    trigger = Column(String(100), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    workspace_id = Column(Integer, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    workspace = relationship("Workspace", back_populates="workflows")
    conditions = relationship(
        "WorkflowCondition",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowCondition.id",
    )
    actions = relationship(
        "WorkflowAction",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by=lambda: [WorkflowAction.order, WorkflowAction.id],
    )


class WorkflowCondition(Base):
    __tablename__ = "workflow_conditions"

    id = Column(Integer, primary_key=True, index=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False)
    field = Column(String(255), nullable=False)  # dotted path, e.g. "assignee.name"
    operator = Column(String(50), nullable=False)
    value = Column(Text, nullable=True)

    workflow = relationship("Workflow", back_populates="conditions")


class WorkflowAction(Base):
    __tablename__ = "workflow_actions"

    id = Column(Integer, primary_key=True, index=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False)
    action_type = Column(String(50), nullable=False)
    payload = Column(Text, nullable=True)  # JSON object, shape depends on action_type
    order = Column(Integer, default=0, nullable=False)

    workflow = relationship("Workflow", back_populates="actions")
