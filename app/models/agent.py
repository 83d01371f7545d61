from sqlalchemy import Column, Integer, String, Enum, DateTime, func, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database.base_class import Base

AGENT_ACTIVE = "ACTIVE"
AGENT_ON_LEAVE = "ON_LEAVE"

LEAVE_ON_LEAVE = "ON_LEAVE"
LEAVE_RETURNED = "RETURNED"


class Agent(Base):
    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False, index=True)
    role = Column(Enum('admin', 'agent', 'manager', name='agent_role'), default='agent', nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    status = Column(Enum(AGENT_ACTIVE, AGENT_ON_LEAVE, name='agent_status'), default=AGENT_ACTIVE, nullable=False)
    leave_from = Column(DateTime, nullable=True)
    leave_to = Column(DateTime, nullable=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    __table_args__ = (
        UniqueConstraint('email', 'workspace_id', name='uix_agent_email_workspace'),
    )
    workspace = relationship("Workspace", back_populates="agents")
    assigned_tasks = relationship("Task", back_populates="assignee", foreign_keys="[Task.assignee_id]")
    leave_history = relationship("LeaveHistory", back_populates="agent", cascade="all, delete-orphan", order_by="LeaveHistory.id")


class LeaveHistory(Base):
    """One row per leave period. end_date stays NULL while the period is open."""
    __tablename__ = "leave_history"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    status = Column(Enum(LEAVE_ON_LEAVE, LEAVE_RETURNED, name='leave_status'), default=LEAVE_ON_LEAVE, nullable=False)
    created_at = Column(DateTime, default=func.now())

    agent = relationship("Agent", back_populates="leave_history")
