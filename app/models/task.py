from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, func
from sqlalchemy.orm import relationship
from app.database.base_class import Base


class Task(Base):
    """Task model (also referred to as Ticket in the frontend)"""
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    ticket_number = Column(String(50), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(50), default='open', nullable=False, index=True)
    priority = Column(String(50), default='medium', nullable=False)
    category = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True)
    department_id = Column(Integer, nullable=True, index=True)
    assignee_id = Column(Integer, ForeignKey("agents.id", ondelete="SET NULL"), nullable=True, index=True)
    previous_owner_id = Column(Integer, ForeignKey("agents.id", ondelete="SET NULL"), nullable=True)
    is_claimable = Column(Boolean, default=False, nullable=False)
    unassigned_reason = Column(String(100), nullable=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    workspace = relationship("Workspace", back_populates="tasks")
    assignee = relationship("Agent", back_populates="assigned_tasks", foreign_keys=[assignee_id])
    previous_owner = relationship("Agent", foreign_keys=[previous_owner_id])
