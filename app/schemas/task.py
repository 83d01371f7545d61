from typing import Optional
from pydantic import BaseModel, validator
from datetime import datetime
from enum import Enum as PyEnum


class TaskStatus(str, PyEnum):
    OPEN = "open"
    PENDING = "pending"
    ON_HOLD = "on_hold"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TaskPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _lower_choice(v, choices):
    if v is None:
        return v
    v = str(v).strip().lower()
    if v not in choices:
        raise ValueError(f"Must be one of {sorted(choices)}")
    return v


class TaskBase(BaseModel):
    title: str
    description: Optional[str] = None
    status: str = TaskStatus.OPEN.value
    priority: str = TaskPriority.MEDIUM.value
    category: Optional[str] = None
    customer_email: Optional[str] = None
    department_id: Optional[int] = None
    assignee_id: Optional[int] = None

    @validator("status")
    def validate_status(cls, v):
        return _lower_choice(v, {s.value for s in TaskStatus})

    @validator("priority")
    def validate_priority(cls, v):
        return _lower_choice(v, {p.value for p in TaskPriority})


class TicketCreate(TaskBase):
    workspace_id: int


class TicketUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    customer_email: Optional[str] = None
    department_id: Optional[int] = None
    assignee_id: Optional[int] = None

    @validator("status")
    def validate_status(cls, v):
        return _lower_choice(v, {s.value for s in TaskStatus})

    @validator("priority")
    def validate_priority(cls, v):
        return _lower_choice(v, {p.value for p in TaskPriority})


class Ticket(BaseModel):
    id: int
    ticket_number: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    category: Optional[str] = None
    customer_email: Optional[str] = None
    department_id: Optional[int] = None
    assignee_id: Optional[int] = None
    previous_owner_id: Optional[int] = None
    is_claimable: bool = False
    unassigned_reason: Optional[str] = None
    workspace_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
