from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, validator


class AgentLeaveSnapshot(BaseModel):
    id: int
    status: str
    leave_from: Optional[datetime] = None
    leave_to: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeaveResult(BaseModel):
    """Outcome of a leave operation. Failures carry ``error`` instead of raising."""
    success: bool
    error: Optional[str] = None
    unassigned_count: Optional[int] = None
    agent: Optional[AgentLeaveSnapshot] = None
    status: Optional[str] = None
    leave_from: Optional[datetime] = None
    leave_to: Optional[datetime] = None


class LeaveStatusRequest(BaseModel):
    status: str
    leave_from: Optional[datetime] = Field(None, alias="from")
    leave_to: Optional[datetime] = Field(None, alias="to")

    class Config:
        populate_by_name = True

    @validator("status")
    def status_must_be_valid(cls, v):
        if v not in ("ON_LEAVE", "ACTIVE"):
            raise ValueError('Invalid status. Must be "ON_LEAVE" or "ACTIVE"')
        return v


class AdminLeaveStatusRequest(LeaveStatusRequest):
    agent_id: int = Field(..., alias="agentId")


class LeaveStatusResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    status: str
    leave_from: Optional[datetime] = None
    leave_to: Optional[datetime] = None
    unassigned_count: Optional[int] = None


class LeaveHistoryRead(BaseModel):
    id: int
    agent_id: int
    start_date: datetime
    end_date: Optional[datetime] = None
    status: str

    class Config:
        from_attributes = True


class LeaveHistoryList(BaseModel):
    agent_id: int
    history: List[LeaveHistoryRead] = []
