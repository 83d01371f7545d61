from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel


class SLAPolicyCreate(BaseModel):
    name: str
    is_active: bool = True
    is_default: bool = False
    response_times: Dict[str, int] = {}
    resolution_times: Dict[str, int] = {}
    department_ids: Optional[List[int]] = None
    categories: Optional[List[str]] = None
    use_business_hours: bool = False
    pause_off_hours: bool = False
    business_hours: Optional[Dict[str, str]] = None
    timezone: str = "UTC"
    holidays: Optional[List[str]] = None


class SLATimerRead(BaseModel):
    id: int
    ticket_number: str
    policy_id: int
    timer_type: str
    status: str
    target_minutes: int
    initial_priority: Optional[str] = None
    started_at: datetime
    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    total_paused_minutes: int = 0
    completed_at: Optional[datetime] = None
    breached_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SLATimerStatus(SLATimerRead):
    """Timer plus the figures derived at read time."""
    elapsed_minutes: int
    remaining_minutes: int
    percentage_elapsed: float
    display_status: str
