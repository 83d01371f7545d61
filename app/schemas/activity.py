from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class TicketActivityRead(BaseModel):
    id: int
    ticket_number: str
    activity_type: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    performed_by: str
    performed_by_name: Optional[str] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
