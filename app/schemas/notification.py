from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: int
    user_id: str
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool = False
    created_at: datetime

    class Config:
        from_attributes = True
