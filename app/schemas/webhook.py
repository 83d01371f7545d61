from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class WebhookConfig(BaseModel):
    """Detached copy of a webhook row used while delivering."""
    id: int
    name: str
    url: str
    method: Optional[str] = "POST"
    events: Any = []
    headers: Optional[Dict[str, str]] = None
    secret: Optional[str] = None
    enabled: bool = True
    retry_count: Optional[int] = None
    timeout: Optional[int] = None

    class Config:
        from_attributes = True


class WebhookCreate(BaseModel):
    name: str
    url: str
    method: str = "POST"
    events: List[str] = []
    headers: Optional[Dict[str, str]] = None
    secret: Optional[str] = None
    enabled: bool = True
    retry_count: Optional[int] = None
    timeout: Optional[int] = None
