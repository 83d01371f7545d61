from typing import Optional
from pydantic import BaseModel, validator
from datetime import datetime, timezone


class TokenPayload(BaseModel):
    sub: Optional[int] = None
    exp: Optional[datetime] = None

    @validator("exp")
    def check_expiration(cls, v):
        if v is not None:
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            if v < datetime.now(timezone.utc):
                raise ValueError("Token has expired")
        return v
