from datetime import datetime, timedelta, timezone
from typing import Any, Union, Dict, Optional

from jose import jwt

from app.core.config import settings


def create_access_token(
    subject: Union[str, Any],
    expires_delta: timedelta = None,
    extra_data: Optional[Dict[str, Any]] = None
) -> str:
    """Signed bearer token whose ``sub`` is the agent id."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {"exp": expire, "sub": str(subject)}
    if extra_data:
        to_encode.update(extra_data)

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
