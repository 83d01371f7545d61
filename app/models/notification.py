from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime

from app.database.base_class import Base
from app.utils.time import utc_now


class Notification(Base):
    """In-app notification shown to a single recipient"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    type = Column(String(100), nullable=False)  # 'automation', 'assignment', ...
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now)
