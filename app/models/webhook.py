from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.database.base_class import Base
from app.utils.time import utc_now


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    url = Column(String(1000), nullable=False)
    method = Column(String(10), default="POST", nullable=False)
    events = Column(JSON, nullable=False, default=list)  # ["ticket.created", "*"]
    headers = Column(JSON, nullable=True)
    secret = Column(String(255), nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    retry_count = Column(Integer, nullable=True)
    timeout = Column(Integer, nullable=True)  # seconds
    created_at = Column(DateTime, default=utc_now, nullable=False)

    logs = relationship("WebhookLog", back_populates="webhook", cascade="all, delete-orphan")


class WebhookLog(Base):
    """One row per delivery attempt"""
    __tablename__ = "webhook_logs"

    id = Column(Integer, primary_key=True, index=True)
    webhook_id = Column(Integer, ForeignKey("webhooks.id", ondelete="CASCADE"), nullable=False, index=True)
    event = Column(String(100), nullable=False)
    payload = Column(Text, nullable=False)
    response_code = Column(Integer, nullable=True)
    response_body = Column(Text, nullable=True)
    success = Column(Boolean, default=False, nullable=False)
    error_message = Column(Text, nullable=True)
    attempt_number = Column(Integer, default=1, nullable=False)
    duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    webhook = relationship("Webhook", back_populates="logs")
