from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.database.base_class import Base
from app.utils.time import utc_now


class SLAPolicy(Base):
    __tablename__ = "sla_policies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    # {"low": 240, "medium": 120, ...} minutes per ticket priority
    response_times = Column(JSON, nullable=False, default=dict)
    resolution_times = Column(JSON, nullable=False, default=dict)
    department_ids = Column(JSON, nullable=True)  # None = every department
    categories = Column(JSON, nullable=True)  # None = every category
    use_business_hours = Column(Boolean, default=False, nullable=False)
    pause_off_hours = Column(Boolean, default=False, nullable=False)
    business_hours = Column(JSON, nullable=True)  # {"monday": "09:00-18:00", "sunday": "closed", ...}
    timezone = Column(String(64), default="UTC", nullable=False)
    holidays = Column(JSON, nullable=True)  # ["2024-12-25", ...]
    created_at = Column(DateTime, default=utc_now, nullable=False)

    timers = relationship("SLATimer", back_populates="policy", cascade="all, delete-orphan")


class SLATimer(Base):
    """A response or resolution clock. Elapsed time is derived from timestamps on read."""
    __tablename__ = "sla_timers"

    id = Column(Integer, primary_key=True, index=True)
    ticket_number = Column(String(50), nullable=False, index=True)
    policy_id = Column(Integer, ForeignKey("sla_policies.id", ondelete="CASCADE"), nullable=False)
    timer_type = Column(String(20), nullable=False)  # 'response' | 'resolution'
    status = Column(String(20), default="running", nullable=False)  # running | paused | met | breached
    target_minutes = Column(Integer, nullable=False)
    initial_priority = Column(String(50), nullable=True)
    started_at = Column(DateTime, default=utc_now, nullable=False)
    paused_at = Column(DateTime, nullable=True)
    pause_reason = Column(String(255), nullable=True)
    total_paused_minutes = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    breached_at = Column(DateTime, nullable=True)

    policy = relationship("SLAPolicy", back_populates="timers")
