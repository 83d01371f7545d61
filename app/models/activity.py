from sqlalchemy import Column, Integer, String, Text, DateTime, func
from app.database.base_class import Base


class TicketActivity(Base):
    """Audit trail entry for a ticket (assignment changes, status changes, ...)."""
    __tablename__ = "ticket_activities"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    ticket_number = Column(String(50), nullable=False, index=True)
    activity_type = Column(String(50), nullable=False)
    old_value = Column(String(255), nullable=True)
    new_value = Column(String(255), nullable=True)
    performed_by = Column(String(100), nullable=False)
    performed_by_name = Column(String(100), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())
