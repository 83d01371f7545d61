from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.sql.sqltypes import TIMESTAMP
from app.database.base_class import Base

class Workspace(Base):
    """Workspace (tenant) model for the database."""
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, index=True)
    subdomain = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    agents = relationship("Agent", back_populates="workspace")
    tasks = relationship("Task", back_populates="workspace", cascade="all, delete-orphan")
    workflows = relationship("Workflow", back_populates="workspace", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Workspace {self.subdomain}>"
