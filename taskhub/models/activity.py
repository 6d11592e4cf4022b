"""Task activity (audit trail) model."""
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from taskhub.database import Base
from taskhub.db.types import JSONBType, UTCDateTime
from taskhub.utils.time import utc_now


class TaskActivity(Base):
    """Append-only record of one action taken on a task."""

    __tablename__ = "task_activities"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)  # created, updated, shared, unshared
    details = Column(JSONBType(), nullable=True)
    created_at = Column(UTCDateTime(), default=utc_now, server_default=func.now(), nullable=False, index=True)

    # Relationships
    task = relationship("Task", back_populates="activities")
    user = relationship("User", back_populates="activities")
