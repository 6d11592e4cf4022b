"""User model."""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from taskhub.database import Base
from taskhub.db.types import UTCDateTime
from taskhub.utils.time import utc_now


class User(Base):
    """User identity record, keyed by the identity provider's subject id."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True, default="")
    avatar_url = Column(String(1024), nullable=True, default="")
    created_at = Column(UTCDateTime(), default=utc_now, server_default=func.now(), nullable=False)
    updated_at = Column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )

    # Relationships
    tasks = relationship("Task", back_populates="owner", passive_deletes=True)
    task_shares = relationship("TaskShare", back_populates="user", passive_deletes=True)
    activities = relationship("TaskActivity", back_populates="user", passive_deletes=True)
