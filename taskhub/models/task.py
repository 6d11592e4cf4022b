"""Task and task share models."""
import enum

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from taskhub.database import Base
from taskhub.db.types import UTCDateTime
from taskhub.utils.time import utc_now


class TaskStatus(str, enum.Enum):
    """Task status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SharePermission(str, enum.Enum):
    """Access level granted by a share."""

    VIEW = "view"
    EDIT = "edit"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Task(Base):
    """Task owned by a single user, optionally shared with others."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(TaskStatus, name="task_status", native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True,
    )
    priority = Column(
        Enum(TaskPriority, name="task_priority", native_enum=False, length=10, values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
        index=True,
    )
    due_date = Column(UTCDateTime(), nullable=True, index=True)
    completed_at = Column(UTCDateTime(), nullable=True)
    owner_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(UTCDateTime(), default=utc_now, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )

    # Relationships
    owner = relationship("User", back_populates="tasks")
    shares = relationship(
        "TaskShare",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskShare.id",
    )
    activities = relationship(
        "TaskActivity",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TaskShare(Base):
    """Grant of view or edit access on one task to one non-owner user."""

    __tablename__ = "task_shares"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="uq_task_shares_task_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(
        Enum(SharePermission, name="share_permission", native_enum=False, length=10, values_callable=_enum_values),
        nullable=False,
        default=SharePermission.VIEW,
    )
    created_at = Column(UTCDateTime(), default=utc_now, server_default=func.now(), nullable=False)

    # Relationships
    task = relationship("Task", back_populates="shares")
    user = relationship("User", back_populates="task_shares")
