"""Task schemas."""
import enum
from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from taskhub.models.task import SharePermission, TaskPriority, TaskStatus
from taskhub.schemas.common import CamelModel, ensure_utc
from taskhub.schemas.user import UserResponse
from taskhub.utils.permissions import TaskPermission


class DueDateFilter(str, enum.Enum):
    TODAY = "today"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


class TaskSortBy(str, enum.Enum):
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED = "created"
    TITLE = "title"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class TaskCreate(CamelModel):
    """Task creation schema. The owner always comes from the session."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class TaskUpdate(CamelModel):
    """Partial task update schema."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("due_date", "completed_at")
    @classmethod
    def datetimes_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("title", "status", "priority"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class TaskResponse(CamelModel):
    """Task response schema."""

    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class TaskShareResponse(CamelModel):
    """Task share response schema."""

    id: int
    task_id: int
    user_id: str
    permission: SharePermission
    created_at: datetime


class TaskShareWithUserResponse(TaskShareResponse):
    user: UserResponse


class TaskWithDetailsResponse(TaskResponse):
    """Task enriched with its owner, shares and the caller's permission."""

    owner: UserResponse
    shares: List[TaskShareWithUserResponse] = []
    permission: Optional[TaskPermission] = None


class TaskListResponse(CamelModel):
    tasks: List[TaskWithDetailsResponse]
    total: int
    page: int
    limit: int


class TaskShareCreate(CamelModel):
    """Body of a share request."""

    email: EmailStr
    permission: SharePermission
