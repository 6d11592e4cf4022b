"""Schema modules."""
from taskhub.schemas.user import UserResponse
from taskhub.schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskResponse,
    TaskShareCreate,
    TaskShareResponse,
    TaskShareWithUserResponse,
    TaskWithDetailsResponse,
    TaskListResponse,
)
from taskhub.schemas.activity import TaskActivityResponse
from taskhub.schemas.analytics import TaskStatsResponse, ProductivityPoint, TeamPerformanceRow
from taskhub.schemas.realtime import TaskCreatedEvent, TaskUpdatedEvent, TaskDeletedEvent
