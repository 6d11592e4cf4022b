"""Analytics schemas."""
from taskhub.schemas.common import CamelModel
from taskhub.schemas.user import UserResponse


class TaskStatsResponse(CamelModel):
    """Aggregate task counts over the caller's visible tasks."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    overdue: int = 0
    due_today: int = 0
    high_priority: int = 0
    medium_priority: int = 0
    low_priority: int = 0


class ProductivityPoint(CamelModel):
    date: str
    completed: int
    created: int


class TeamPerformanceRow(CamelModel):
    user: UserResponse
    completed_tasks: int
    total_tasks: int
