"""Model modules."""
from taskhub.models.user import User
from taskhub.models.task import Task, TaskShare, TaskStatus, TaskPriority, SharePermission
from taskhub.models.activity import TaskActivity

__all__ = [
    "User",
    "Task",
    "TaskShare",
    "TaskStatus",
    "TaskPriority",
    "SharePermission",
    "TaskActivity",
]
