"""Task activity schemas."""
from datetime import datetime
from typing import Any, Dict, Optional

from taskhub.schemas.common import CamelModel
from taskhub.schemas.user import UserResponse


class TaskActivityResponse(CamelModel):
    """Task activity response schema."""

    id: int
    task_id: int
    user_id: str
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
    user: Optional[UserResponse] = None
