"""User schemas."""
from datetime import datetime
from typing import Optional

from taskhub.schemas.common import CamelModel


class UserResponse(CamelModel):
    """User response schema."""

    id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
