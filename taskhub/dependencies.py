"""FastAPI dependencies for authentication and shared services."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.config import settings
from taskhub.core.exceptions import UnauthorizedError
from taskhub.database import get_db
from taskhub.models.user import User
from taskhub.realtime.hub import BroadcastHub
from taskhub.services.auth_service import auth_service

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authenticated user from the bearer token or the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise UnauthorizedError("Authentication required")
    return await auth_service.get_user_from_token(db, token)


def get_hub(request: Request) -> BroadcastHub:
    """Process-wide broadcast hub stored on the application state."""
    return request.app.state.hub
