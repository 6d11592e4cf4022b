"""Authentication API endpoints."""
import logging
import secrets
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.config import settings
from taskhub.database import get_db
from taskhub.dependencies import get_current_user
from taskhub.models.user import User
from taskhub.schemas.user import UserResponse
from taskhub.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter()

STATE_COOKIE_MAX_AGE = 600


def _failure_redirect() -> RedirectResponse:
    url = httpx.URL(settings.FRONTEND_URL).copy_add_param("error", "auth_failed")
    response = RedirectResponse(str(url), status_code=302)
    response.delete_cookie(settings.OAUTH_STATE_COOKIE_NAME)
    return response


@router.get("/google")
async def google_login():
    """Start the Google sign-in flow."""
    state = auth_service.new_state()
    response = RedirectResponse(auth_service.build_authorization_url(state), status_code=307)
    response.set_cookie(
        settings.OAUTH_STATE_COOKIE_NAME,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Finish sign-in: upsert the user and set the session cookie."""
    expected_state = request.cookies.get(settings.OAUTH_STATE_COOKIE_NAME)
    if error or not code:
        logger.info("Google sign-in cancelled or failed: %s", error or "missing code")
        return _failure_redirect()
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("Google sign-in rejected: state mismatch")
        return _failure_redirect()

    try:
        _, token = await auth_service.login_with_code(db, code=code)
    except HTTPException as e:
        logger.error("Google sign-in failed: %s", e.detail)
        return _failure_redirect()

    response = RedirectResponse(settings.FRONTEND_URL, status_code=302)
    response.delete_cookie(settings.OAUTH_STATE_COOKIE_NAME)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    return response


@router.get("/logout")
async def logout():
    """Clear the session cookie."""
    response = RedirectResponse(settings.FRONTEND_URL, status_code=302)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get("/user", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return current_user
