"""Authentication service: Google OAuth sign-in and session tokens."""
import logging
import secrets
from typing import Any, Dict, Optional, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from taskhub.config import settings
from taskhub.core.exceptions import ExternalServiceError, UnauthorizedError
from taskhub.core.security import SESSION_TOKEN_TYPE, create_session_token, decode_token
from taskhub.crud.user import user as user_crud
from taskhub.models.user import User
from taskhub.schemas.auth import OAuthProfile

logger = logging.getLogger(__name__)

OAUTH_SCOPES = "openid email profile"


class GoogleOAuthClient:
    """Authorization-code exchange against Google's OAuth 2.0 endpoints."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": settings.GOOGLE_CLIENT_ID or "",
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": OAUTH_SCOPES,
            "state": state,
            "prompt": "select_account",
        }
        return str(httpx.URL(settings.GOOGLE_AUTH_URL, params=params))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.OAUTH_TIMEOUT_SECONDS, transport=self.transport)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        reraise=True,
    )
    async def _fetch_profile(self, code: str) -> Dict[str, Any]:
        async with self._client() as client:
            token_response = await client.post(
                settings.GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.GOOGLE_CLIENT_ID or "",
                    "client_secret": settings.GOOGLE_CLIENT_SECRET or "",
                    "redirect_uri": settings.GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
            )
            token_response.raise_for_status()
            access_token = token_response.json().get("access_token")
            if not access_token:
                raise ExternalServiceError("Identity provider returned no access token")

            userinfo_response = await client.get(
                settings.GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            return userinfo_response.json()

    async def exchange_code(self, code: str) -> OAuthProfile:
        """Exchange an authorization code for the signed-in user's profile."""
        try:
            data = await self._fetch_profile(code)
        except httpx.HTTPError as e:
            logger.error("Google OAuth exchange failed: %s", e, exc_info=True)
            raise ExternalServiceError("Identity provider request failed") from e

        if not data.get("sub") or not data.get("email"):
            logger.error("Google profile missing sub/email: keys=%s", sorted(data))
            raise ExternalServiceError("Identity provider returned an incomplete profile")

        return OAuthProfile(
            id=str(data["sub"]),
            email=data["email"],
            given_name=data.get("given_name") or data.get("name"),
            photo_url=data.get("picture"),
        )


class AuthService:
    """Authentication service."""

    def __init__(self, oauth_client: Optional[GoogleOAuthClient] = None):
        self.oauth_client = oauth_client or GoogleOAuthClient()

    @staticmethod
    def new_state() -> str:
        return secrets.token_urlsafe(32)

    def build_authorization_url(self, state: str) -> str:
        return self.oauth_client.authorization_url(state)

    @staticmethod
    def create_session(db_user: User) -> str:
        return create_session_token({"sub": db_user.id, "email": db_user.email})

    async def login_with_code(self, db: AsyncSession, *, code: str) -> Tuple[User, str]:
        """Complete the OAuth callback: fetch the profile, upsert the user, issue a session."""
        profile = await self.oauth_client.exchange_code(code)
        db_user = await user_crud.upsert_from_profile(db, profile=profile)
        logger.info("User %s signed in", db_user.id)
        return db_user, self.create_session(db_user)

    @staticmethod
    async def get_user_from_token(db: AsyncSession, token: str) -> User:
        """Resolve a session token to its user or raise UnauthorizedError."""
        try:
            payload = decode_token(token)
        except ValueError:
            raise UnauthorizedError("Invalid or expired session")

        if payload.get("type") != SESSION_TOKEN_TYPE:
            raise UnauthorizedError("Invalid token type")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid token")

        db_user = await user_crud.get(db, user_id)
        if db_user is None:
            raise UnauthorizedError("User not found")
        return db_user


auth_service = AuthService()
