"""Session token helpers."""
from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from taskhub.config import settings
from taskhub.utils.time import utc_now

SESSION_TOKEN_TYPE = "session"


def create_session_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token; ``data["sub"]`` must hold the user id."""
    to_encode = dict(data)
    expire = utc_now() + (expires_delta or timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS))
    to_encode.update({"exp": expire, "type": SESSION_TOKEN_TYPE})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token. Raises ValueError when invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
