"""Identity provider schemas."""
from typing import Optional

from pydantic import BaseModel


class OAuthProfile(BaseModel):
    """Profile returned by the identity provider after a code exchange."""

    id: str
    email: str
    given_name: Optional[str] = None
    photo_url: Optional[str] = None
