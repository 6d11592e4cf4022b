"""User CRUD operations."""
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.crud.base import CRUDBase
from taskhub.models.user import User
from taskhub.schemas.auth import OAuthProfile
from taskhub.utils.time import utc_now

logger = logging.getLogger(__name__)


class CRUDUser(CRUDBase[User, OAuthProfile, dict]):
    """CRUD operations for User."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        return result.scalars().first()

    async def upsert_from_profile(self, db: AsyncSession, *, profile: OAuthProfile) -> User:
        """Insert the user on first login, refresh mutable profile fields afterwards."""
        values = {
            "email": profile.email,
            "display_name": profile.given_name or "",
            "avatar_url": profile.photo_url or "",
        }
        db_obj = await self.get(db, profile.id)
        if db_obj is None:
            db_obj = User(id=profile.id, **values)
            db.add(db_obj)
            try:
                await db.commit()
            except IntegrityError:
                # Another login for the same subject won the insert.
                await db.rollback()
                db_obj = await self.get(db, profile.id)
                if db_obj is None:
                    raise
                logger.info("Concurrent first login for user %s, updating instead", profile.id)
            else:
                await db.refresh(db_obj)
                logger.info("Created user %s", profile.id)
                return db_obj

        for field, value in values.items():
            setattr(db_obj, field, value)
        db_obj.updated_at = utc_now()
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


user = CRUDUser(User)
