"""Activity logging for task mutations."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.crud.activity import activity as activity_crud
from taskhub.models.activity import TaskActivity

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_SHARED = "shared"
ACTION_UNSHARED = "unshared"


class ActivityService:
    """Append-only audit trail of task actions."""

    @staticmethod
    async def record_activity(
        db: AsyncSession,
        *,
        task_id: int,
        user_id: str,
        action: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[TaskActivity]:
        """Write one activity row.

        Called after the mutation it describes has been committed. The row is
        written in its own session on the same engine, so a store failure is
        rolled back and logged without touching the caller's session.
        """
        async with AsyncSession(bind=db.bind, expire_on_commit=False) as session:
            try:
                return await activity_crud.log(
                    session,
                    task_id=task_id,
                    user_id=user_id,
                    action=action,
                    details=details,
                )
            except SQLAlchemyError:
                await session.rollback()
                logger.error(
                    "Failed to record activity %r for task %s by %s",
                    action,
                    task_id,
                    user_id,
                    exc_info=True,
                )
                return None

    @staticmethod
    async def get_activities(db: AsyncSession, *, task_id: int) -> List[TaskActivity]:
        return await activity_crud.get_by_task(db, task_id=task_id)


activity_service = ActivityService()
