"""Task activity CRUD operations."""
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskhub.crud.base import CRUDBase
from taskhub.models.activity import TaskActivity


class CRUDActivity(CRUDBase[TaskActivity, dict, dict]):
    """CRUD operations for TaskActivity (append-only)."""

    async def log(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        user_id: str,
        action: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> TaskActivity:
        db_obj = TaskActivity(task_id=task_id, user_id=user_id, action=action, details=details)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def get_by_task(self, db: AsyncSession, *, task_id: int, limit: int = 100) -> List[TaskActivity]:
        """Activities for a task, newest first."""
        query = (
            select(TaskActivity)
            .where(TaskActivity.task_id == task_id)
            .options(selectinload(TaskActivity.user))
            .order_by(TaskActivity.created_at.desc(), TaskActivity.id.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())


activity = CRUDActivity(TaskActivity)
