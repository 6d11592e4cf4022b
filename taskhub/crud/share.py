"""Task share CRUD operations."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskhub.crud.base import CRUDBase
from taskhub.models.task import SharePermission, TaskShare


class CRUDShare(CRUDBase[TaskShare, dict, dict]):
    """CRUD operations for TaskShare. At most one row per (task, user)."""

    async def get_for_pair(self, db: AsyncSession, *, task_id: int, user_id: str) -> Optional[TaskShare]:
        result = await db.execute(
            select(TaskShare)
            .where(TaskShare.task_id == task_id, TaskShare.user_id == user_id)
            .options(selectinload(TaskShare.user))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_task(self, db: AsyncSession, *, task_id: int) -> List[TaskShare]:
        """Shares of a task with their user records, oldest first."""
        result = await db.execute(
            select(TaskShare)
            .where(TaskShare.task_id == task_id)
            .options(selectinload(TaskShare.user))
            .order_by(TaskShare.id.asc())
        )
        return list(result.scalars().all())

    async def add(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        user_id: str,
        permission: SharePermission,
    ) -> TaskShare:
        """Insert a share row. Raises IntegrityError if the pair already exists."""
        db_obj = TaskShare(task_id=task_id, user_id=user_id, permission=permission)
        db.add(db_obj)
        await db.commit()
        return await self.get_for_pair(db, task_id=task_id, user_id=user_id)

    async def remove_pair(self, db: AsyncSession, *, task_id: int, user_id: str) -> bool:
        db_obj = await self.get_for_pair(db, task_id=task_id, user_id=user_id)
        if db_obj is None:
            return False
        await db.delete(db_obj)
        await db.commit()
        return True


share = CRUDShare(TaskShare)
