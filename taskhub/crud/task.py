"""Task repository: CRUD and filtered queries scoped by visibility."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set, Tuple

from sqlalchemy import and_, case, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from taskhub.config import settings
from taskhub.crud.base import CRUDBase
from taskhub.models.task import Task, TaskPriority, TaskShare, TaskStatus
from taskhub.schemas.task import DueDateFilter, SortOrder, TaskCreate, TaskSortBy, TaskUpdate
from taskhub.utils.permissions import can_delete, can_edit, resolve_permission
from taskhub.utils.time import today_bounds, utc_now

logger = logging.getLogger(__name__)


def visible_to(user_id: str) -> ColumnElement[bool]:
    """SQL predicate: the user owns the task or holds any share on it."""
    return or_(
        Task.owner_id == user_id,
        exists().where(TaskShare.task_id == Task.id, TaskShare.user_id == user_id),
    )


def due_date_conditions(due_filter: DueDateFilter, now: Optional[datetime] = None) -> List[ColumnElement[bool]]:
    """Conditions for the today/overdue/upcoming filters relative to local midnight."""
    today_start, tomorrow_start = today_bounds(now)

    if due_filter == DueDateFilter.OVERDUE:
        return [
            Task.status == TaskStatus.PENDING,
            Task.due_date.isnot(None),
            Task.due_date < today_start,
        ]
    if due_filter == DueDateFilter.TODAY:
        return [
            Task.due_date.isnot(None),
            Task.due_date >= today_start,
            Task.due_date < tomorrow_start,
        ]
    return [
        Task.due_date.isnot(None),
        Task.due_date >= tomorrow_start,
    ]


priority_rank = case(
    (Task.priority == TaskPriority.LOW, 1),
    (Task.priority == TaskPriority.MEDIUM, 2),
    else_=3,
)


@dataclass
class TaskListFilters:
    """Filters, ordering and pagination for listing tasks."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date_filter: Optional[DueDateFilter] = None
    search: Optional[str] = None
    sort_by: TaskSortBy = TaskSortBy.CREATED
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


def audience(task: Task) -> Set[str]:
    """Users who can currently see the task: owner plus share-holders."""
    return {task.owner_id} | {share.user_id for share in task.shares}


class CRUDTask(CRUDBase[Task, TaskCreate, TaskUpdate]):
    """Task queries. Every read goes through ``visible_to``."""

    @staticmethod
    def _details_options():
        return (
            selectinload(Task.owner),
            selectinload(Task.shares).selectinload(TaskShare.user),
        )

    def _filter_conditions(self, user_id: str, filters: TaskListFilters) -> List[ColumnElement[bool]]:
        conditions: List[ColumnElement[bool]] = [visible_to(user_id)]
        if filters.status:
            conditions.append(Task.status == filters.status)
        if filters.priority:
            conditions.append(Task.priority == filters.priority)
        if filters.due_date_filter:
            conditions.extend(due_date_conditions(filters.due_date_filter))
        if filters.search and not filters.search.isspace():
            term = filters.search
            conditions.append(
                or_(
                    Task.title.icontains(term, autoescape=True),
                    and_(Task.description.isnot(None), Task.description.icontains(term, autoescape=True)),
                )
            )
        return conditions

    @staticmethod
    def _ordering(filters: TaskListFilters):
        column = {
            TaskSortBy.DUE_DATE: Task.due_date,
            TaskSortBy.PRIORITY: priority_rank,
            TaskSortBy.TITLE: func.lower(Task.title),
            TaskSortBy.CREATED: Task.created_at,
        }[filters.sort_by]
        ascending = filters.sort_order == SortOrder.ASC
        primary = column.asc() if ascending else column.desc()
        if filters.sort_by == TaskSortBy.DUE_DATE:
            primary = primary.nulls_last()
        return primary, (Task.id.asc() if ascending else Task.id.desc())

    async def list_tasks(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        filters: TaskListFilters,
    ) -> Tuple[List[Task], int]:
        """Return one page of visible tasks and the total matching count."""
        conditions = self._filter_conditions(user_id, filters)

        total_result = await db.execute(select(func.count()).select_from(Task).where(*conditions))
        total = total_result.scalar_one()

        query = (
            select(Task)
            .where(*conditions)
            .options(*self._details_options())
            .order_by(*self._ordering(filters))
            .offset(filters.offset)
            .limit(filters.limit)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_visible(self, db: AsyncSession, *, task_id: int, user_id: str) -> Optional[Task]:
        """Task with owner and shares, or None when missing or hidden."""
        result = await db.execute(
            select(Task)
            .where(Task.id == task_id, visible_to(user_id))
            .options(*self._details_options())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_with_details(self, db: AsyncSession, *, task_id: int) -> Optional[Task]:
        """Task with owner and shares, no visibility check."""
        result = await db.execute(
            select(Task)
            .where(Task.id == task_id)
            .options(*self._details_options())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_for_owner(self, db: AsyncSession, *, obj_in: TaskCreate, owner_id: str) -> Task:
        """Create a task owned by ``owner_id``."""
        data = obj_in.model_dump()
        if data.get("status") == TaskStatus.COMPLETED:
            data["completed_at"] = utc_now()
        db_obj = Task(**data, owner_id=owner_id)
        db.add(db_obj)
        await db.commit()
        logger.info("Task %s created by %s", db_obj.id, owner_id)
        return await self.get_with_details(db, task_id=db_obj.id)

    async def update_for_user(
        self,
        db: AsyncSession,
        *,
        task_id: int,
        user_id: str,
        obj_in: TaskUpdate,
    ) -> Optional[Task]:
        """Apply a partial update if the user is the owner or holds an edit share."""
        db_obj = await self.get_with_details(db, task_id=task_id)
        if db_obj is None:
            return None

        permission = resolve_permission(db_obj, user_id)
        if not can_edit(permission):
            logger.info("User %s denied update on task %s (permission=%s)", user_id, task_id, permission.value)
            return None

        update_data = obj_in.model_dump(exclude_unset=True)
        new_status = update_data.get("status")
        if new_status is not None and "completed_at" not in update_data:
            if new_status == TaskStatus.COMPLETED and db_obj.status != TaskStatus.COMPLETED:
                update_data["completed_at"] = utc_now()
            elif new_status != TaskStatus.COMPLETED:
                update_data["completed_at"] = None

        for field, value in update_data.items():
            setattr(db_obj, field, value)
        db_obj.updated_at = utc_now()

        db.add(db_obj)
        await db.commit()
        logger.info("Task %s updated by %s: %s", task_id, user_id, sorted(update_data))
        return await self.get_with_details(db, task_id=task_id)

    async def delete_for_owner(self, db: AsyncSession, *, task_id: int, user_id: str) -> bool:
        """Delete the task if ``user_id`` owns it."""
        db_obj = await self.get(db, task_id)
        if db_obj is None:
            return False

        if not can_delete(resolve_permission(db_obj, user_id, shares=())):
            logger.info("User %s denied delete on task %s", user_id, task_id)
            return False

        await db.delete(db_obj)
        await db.commit()
        logger.info("Task %s deleted by %s", task_id, user_id)
        return True


task = CRUDTask(Task)
