"""Analytics over the tasks a user can see."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.crud.task import visible_to
from taskhub.models.task import Task, TaskPriority, TaskStatus
from taskhub.models.user import User
from taskhub.utils.time import local_date, today_bounds, utc_now


@dataclass
class TaskStatsDTO:
    """Task counts for the stats dashboard."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    overdue: int = 0
    due_today: int = 0
    high_priority: int = 0
    medium_priority: int = 0
    low_priority: int = 0


@dataclass
class ProductivityDTO:
    """Tasks created on one local calendar day."""

    date: str  # YYYY-MM-DD
    created: int
    completed: int


@dataclass
class TeamPerformanceDTO:
    user: User
    completed_tasks: int
    total_tasks: int


def _count_where(*conditions):
    return func.count(case((and_(*conditions), 1)))


class AnalyticsService:
    """Service for computing task statistics."""

    @staticmethod
    async def get_stats(db: AsyncSession, *, user_id: str) -> TaskStatsDTO:
        """Counts over visible tasks, computed in one aggregate query."""
        today_start, tomorrow_start = today_bounds()
        open_task = Task.status != TaskStatus.COMPLETED

        query = select(
            func.count(Task.id),
            _count_where(Task.status == TaskStatus.COMPLETED),
            _count_where(Task.status == TaskStatus.IN_PROGRESS),
            _count_where(Task.status == TaskStatus.PENDING),
            _count_where(Task.due_date.isnot(None), Task.due_date < today_start, open_task),
            _count_where(
                Task.due_date.isnot(None),
                Task.due_date >= today_start,
                Task.due_date < tomorrow_start,
                open_task,
            ),
            _count_where(Task.priority == TaskPriority.HIGH),
            _count_where(Task.priority == TaskPriority.MEDIUM),
            _count_where(Task.priority == TaskPriority.LOW),
        ).where(visible_to(user_id))

        row = (await db.execute(query)).one()
        return TaskStatsDTO(*(int(value or 0) for value in row))

    @staticmethod
    async def get_productivity(db: AsyncSession, *, user_id: str, days: int = 7) -> List[ProductivityDTO]:
        """Per-day created/completed counts for tasks created in the last ``days`` days.

        ``completed`` counts tasks created that day whose status is completed
        now, not tasks completed that day. Days with no created task are
        omitted.
        """
        today_start, _ = today_bounds()
        window_start = today_start - timedelta(days=max(days, 1) - 1)

        result = await db.execute(
            select(Task.created_at, Task.status).where(
                visible_to(user_id),
                Task.created_at >= window_start,
                Task.created_at <= utc_now(),
            )
        )

        created: Dict[str, int] = defaultdict(int)
        completed: Dict[str, int] = defaultdict(int)
        for created_at, status in result.all():
            day = local_date(created_at).isoformat()
            created[day] += 1
            if status == TaskStatus.COMPLETED:
                completed[day] += 1

        return [
            ProductivityDTO(date=day, created=created[day], completed=completed[day])
            for day in sorted(created)
        ]

    @staticmethod
    async def get_team_performance(db: AsyncSession, *, user_id: str) -> List[TeamPerformanceDTO]:
        """Visible tasks grouped by owner, busiest finishers first."""
        total = func.count(Task.id).label("total")
        completed = _count_where(Task.status == TaskStatus.COMPLETED).label("completed")

        result = await db.execute(
            select(Task.owner_id, completed, total)
            .where(visible_to(user_id))
            .group_by(Task.owner_id)
            .having(func.count(Task.id) > 0)
            .order_by(completed.desc(), total.desc(), Task.owner_id.asc())
        )
        rows = result.all()
        if not rows:
            return []

        users_result = await db.execute(select(User).where(User.id.in_([row.owner_id for row in rows])))
        users = {db_user.id: db_user for db_user in users_result.scalars().all()}

        return [
            TeamPerformanceDTO(user=users[row.owner_id], completed_tasks=int(row.completed), total_tasks=int(row.total))
            for row in rows
            if row.owner_id in users
        ]


analytics_service = AnalyticsService()
