"""Tasks API endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.config import settings
from taskhub.core.exceptions import NotFoundError
from taskhub.crud.task import TaskListFilters
from taskhub.crud.task import task as task_crud
from taskhub.database import get_db
from taskhub.dependencies import get_current_user, get_hub
from taskhub.models.task import Task, TaskPriority, TaskStatus
from taskhub.models.user import User
from taskhub.realtime.hub import BroadcastHub
from taskhub.schemas.activity import TaskActivityResponse
from taskhub.schemas.task import (
    DueDateFilter,
    SortOrder,
    TaskCreate,
    TaskListResponse,
    TaskShareCreate,
    TaskShareWithUserResponse,
    TaskSortBy,
    TaskUpdate,
    TaskWithDetailsResponse,
)
from taskhub.services.activity_service import activity_service
from taskhub.services.sharing_service import sharing_service
from taskhub.services.task_service import task_service
from taskhub.utils.permissions import resolve_permission

router = APIRouter()


def _with_permission(db_task: Task, user_id: str) -> TaskWithDetailsResponse:
    response = TaskWithDetailsResponse.model_validate(db_task)
    response.permission = resolve_permission(db_task, user_id)
    return response


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    due_date_filter: Optional[DueDateFilter] = Query(None, alias="dueDateFilter"),
    search: Optional[str] = None,
    sort_by: TaskSortBy = Query(TaskSortBy.CREATED, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List tasks the caller owns or has been shared."""
    filters = TaskListFilters(
        status=status_filter,
        priority=priority,
        due_date_filter=due_date_filter,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    tasks, total = await task_crud.list_tasks(db, user_id=current_user.id, filters=filters)
    return TaskListResponse(
        tasks=[_with_permission(db_task, current_user.id) for db_task in tasks],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{task_id}", response_model=TaskWithDetailsResponse)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a task by ID."""
    db_task = await task_crud.get_visible(db, task_id=task_id, user_id=current_user.id)
    if not db_task:
        raise NotFoundError("Task not found")
    return _with_permission(db_task, current_user.id)


@router.post("", response_model=TaskWithDetailsResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    hub: BroadcastHub = Depends(get_hub),
):
    """Create a task owned by the caller."""
    db_task = await task_service.create_task(db, obj_in=task_in, acting_user=current_user, hub=hub)
    return _with_permission(db_task, current_user.id)


@router.patch("/{task_id}", response_model=TaskWithDetailsResponse)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    hub: BroadcastHub = Depends(get_hub),
):
    """Partially update a task. Requires ownership or an edit share."""
    db_task = await task_service.update_task(
        db, task_id=task_id, obj_in=task_in, acting_user=current_user, hub=hub
    )
    return _with_permission(db_task, current_user.id)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    hub: BroadcastHub = Depends(get_hub),
):
    """Delete a task. Owner only."""
    await task_service.delete_task(db, task_id=task_id, acting_user=current_user, hub=hub)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{task_id}/share",
    response_model=TaskShareWithUserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def share_task(
    task_id: int,
    share_in: TaskShareCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Share a task with a registered user by email."""
    db_share, _ = await task_service.share_task(
        db,
        task_id=task_id,
        recipient_email=share_in.email,
        permission=share_in.permission,
        acting_user=current_user,
    )
    return db_share


@router.get("/{task_id}/shares", response_model=List[TaskShareWithUserResponse])
async def list_task_shares(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await sharing_service.list_shares(db, task_id=task_id, acting_user=current_user)


@router.delete("/{task_id}/shares/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_task_share(
    task_id: int,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Revoke a user's share. Owner only."""
    await task_service.remove_share(db, task_id=task_id, user_id=user_id, acting_user=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{task_id}/activities", response_model=List[TaskActivityResponse])
async def list_task_activities(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Activity log of a task, newest first."""
    db_task = await task_crud.get_visible(db, task_id=task_id, user_id=current_user.id)
    if not db_task:
        raise NotFoundError("Task not found")
    return await activity_service.get_activities(db, task_id=task_id)
