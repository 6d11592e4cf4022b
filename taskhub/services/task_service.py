"""Task mutations: persist, record activity, notify the task audience."""
import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.exceptions import NotFoundError
from taskhub.crud.task import audience
from taskhub.crud.task import task as task_crud
from taskhub.models.task import SharePermission, Task, TaskShare
from taskhub.models.user import User
from taskhub.realtime.hub import BroadcastHub
from taskhub.schemas.realtime import TaskCreatedEvent, TaskDeletedEvent, TaskUpdatedEvent
from taskhub.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from taskhub.schemas.user import UserResponse
from taskhub.services.activity_service import (
    ACTION_CREATED,
    ACTION_SHARED,
    ACTION_UNSHARED,
    ACTION_UPDATED,
    activity_service,
)
from taskhub.services.sharing_service import ShareOutcome, sharing_service
from taskhub.utils.permissions import can_delete, resolve_permission

logger = logging.getLogger(__name__)


class TaskService:
    """Orchestrates task and share mutations for the API layer."""

    @staticmethod
    async def _broadcast(hub: Optional[BroadcastHub], event, recipients) -> None:
        if hub is None:
            return
        await hub.publish(event, recipients)

    @staticmethod
    async def create_task(
        db: AsyncSession,
        *,
        obj_in: TaskCreate,
        acting_user: User,
        hub: Optional[BroadcastHub] = None,
    ) -> Task:
        db_task = await task_crud.create_for_owner(db, obj_in=obj_in, owner_id=acting_user.id)
        await activity_service.record_activity(
            db,
            task_id=db_task.id,
            user_id=acting_user.id,
            action=ACTION_CREATED,
            details={"title": db_task.title},
        )
        event = TaskCreatedEvent(
            task_id=db_task.id,
            user=UserResponse.model_validate(acting_user),
            task=TaskResponse.model_validate(db_task),
        )
        await TaskService._broadcast(hub, event, audience(db_task))
        return db_task

    @staticmethod
    async def update_task(
        db: AsyncSession,
        *,
        task_id: int,
        obj_in: TaskUpdate,
        acting_user: User,
        hub: Optional[BroadcastHub] = None,
    ) -> Task:
        """Apply a partial update. Missing, hidden and view-only all raise NotFoundError."""
        changes = obj_in.model_dump(mode="json", by_alias=True, exclude_unset=True)
        db_task = await task_crud.update_for_user(db, task_id=task_id, user_id=acting_user.id, obj_in=obj_in)
        if db_task is None:
            raise NotFoundError("Task not found")

        await activity_service.record_activity(
            db,
            task_id=db_task.id,
            user_id=acting_user.id,
            action=ACTION_UPDATED,
            details=changes,
        )
        event = TaskUpdatedEvent(
            task_id=db_task.id,
            user=UserResponse.model_validate(acting_user),
            task=TaskResponse.model_validate(db_task),
            changes=changes,
        )
        await TaskService._broadcast(hub, event, audience(db_task))
        return db_task

    @staticmethod
    async def delete_task(
        db: AsyncSession,
        *,
        task_id: int,
        acting_user: User,
        hub: Optional[BroadcastHub] = None,
    ) -> None:
        db_task = await task_crud.get_visible(db, task_id=task_id, user_id=acting_user.id)
        if db_task is None or not can_delete(resolve_permission(db_task, acting_user.id)):
            raise NotFoundError("Task not found")

        # Share rows go with the task, so collect recipients first.
        recipients = audience(db_task)
        if not await task_crud.delete_for_owner(db, task_id=task_id, user_id=acting_user.id):
            raise NotFoundError("Task not found")

        event = TaskDeletedEvent(task_id=task_id, user=UserResponse.model_validate(acting_user))
        await TaskService._broadcast(hub, event, recipients)

    @staticmethod
    async def share_task(
        db: AsyncSession,
        *,
        task_id: int,
        recipient_email: str,
        permission: SharePermission,
        acting_user: User,
    ) -> Tuple[TaskShare, ShareOutcome]:
        actor_id = acting_user.id
        db_share, outcome = await sharing_service.share_task(
            db,
            task_id=task_id,
            recipient_email=recipient_email,
            permission=permission,
            acting_user=acting_user,
        )
        await activity_service.record_activity(
            db,
            task_id=task_id,
            user_id=actor_id,
            action=ACTION_SHARED,
            details={"sharedWith": recipient_email, "permission": SharePermission(permission).value},
        )
        return db_share, outcome

    @staticmethod
    async def remove_share(db: AsyncSession, *, task_id: int, user_id: str, acting_user: User) -> None:
        if not await sharing_service.remove_share(db, task_id=task_id, user_id=user_id, acting_user=acting_user):
            raise NotFoundError("Share not found")
        await activity_service.record_activity(
            db,
            task_id=task_id,
            user_id=acting_user.id,
            action=ACTION_UNSHARED,
            details={"userId": user_id},
        )


task_service = TaskService()
