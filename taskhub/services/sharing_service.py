"""Task sharing: grant, change and revoke per-user access."""
import enum
import logging
from typing import List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.exceptions import (
    ForbiddenError,
    InvalidShareTargetError,
    NotFoundError,
    RecipientNotFoundError,
)
from taskhub.crud.share import share as share_crud
from taskhub.crud.task import task as task_crud
from taskhub.crud.user import user as user_crud
from taskhub.models.task import SharePermission, Task, TaskShare
from taskhub.models.user import User
from taskhub.utils.permissions import can_share, can_view, resolve_permission
from taskhub.utils.time import utc_now

logger = logging.getLogger(__name__)


class ShareOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class SharingService:
    """Owner-only management of task shares."""

    @staticmethod
    async def _owned_task(db: AsyncSession, *, task_id: int, acting_user: User) -> Task:
        db_task = await task_crud.get_with_details(db, task_id=task_id)
        if db_task is None or not can_share(resolve_permission(db_task, acting_user.id)):
            raise ForbiddenError("Only task owner can share tasks")
        return db_task

    @staticmethod
    async def _apply_permission(
        db: AsyncSession,
        *,
        existing: TaskShare,
        permission: SharePermission,
    ) -> Tuple[TaskShare, ShareOutcome]:
        if existing.permission == permission:
            return existing, ShareOutcome.UNCHANGED
        existing.permission = permission
        existing.created_at = utc_now()
        db.add(existing)
        await db.commit()
        return existing, ShareOutcome.UPDATED

    @staticmethod
    async def share_task(
        db: AsyncSession,
        *,
        task_id: int,
        recipient_email: str,
        permission: SharePermission,
        acting_user: User,
    ) -> Tuple[TaskShare, ShareOutcome]:
        """Grant ``permission`` on the task to the user registered under ``recipient_email``.

        Re-sharing with the same permission is a no-op; a different permission
        replaces the old one. There is never more than one share per pair.
        """
        await SharingService._owned_task(db, task_id=task_id, acting_user=acting_user)

        if recipient_email.strip().lower() == (acting_user.email or "").strip().lower():
            raise InvalidShareTargetError()

        recipient = await user_crud.get_by_email(db, email=recipient_email)
        if recipient is None:
            logger.info("Share of task %s rejected: %s is not registered", task_id, recipient_email)
            raise RecipientNotFoundError(recipient_email)
        # Plain ids: a rollback below expires loaded instances.
        recipient_id, owner_id = recipient.id, acting_user.id
        if recipient_id == owner_id:
            raise InvalidShareTargetError()

        existing = await share_crud.get_for_pair(db, task_id=task_id, user_id=recipient_id)
        if existing is not None:
            db_share, outcome = await SharingService._apply_permission(db, existing=existing, permission=permission)
        else:
            try:
                db_share = await share_crud.add(db, task_id=task_id, user_id=recipient_id, permission=permission)
                outcome = ShareOutcome.CREATED
            except IntegrityError:
                # Lost a race with a concurrent share of the same pair.
                await db.rollback()
                existing = await share_crud.get_for_pair(db, task_id=task_id, user_id=recipient_id)
                if existing is None:
                    raise
                db_share, outcome = await SharingService._apply_permission(
                    db, existing=existing, permission=permission
                )

        logger.info(
            "Task %s shared with %s (%s): %s",
            task_id,
            recipient_id,
            SharePermission(permission).value,
            outcome.value,
        )
        return db_share, outcome

    @staticmethod
    async def remove_share(
        db: AsyncSession,
        *,
        task_id: int,
        user_id: str,
        acting_user: User,
    ) -> bool:
        """Revoke the share of ``user_id``. Returns False if there was none."""
        await SharingService._owned_task(db, task_id=task_id, acting_user=acting_user)
        removed = await share_crud.remove_pair(db, task_id=task_id, user_id=user_id)
        if removed:
            logger.info("Share of task %s with %s removed", task_id, user_id)
        return removed

    @staticmethod
    async def list_shares(db: AsyncSession, *, task_id: int, acting_user: User) -> List[TaskShare]:
        db_task = await task_crud.get_with_details(db, task_id=task_id)
        if db_task is None or not can_view(resolve_permission(db_task, acting_user.id)):
            raise NotFoundError("Task not found")
        return await share_crud.get_by_task(db, task_id=task_id)


sharing_service = SharingService()
