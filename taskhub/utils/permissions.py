"""Task permission resolution.

Every read and mutation path decides access through ``resolve_permission``:

* ``owner`` - the caller owns the task;
* ``edit`` / ``view`` - the caller holds a share with that permission;
* ``none`` - the task is invisible to the caller.

The resolver does no I/O. Callers load ``task.shares`` (or pass ``shares``)
before asking.
"""
import enum
from typing import Iterable, Optional

from taskhub.models.task import SharePermission, Task, TaskShare


class TaskPermission(str, enum.Enum):
    """Effective access a user has on a task."""

    OWNER = "owner"
    EDIT = "edit"
    VIEW = "view"
    NONE = "none"


def resolve_permission(
    task: Task,
    user_id: str,
    shares: Optional[Iterable[TaskShare]] = None,
) -> TaskPermission:
    """Map (task, user) to the user's effective permission."""
    if task.owner_id == user_id:
        return TaskPermission.OWNER

    for share in task.shares if shares is None else shares:
        if share.task_id is not None and task.id is not None and share.task_id != task.id:
            continue
        if share.user_id == user_id:
            return TaskPermission(SharePermission(share.permission).value)

    return TaskPermission.NONE


def can_view(permission: TaskPermission) -> bool:
    return permission != TaskPermission.NONE


def can_edit(permission: TaskPermission) -> bool:
    """Owners and edit share-holders may update a task."""
    return permission in (TaskPermission.OWNER, TaskPermission.EDIT)


def can_toggle_status(permission: TaskPermission) -> bool:
    return can_edit(permission)


def can_delete(permission: TaskPermission) -> bool:
    """Only the owner may delete."""
    return permission == TaskPermission.OWNER


def can_share(permission: TaskPermission) -> bool:
    """Only the owner may grant or revoke shares."""
    return permission == TaskPermission.OWNER
