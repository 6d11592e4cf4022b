"""Tests for task permission resolution."""
import pytest

from taskhub.models.task import SharePermission, Task, TaskShare
from taskhub.utils.permissions import (
    TaskPermission,
    can_delete,
    can_edit,
    can_share,
    can_toggle_status,
    can_view,
    resolve_permission,
)


def _task(shares=()):
    return Task(
        id=1,
        title="Write report",
        owner_id="owner",
        shares=[TaskShare(task_id=1, user_id=user_id, permission=perm) for user_id, perm in shares],
    )


def test_owner_resolves_to_owner_even_with_share_rows():
    task = _task(shares=[("owner", SharePermission.VIEW)])
    assert resolve_permission(task, "owner") == TaskPermission.OWNER


@pytest.mark.parametrize(
    "permission, expected",
    [(SharePermission.VIEW, TaskPermission.VIEW), (SharePermission.EDIT, TaskPermission.EDIT)],
)
def test_share_holder_gets_share_permission(permission, expected):
    task = _task(shares=[("bob", permission)])
    assert resolve_permission(task, "bob") == expected


def test_stranger_resolves_to_none():
    task = _task(shares=[("bob", SharePermission.EDIT)])
    assert resolve_permission(task, "mallory") == TaskPermission.NONE


def test_explicit_shares_override_loaded_relationship():
    task = _task()
    shares = [TaskShare(task_id=1, user_id="bob", permission=SharePermission.EDIT)]
    assert resolve_permission(task, "bob", shares=shares) == TaskPermission.EDIT


def test_share_of_another_task_is_ignored():
    task = _task()
    shares = [TaskShare(task_id=2, user_id="bob", permission=SharePermission.EDIT)]
    assert resolve_permission(task, "bob", shares=shares) == TaskPermission.NONE


def test_capabilities_by_permission():
    owner, edit, view, none = (
        TaskPermission.OWNER,
        TaskPermission.EDIT,
        TaskPermission.VIEW,
        TaskPermission.NONE,
    )

    assert [can_view(p) for p in (owner, edit, view, none)] == [True, True, True, False]
    assert [can_edit(p) for p in (owner, edit, view, none)] == [True, True, False, False]
    assert [can_toggle_status(p) for p in (owner, edit, view, none)] == [True, True, False, False]
    assert [can_delete(p) for p in (owner, edit, view, none)] == [True, False, False, False]
    assert [can_share(p) for p in (owner, edit, view, none)] == [True, False, False, False]
