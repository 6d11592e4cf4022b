"""Tests for the task repository: visibility, filters, sorting, mutations."""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from taskhub.crud.share import share as share_crud
from taskhub.crud.task import TaskListFilters, audience
from taskhub.crud.task import task as task_crud
from taskhub.models.task import SharePermission, Task, TaskPriority, TaskShare, TaskStatus
from taskhub.schemas.task import DueDateFilter, SortOrder, TaskCreate, TaskSortBy, TaskUpdate
from taskhub.utils.time import start_of_today, utc_now


async def _create(db, owner, **fields):
    fields.setdefault("title", "Task")
    return await task_crud.create_for_owner(db, obj_in=TaskCreate(**fields), owner_id=owner.id)


async def _ids(db, user, **filters):
    tasks, _ = await task_crud.list_tasks(db, user_id=user.id, filters=TaskListFilters(**filters))
    return [t.id for t in tasks]


@pytest.mark.asyncio
async def test_create_sets_defaults_and_owner(db_session, alice):
    created = await _create(db_session, alice, title="Plan sprint")

    assert created.owner_id == alice.id
    assert created.status == TaskStatus.PENDING
    assert created.priority == TaskPriority.MEDIUM
    assert created.completed_at is None
    assert created.owner.email == "alice@example.com"
    assert created.shares == []


@pytest.mark.asyncio
async def test_list_returns_owned_and_shared_but_not_others(db_session, alice, bob, carol):
    own = await _create(db_session, alice, title="Mine")
    shared = await _create(db_session, bob, title="Shared with alice")
    hidden = await _create(db_session, carol, title="Carol only")
    await share_crud.add(db_session, task_id=shared.id, user_id=alice.id, permission=SharePermission.VIEW)

    ids = await _ids(db_session, alice)

    assert set(ids) == {own.id, shared.id}
    assert hidden.id not in ids


@pytest.mark.asyncio
async def test_total_counts_matches_not_page(db_session, alice):
    for i in range(5):
        await _create(db_session, alice, title=f"Task {i}")

    tasks, total = await task_crud.list_tasks(
        db_session, user_id=alice.id, filters=TaskListFilters(page=2, limit=2)
    )

    assert total == 5
    assert len(tasks) == 2


@pytest.mark.asyncio
async def test_total_not_inflated_by_multiple_shares(db_session, alice, bob, carol):
    shared = await _create(db_session, alice, title="Popular")
    await share_crud.add(db_session, task_id=shared.id, user_id=bob.id, permission=SharePermission.VIEW)
    await share_crud.add(db_session, task_id=shared.id, user_id=carol.id, permission=SharePermission.EDIT)

    tasks, total = await task_crud.list_tasks(db_session, user_id=alice.id, filters=TaskListFilters())

    assert total == 1
    assert len(tasks) == 1
    assert {s.user.email for s in tasks[0].shares} == {"bob@example.com", "carol@example.com"}


@pytest.mark.asyncio
async def test_list_reflects_shares_added_after_task_was_loaded(db_session, alice, bob):
    created = await _create(db_session, alice, title="Loaded early")
    before, _ = await task_crud.list_tasks(db_session, user_id=alice.id, filters=TaskListFilters())
    assert before[0].shares == []

    await share_crud.add(db_session, task_id=created.id, user_id=bob.id, permission=SharePermission.VIEW)

    after, _ = await task_crud.list_tasks(db_session, user_id=alice.id, filters=TaskListFilters())
    assert [s.user_id for s in after[0].shares] == [bob.id]


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty(db_session, alice):
    await _create(db_session, alice)

    tasks, total = await task_crud.list_tasks(
        db_session, user_id=alice.id, filters=TaskListFilters(page=5, limit=10)
    )

    assert tasks == []
    assert total == 1


@pytest.mark.asyncio
async def test_search_matches_title_or_description_case_insensitively(db_session, alice):
    by_title = await _create(db_session, alice, title="Quarterly REPORT")
    by_description = await _create(db_session, alice, title="Other", description="draft the report")
    await _create(db_session, alice, title="Unrelated")

    ids = await _ids(db_session, alice, search="report")

    assert set(ids) == {by_title.id, by_description.id}


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(db_session, alice):
    percent = await _create(db_session, alice, title="100% done")
    await _create(db_session, alice, title="100 done")

    assert await _ids(db_session, alice, search="100%") == [percent.id]


@pytest.mark.asyncio
async def test_search_keeps_surrounding_whitespace(db_session, alice):
    spaced = await _create(db_session, alice, title="Fix bug in parser")
    await _create(db_session, alice, title="Debug logging")

    assert await _ids(db_session, alice, search=" bug") == [spaced.id]


@pytest.mark.asyncio
async def test_blank_search_is_ignored(db_session, alice):
    await _create(db_session, alice, title="One")
    await _create(db_session, alice, title="Two")

    assert len(await _ids(db_session, alice, search="   ")) == 2


@pytest.mark.asyncio
async def test_status_and_priority_filters(db_session, alice):
    done_high = await _create(db_session, alice, status=TaskStatus.COMPLETED, priority=TaskPriority.HIGH)
    await _create(db_session, alice, status=TaskStatus.PENDING, priority=TaskPriority.HIGH)
    await _create(db_session, alice, status=TaskStatus.COMPLETED, priority=TaskPriority.LOW)

    ids = await _ids(db_session, alice, status=TaskStatus.COMPLETED, priority=TaskPriority.HIGH)

    assert ids == [done_high.id]


@pytest.mark.asyncio
async def test_due_date_filters(db_session, alice):
    today_start = start_of_today()
    overdue = await _create(db_session, alice, title="overdue", due_date=today_start - timedelta(hours=1))
    overdue_done = await _create(
        db_session,
        alice,
        title="overdue but completed",
        status=TaskStatus.COMPLETED,
        due_date=today_start - timedelta(days=2),
    )
    today = await _create(db_session, alice, title="today", due_date=today_start + timedelta(hours=12))
    upcoming = await _create(db_session, alice, title="upcoming", due_date=today_start + timedelta(days=3))
    await _create(db_session, alice, title="no due date")

    assert await _ids(db_session, alice, due_date_filter=DueDateFilter.OVERDUE) == [overdue.id]
    assert await _ids(db_session, alice, due_date_filter=DueDateFilter.TODAY) == [today.id]
    assert await _ids(db_session, alice, due_date_filter=DueDateFilter.UPCOMING) == [upcoming.id]
    assert overdue_done.id not in await _ids(db_session, alice, due_date_filter=DueDateFilter.OVERDUE)


@pytest.mark.asyncio
async def test_priority_sort_uses_rank_not_alphabet(db_session, alice):
    low = await _create(db_session, alice, title="low", priority=TaskPriority.LOW)
    high = await _create(db_session, alice, title="high", priority=TaskPriority.HIGH)
    medium = await _create(db_session, alice, title="medium", priority=TaskPriority.MEDIUM)

    ascending = await _ids(db_session, alice, sort_by=TaskSortBy.PRIORITY, sort_order=SortOrder.ASC)
    descending = await _ids(db_session, alice, sort_by=TaskSortBy.PRIORITY, sort_order=SortOrder.DESC)

    assert ascending == [low.id, medium.id, high.id]
    assert descending == [high.id, medium.id, low.id]


@pytest.mark.asyncio
async def test_due_date_sort_puts_undated_last(db_session, alice):
    now = utc_now()
    undated = await _create(db_session, alice, title="undated")
    later = await _create(db_session, alice, title="later", due_date=now + timedelta(days=2))
    sooner = await _create(db_session, alice, title="sooner", due_date=now + timedelta(days=1))

    ascending = await _ids(db_session, alice, sort_by=TaskSortBy.DUE_DATE, sort_order=SortOrder.ASC)
    descending = await _ids(db_session, alice, sort_by=TaskSortBy.DUE_DATE, sort_order=SortOrder.DESC)

    assert ascending == [sooner.id, later.id, undated.id]
    assert descending == [later.id, sooner.id, undated.id]


@pytest.mark.asyncio
async def test_default_order_is_newest_first(db_session, alice):
    first = await _create(db_session, alice, title="first")
    second = await _create(db_session, alice, title="second")

    assert await _ids(db_session, alice) == [second.id, first.id]


@pytest.mark.asyncio
async def test_get_visible_hides_unshared_task(db_session, alice, bob):
    created = await _create(db_session, alice)

    assert await task_crud.get_visible(db_session, task_id=created.id, user_id=alice.id) is not None
    assert await task_crud.get_visible(db_session, task_id=created.id, user_id=bob.id) is None
    assert await task_crud.get_visible(db_session, task_id=999, user_id=alice.id) is None


@pytest.mark.asyncio
async def test_update_by_owner_and_edit_share(db_session, alice, bob):
    created = await _create(db_session, alice, title="Draft")
    await share_crud.add(db_session, task_id=created.id, user_id=bob.id, permission=SharePermission.EDIT)

    updated = await task_crud.update_for_user(
        db_session, task_id=created.id, user_id=bob.id, obj_in=TaskUpdate(title="Final")
    )

    assert updated is not None
    assert updated.title == "Final"
    assert updated.owner_id == alice.id
    assert updated.updated_at >= created.created_at


@pytest.mark.asyncio
async def test_update_denied_for_view_share_and_strangers(db_session, alice, bob, carol):
    created = await _create(db_session, alice, title="Draft")
    await share_crud.add(db_session, task_id=created.id, user_id=bob.id, permission=SharePermission.VIEW)

    for user in (bob, carol):
        result = await task_crud.update_for_user(
            db_session, task_id=created.id, user_id=user.id, obj_in=TaskUpdate(title="Hijacked")
        )
        assert result is None

    reloaded = await task_crud.get_with_details(db_session, task_id=created.id)
    assert reloaded.title == "Draft"


@pytest.mark.asyncio
async def test_update_missing_task_returns_none(db_session, alice):
    assert (
        await task_crud.update_for_user(db_session, task_id=404, user_id=alice.id, obj_in=TaskUpdate(title="x"))
        is None
    )


@pytest.mark.asyncio
async def test_completed_at_follows_status(db_session, alice):
    created = await _create(db_session, alice)

    done = await task_crud.update_for_user(
        db_session, task_id=created.id, user_id=alice.id, obj_in=TaskUpdate(status=TaskStatus.COMPLETED)
    )
    assert done.completed_at is not None

    reopened = await task_crud.update_for_user(
        db_session, task_id=created.id, user_id=alice.id, obj_in=TaskUpdate(status=TaskStatus.IN_PROGRESS)
    )
    assert reopened.completed_at is None


@pytest.mark.asyncio
async def test_delete_only_by_owner_and_cascades(db_session, alice, bob):
    created = await _create(db_session, alice)
    await share_crud.add(db_session, task_id=created.id, user_id=bob.id, permission=SharePermission.EDIT)

    assert await task_crud.delete_for_owner(db_session, task_id=created.id, user_id=bob.id) is False
    assert await task_crud.delete_for_owner(db_session, task_id=created.id, user_id=alice.id) is True

    assert await db_session.get(Task, created.id) is None
    remaining = await db_session.execute(
        select(func.count()).select_from(TaskShare).where(TaskShare.task_id == created.id)
    )
    assert remaining.scalar_one() == 0


@pytest.mark.asyncio
async def test_audience_is_owner_plus_share_holders(db_session, alice, bob, carol):
    created = await _create(db_session, alice)
    await share_crud.add(db_session, task_id=created.id, user_id=bob.id, permission=SharePermission.VIEW)

    reloaded = await task_crud.get_with_details(db_session, task_id=created.id)

    assert audience(reloaded) == {alice.id, bob.id}
