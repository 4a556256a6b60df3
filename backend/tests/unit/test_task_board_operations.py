"""
Service tests for board-wide task operations.

Covers:
- Drag-and-drop reordering with status moves
- Archiving every completed task of a board and browsing the archive
- Assignable users per board
- The personal "my tasks" view grouped by client
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import BoardMessages, TaskMessages
from clientboard.core.results import ErrorCode
from clientboard.models.board import AccessLevel, BoardType
from clientboard.schemas.task import TaskPositionUpdate
from clientboard.services import tasks as tasks_service
from clientboard.services.effects import RECURRING_COMPLETED_EVENT, ActivityEntry, JobEvent
from clientboard.testing import (
    create_board,
    create_board_access,
    create_client,
    create_rollup,
    create_task,
    create_team,
    create_user,
)


def _activity(result):
    return [effect for effect in result.effects if isinstance(effect, ActivityEntry)]


def _jobs(result):
    return [effect for effect in result.effects if isinstance(effect, JobEvent)]


async def _contractor_on(session: AsyncSession, board, access_level=AccessLevel.assigned_only):
    contractor = await create_user(session)
    await create_team(session, members=[contractor], exclude_from_public=True)
    await create_board_access(session, board, user=contractor, access_level=access_level)
    return contractor


@pytest.mark.unit
@pytest.mark.service
async def test_reorder_moves_tasks_and_logs_status_changes(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    first = await create_task(session, board, position=0)
    second = await create_task(session, board, position=1, title="Banner")

    result = await tasks_service.update_task_positions(
        session,
        user=user,
        updates=[
            TaskPositionUpdate(id=second.id, position=0, status="review"),
            TaskPositionUpdate(id=first.id, position=1),
        ],
    )

    assert result.success
    await session.refresh(first)
    await session.refresh(second)
    assert (first.position, first.status) == (1, "todo")
    assert (second.position, second.status) == (0, "review")
    [entry] = _activity(result)
    assert (entry.action, entry.task_id, entry.task_title) == ("task_status_changed", second.id, "Banner")
    assert entry.details == {"oldValue": "todo", "newValue": "review", "oldLabel": "To Do", "newLabel": "Review"}
    assert _jobs(result) == []


@pytest.mark.unit
@pytest.mark.service
async def test_dragging_recurring_task_to_complete_emits_job_event(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    task = await create_task(
        session,
        board,
        assignees=[user],
        title="Monthly invoice",
        due_date=date(2026, 4, 1),
        recurring_config={"frequency": "monthly", "interval": 1, "dayOfMonth": 1},
    )

    result = await tasks_service.update_task_positions(
        session,
        user=user,
        updates=[TaskPositionUpdate(id=task.id, position=5, status="complete")],
    )

    [event] = _jobs(result)
    assert event.name == RECURRING_COMPLETED_EVENT
    assert event.data["recurringGroupId"] == task.id
    assert event.data["completedDueDate"] == "2026-04-01"
    assert event.data["assigneeIds"] == [user.id]
    await session.refresh(task)
    assert task.recurring_group_id == task.id


@pytest.mark.unit
@pytest.mark.service
async def test_reorder_is_refused_when_any_task_is_hidden(session: AsyncSession):
    board = await create_board(session)
    contractor = await _contractor_on(session, board)
    mine = await create_task(session, board, assignees=[contractor], position=0)
    hidden = await create_task(session, board, position=1)

    result = await tasks_service.update_task_positions(
        session,
        user=contractor,
        updates=[
            TaskPositionUpdate(id=mine.id, position=1),
            TaskPositionUpdate(id=hidden.id, position=0),
        ],
    )

    assert result.code == ErrorCode.access_denied
    assert result.error == TaskMessages.NO_ACCESS
    await session.refresh(mine)
    assert mine.position == 0


@pytest.mark.unit
@pytest.mark.service
async def test_bulk_archive_done_archives_completed_parents_with_subtasks(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(
        session,
        status_options=[
            {"id": "todo", "label": "To Do", "position": 0},
            {"id": "shipped", "label": "Shipped / Done", "position": 1},
        ],
    )
    shipped = await create_task(session, board, status="shipped", position=0)
    subtask = await create_task(session, board, status="todo", parent_task_id=shipped.id)
    open_task = await create_task(session, board, status="todo")
    earlier = await create_task(
        session,
        board,
        status="shipped",
        archived_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )

    result = await tasks_service.bulk_archive_done(session, user=user, board_id=board.id)

    assert result.data.archived_count == 1
    for task in (shipped, subtask, open_task, earlier):
        await session.refresh(task)
    assert shipped.archived_at is not None
    assert subtask.archived_at == shipped.archived_at
    assert open_task.archived_at is None
    assert earlier.archived_at.year == 2026 and earlier.archived_at.month == 1
    [entry] = result.effects
    assert (entry.action, entry.task_id, entry.task_title) == ("tasks_bulk_archived", shipped.id, "1 completed tasks")
    assert entry.details == {"count": 1}


@pytest.mark.unit
@pytest.mark.service
async def test_bulk_archive_done_limits_assigned_only_members_to_their_tasks(session: AsyncSession):
    board = await create_board(session)
    contractor = await _contractor_on(session, board)
    mine = await create_task(session, board, assignees=[contractor], status="complete")
    theirs = await create_task(session, board, status="complete")

    result = await tasks_service.bulk_archive_done(session, user=contractor, board_id=board.id)
    nothing_left = await tasks_service.bulk_archive_done(session, user=contractor, board_id=board.id)

    assert result.data.archived_count == 1
    assert nothing_left.data.archived_count == 0
    assert nothing_left.effects == []
    await session.refresh(mine)
    await session.refresh(theirs)
    assert mine.archived_at is not None
    assert theirs.archived_at is None


@pytest.mark.unit
@pytest.mark.service
async def test_bulk_archive_done_refuses_rollups_and_hidden_boards(session: AsyncSession):
    user = await create_user(session)
    outsider = await create_user(session)
    await create_team(session, members=[outsider], exclude_from_public=True)
    board = await create_board(session)
    rollup = await create_rollup(session, user, sources=[board])

    on_rollup = await tasks_service.bulk_archive_done(session, user=user, board_id=rollup.id)
    hidden = await tasks_service.bulk_archive_done(session, user=outsider, board_id=board.id)

    assert on_rollup.error == BoardMessages.NO_ACCESS
    assert hidden.error == BoardMessages.NO_ACCESS


@pytest.mark.unit
@pytest.mark.service
async def test_archived_tasks_newest_first_with_search(session: AsyncSession):
    user = await create_user(session, name="Ari")
    board = await create_board(session)
    base = datetime(2026, 2, 1, tzinfo=timezone.utc)
    older = await create_task(session, board, assignees=[user], title="Launch plan email", archived_at=base)
    newer = await create_task(session, board, title="Launch_page", archived_at=base + timedelta(days=1))
    await create_task(session, board, title="Launch notes", parent_task_id=older.id, archived_at=base)
    await create_task(session, board, title="Launch plan")

    everything = await tasks_service.list_archived_tasks(session, user=user, board_id=board.id)
    searched = await tasks_service.list_archived_tasks(session, user=user, board_id=board.id, search=" EMAIL ")
    underscore = await tasks_service.list_archived_tasks(session, user=user, board_id=board.id, search="h_p")
    too_short = await tasks_service.list_archived_tasks(session, user=user, board_id=board.id, search="x")

    assert [task.id for task in everything.data] == [newer.id, older.id]
    assert [assignee.name for assignee in everything.data[1].assignees] == ["Ari"]
    assert [task.id for task in searched.data] == [older.id]
    assert [task.id for task in underscore.data] == [newer.id]
    assert [task.id for task in too_short.data] == [newer.id, older.id]


@pytest.mark.unit
@pytest.mark.service
async def test_archived_tasks_for_assigned_only_member(session: AsyncSession):
    board = await create_board(session)
    contractor = await _contractor_on(session, board)
    archived_at = datetime(2026, 2, 1, tzinfo=timezone.utc)
    mine = await create_task(session, board, assignees=[contractor], archived_at=archived_at)
    await create_task(session, board, archived_at=archived_at)

    result = await tasks_service.list_archived_tasks(session, user=contractor, board_id=board.id)

    assert [task.id for task in result.data] == [mine.id]


@pytest.mark.unit
@pytest.mark.service
async def test_assignable_users_exclude_contractors_without_access(session: AsyncSession):
    board = await create_board(session)
    regular = await create_user(session, name="Bea")
    granted = await create_user(session, name="Cy")
    via_team = await create_user(session, name="Dee")
    ungranted = await create_user(session, name="Eli")
    await create_user(session, name="Fay", deactivated_at=datetime.now(timezone.utc))
    await create_team(session, members=[granted, ungranted], exclude_from_public=True)
    crew = await create_team(session, members=[via_team], exclude_from_public=True)
    await create_board_access(session, board, user=granted, access_level=AccessLevel.assigned_only)
    await create_board_access(session, board, team=crew)

    result = await tasks_service.get_board_assignable_users(session, user=regular, board_id=board.id)
    denied = await tasks_service.get_board_assignable_users(session, user=ungranted, board_id=board.id)

    names = [candidate.name for candidate in result.data]
    assert {"Bea", "Cy", "Dee"} <= set(names)
    assert "Eli" not in names
    assert "Fay" not in names
    assert names == sorted(names)
    assert denied.error == BoardMessages.NO_ACCESS


@pytest.mark.unit
@pytest.mark.service
async def test_my_tasks_grouped_by_client_then_board(session: AsyncSession):
    user = await create_user(session)
    acme = await create_client(session, name="Acme")
    beta = await create_client(session, name="Beta")
    zeta = await create_board(session, acme, name="Zeta")
    web = await create_board(session, acme, name="Web")
    ops = await create_board(session, beta, name="Ops")
    loose = await create_board(session, name="No client")
    personal = await create_board(session, name="Mine", type=BoardType.personal, created_by_id=user.id)

    on_ops = await create_task(session, ops, assignees=[user])
    on_zeta = await create_task(session, zeta, assignees=[user], position=0)
    second_on_web = await create_task(session, web, assignees=[user], position=2)
    first_on_web = await create_task(session, web, assignees=[user], position=1)
    await create_task(session, web, assignees=[user], archived_at=datetime.now(timezone.utc))
    await create_task(session, web)
    await create_task(session, loose, assignees=[user])
    await create_task(session, personal, assignees=[user])

    result = await tasks_service.list_my_tasks(session, user=user)

    assert [group.client.name for group in result.data] == ["Acme", "Beta"]
    acme_group, beta_group = result.data
    assert [board.name for board in acme_group.boards] == ["Web", "Zeta"]
    assert [task.id for task in acme_group.tasks] == [first_on_web.id, second_on_web.id, on_zeta.id]
    assert acme_group.tasks[0].board_name == "Web"
    assert acme_group.tasks[0].client_name == "Acme"
    assert [task.id for task in beta_group.tasks] == [on_ops.id]
    assert [option.id for option in beta_group.boards[0].status_options][-1] == "complete"


@pytest.mark.unit
@pytest.mark.service
async def test_my_tasks_skip_boards_the_user_lost(session: AsyncSession):
    client = await create_client(session)
    kept = await create_board(session, client)
    lost = await create_board(session, client)
    contractor = await _contractor_on(session, kept)
    on_kept = await create_task(session, kept, assignees=[contractor])
    await create_task(session, lost, assignees=[contractor])

    result = await tasks_service.list_my_tasks(session, user=contractor)
    anonymous = await tasks_service.list_my_tasks(session, user=None)

    [group] = result.data
    assert [task.id for task in group.tasks] == [on_kept.id]
    assert anonymous.code == ErrorCode.not_authenticated
