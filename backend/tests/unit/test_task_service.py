"""
Service tests for task commands and queries.

Covers:
- Creation rules (subtasks, assigned_only boards, personal boards, defaults)
- Update side effects (activity entries, recurring completion events)
- Batch subtask completion, deletion and archiving
- Listings narrowed by access level
"""

from datetime import date

import pytest
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import TaskMessages
from clientboard.core.results import ErrorCode
from clientboard.models.board import AccessLevel, BoardType
from clientboard.models.board_activity import BoardActivity
from clientboard.models.comment import Comment
from clientboard.models.task import Task, TaskAssignee
from clientboard.schemas.task import TaskCreate, TaskUpdate
from clientboard.services import tasks as tasks_service
from clientboard.services.effects import RECURRING_COMPLETED_EVENT, ActivityEntry, JobEvent
from clientboard.testing import (
    create_board,
    create_board_access,
    create_comment,
    create_rollup,
    create_task,
    create_team,
    create_user,
)

WEEKLY = {"frequency": "weekly", "interval": 1, "daysOfWeek": [1]}


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
async def test_create_task_uses_first_status_and_next_position(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(
        session,
        status_options=[
            {"id": "backlog", "label": "Backlog", "position": 1},
            {"id": "triage", "label": "Triage", "position": 0},
        ],
    )
    await create_task(session, board, position=0, status="backlog")
    await create_task(session, board, position=3, status="backlog")

    result = await tasks_service.create_task(
        session,
        user=user,
        data=TaskCreate(board_id=board.id, title="Write brief"),
    )

    assert result.success
    assert result.data.status == "triage"
    assert result.data.position == 4
    assert result.data.created_by_id == user.id
    [entry] = _activity(result)
    assert (entry.action, entry.task_id, entry.task_title) == ("task_created", result.data.id, "Write brief")


@pytest.mark.unit
@pytest.mark.service
async def test_create_task_without_board_statuses_defaults_to_todo(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session, status_options=[])

    result = await tasks_service.create_task(session, user=user, data=TaskCreate(board_id=board.id, title="Plan"))

    assert result.data.status == "todo"
    assert result.data.position == 0


@pytest.mark.unit
@pytest.mark.service
async def test_subtask_creation_rules(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    other_board = await create_board(session)
    parent = await create_task(session, board)
    child = await create_task(session, board, parent_task_id=parent.id, position=5)

    nested = await tasks_service.create_task(
        session, user=user, data=TaskCreate(board_id=board.id, title="Deep", parent_task_id=child.id)
    )
    elsewhere = await tasks_service.create_task(
        session, user=user, data=TaskCreate(board_id=other_board.id, title="Moved", parent_task_id=parent.id)
    )
    recurring = await tasks_service.create_task(
        session,
        user=user,
        data=TaskCreate(board_id=board.id, title="Weekly", parent_task_id=parent.id, recurring_config=WEEKLY),
    )
    missing = await tasks_service.create_task(
        session, user=user, data=TaskCreate(board_id=board.id, title="Orphan", parent_task_id=9999)
    )
    created = await tasks_service.create_task(
        session, user=user, data=TaskCreate(board_id=board.id, title="Step", parent_task_id=parent.id)
    )

    assert nested.error == TaskMessages.NESTED_SUBTASK
    assert elsewhere.error == TaskMessages.PARENT_OTHER_BOARD
    assert recurring.error == TaskMessages.SUBTASK_RECURRING
    assert missing.code == ErrorCode.access_denied
    assert created.success
    assert created.data.parent_task_id == parent.id
    assert created.data.position == 6
    assert _activity(created)[0].action == "subtask_created"


@pytest.mark.unit
@pytest.mark.service
async def test_assigned_only_member_must_assign_self(session: AsyncSession):
    board = await create_board(session)
    contractor = await _contractor_on(session, board)
    colleague = await create_user(session)

    refused = await tasks_service.create_task(
        session,
        user=contractor,
        data=TaskCreate(board_id=board.id, title="For someone else", assignee_ids=[colleague.id]),
    )
    allowed = await tasks_service.create_task(
        session,
        user=contractor,
        data=TaskCreate(board_id=board.id, title="Mine", assignee_ids=[contractor.id, colleague.id]),
    )

    assert refused.code == ErrorCode.access_denied
    assert refused.error == TaskMessages.ASSIGN_SELF_REQUIRED
    assert allowed.success
    assert sorted(assignee.id for assignee in allowed.data.assignees) == sorted([contractor.id, colleague.id])


@pytest.mark.unit
@pytest.mark.service
async def test_personal_board_tasks_are_assigned_to_owner(session: AsyncSession):
    owner = await create_user(session)
    other = await create_user(session)
    personal = await create_board(session, creator=owner, type=BoardType.personal, name="My Tasks")

    result = await tasks_service.create_task(
        session,
        user=owner,
        data=TaskCreate(board_id=personal.id, title="Errand", assignee_ids=[other.id]),
    )
    intruder = await tasks_service.create_task(
        session,
        user=other,
        data=TaskCreate(board_id=personal.id, title="Sneaky"),
    )

    assert [assignee.id for assignee in result.data.assignees] == [owner.id]
    assert intruder.code == ErrorCode.access_denied


@pytest.mark.unit
@pytest.mark.service
async def test_create_rejects_unknown_assignees_and_rollup_boards(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    rollup = await create_rollup(session, user, sources=[board])

    unknown = await tasks_service.create_task(
        session, user=user, data=TaskCreate(board_id=board.id, title="Ghost", assignee_ids=[424242])
    )
    on_rollup = await tasks_service.create_task(
        session, user=user, data=TaskCreate(board_id=rollup.id, title="Virtual")
    )

    assert unknown.code == ErrorCode.validation_error
    assert unknown.error == TaskMessages.UNKNOWN_ASSIGNEES
    assert on_rollup.code == ErrorCode.access_denied
    assert (await session.exec(select(Task).where(Task.title.in_(["Ghost", "Virtual"])))).all() == []


@pytest.mark.unit
@pytest.mark.service
async def test_completing_recurring_task_emits_job_event(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    task = await create_task(
        session,
        board,
        assignees=[user],
        title="Weekly report",
        due_date=date(2026, 3, 2),
        recurring_config=WEEKLY,
    )

    result = await tasks_service.update_task(
        session, user=user, task_id=task.id, data=TaskUpdate(status="complete")
    )

    assert result.success
    [event] = _jobs(result)
    assert event.name == RECURRING_COMPLETED_EVENT
    assert event.data["taskId"] == task.id
    assert event.data["recurringGroupId"] == task.id
    assert event.data["recurringConfig"] == WEEKLY
    assert event.data["completedDueDate"] == "2026-03-02"
    assert event.data["completedByUserId"] == user.id
    assert event.data["assigneeIds"] == [user.id]
    assert result.data.recurring_group_id == task.id
    [status_change] = _activity(result)
    assert status_change.action == "task_status_changed"
    assert status_change.details["oldLabel"] == "To Do"
    assert status_change.details["newLabel"] == "Complete"


@pytest.mark.unit
@pytest.mark.service
async def test_completion_without_recurrence_or_due_date_emits_no_event(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    plain = await create_task(session, board, due_date=date(2026, 3, 2))
    undated = await create_task(session, board, recurring_config=WEEKLY)

    plain_result = await tasks_service.update_task(
        session, user=user, task_id=plain.id, data=TaskUpdate(status="complete")
    )
    undated_result = await tasks_service.update_task(
        session, user=user, task_id=undated.id, data=TaskUpdate(status="complete")
    )

    assert _jobs(plain_result) == []
    assert _jobs(undated_result) == []


@pytest.mark.unit
@pytest.mark.service
async def test_complete_subtasks_updates_every_direct_subtask(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    parent = await create_task(session, board)
    first = await create_task(session, board, parent_task_id=parent.id)
    second = await create_task(session, board, parent_task_id=parent.id, status="review")

    result = await tasks_service.update_task(
        session,
        user=user,
        task_id=parent.id,
        data=TaskUpdate(status="complete", complete_subtasks=True),
    )

    assert result.success
    assert result.data.subtask_completed_count == 2
    statuses = (await session.exec(select(Task.status).where(Task.id.in_([first.id, second.id])))).all()
    assert statuses == ["complete", "complete"]


@pytest.mark.unit
@pytest.mark.service
async def test_assignee_changes_are_logged_by_name(session: AsyncSession):
    user = await create_user(session)
    kept = await create_user(session, name="Kim")
    dropped = await create_user(session, name="Dana")
    added = await create_user(session, name="Ari")
    board = await create_board(session)
    task = await create_task(session, board, assignees=[kept, dropped])

    result = await tasks_service.update_task(
        session,
        user=user,
        task_id=task.id,
        data=TaskUpdate(assignee_ids=[kept.id, added.id]),
    )

    entries = {(entry.action, entry.details["assigneeName"]) for entry in _activity(result)}
    assert entries == {("task_assigned", "Ari"), ("task_unassigned", "Dana")}
    current = (await session.exec(select(TaskAssignee.user_id).where(TaskAssignee.task_id == task.id))).all()
    assert sorted(current) == sorted([kept.id, added.id])


@pytest.mark.unit
@pytest.mark.service
async def test_field_changes_produce_activity_details(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session, section_options=[{"id": "design", "label": "Design", "position": 0}])
    task = await create_task(session, board, title="Old title")

    result = await tasks_service.update_task(
        session,
        user=user,
        task_id=task.id,
        data=TaskUpdate(title="New title", section="design", due_date=date(2026, 4, 1)),
    )

    by_action = {entry.action: entry.details for entry in _activity(result)}
    assert by_action["task_title_changed"] == {"oldValue": "Old title", "newValue": "New title"}
    assert by_action["task_section_changed"] == {"oldLabel": "None", "newLabel": "Design"}
    assert by_action["task_due_date_changed"] == {"oldValue": None, "newValue": "2026-04-01"}
    assert "task_status_changed" not in by_action


@pytest.mark.unit
@pytest.mark.service
async def test_update_rejects_recurrence_on_subtasks(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    parent = await create_task(session, board)
    child = await create_task(session, board, parent_task_id=parent.id)

    result = await tasks_service.update_task(
        session, user=user, task_id=child.id, data=TaskUpdate(recurring_config=WEEKLY)
    )

    assert result.code == ErrorCode.validation_error


@pytest.mark.unit
@pytest.mark.service
async def test_delete_task_removes_subtasks_and_keeps_activity(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    parent = await create_task(session, board, title="Launch")
    child = await create_task(session, board, parent_task_id=parent.id)
    await create_comment(session, parent, user)
    history = BoardActivity(board_id=board.id, user_id=user.id, action="task_created", task_id=parent.id)
    session.add(history)
    await session.commit()

    result = await tasks_service.delete_task(session, user=user, task_id=parent.id)

    assert result.success
    [entry] = _activity(result)
    assert (entry.action, entry.task_id, entry.task_title) == ("task_deleted", None, "Launch")
    remaining = (await session.exec(select(Task.id).where(Task.id.in_([parent.id, child.id])))).all()
    assert remaining == []
    assert (await session.exec(select(Comment))).all() == []
    kept = (await session.exec(select(BoardActivity.task_id).where(BoardActivity.board_id == board.id))).all()
    assert kept == [None]


@pytest.mark.unit
@pytest.mark.service
async def test_archive_requires_complete_status(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    open_task = await create_task(session, board)
    done = await create_task(session, board, status="complete")
    child = await create_task(session, board, parent_task_id=done.id)

    refused = await tasks_service.archive_task(session, user=user, task_id=open_task.id)
    archived = await tasks_service.archive_task(session, user=user, task_id=done.id)

    assert refused.error == TaskMessages.ARCHIVE_REQUIRES_COMPLETE
    assert archived.success
    assert _activity(archived)[0].action == "task_archived"
    archived_ids = (await session.exec(select(Task.id).where(Task.archived_at.is_not(None)))).all()
    assert sorted(archived_ids) == sorted([done.id, child.id])

    listing = await tasks_service.list_tasks(session, user=user, board_id=board.id)
    assert [task.id for task in listing.data] == [open_task.id]


@pytest.mark.unit
@pytest.mark.service
async def test_unarchiving_subtask_restores_parent(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    parent = await create_task(session, board, status="complete")
    child = await create_task(session, board, parent_task_id=parent.id)
    sibling = await create_task(session, board, parent_task_id=parent.id)
    await tasks_service.archive_task(session, user=user, task_id=parent.id)

    result = await tasks_service.unarchive_task(session, user=user, task_id=child.id)

    assert result.success
    active = (await session.exec(select(Task.id).where(Task.archived_at.is_(None)))).all()
    assert sorted(active) == sorted([parent.id, child.id])
    assert sibling.id not in active


@pytest.mark.unit
@pytest.mark.service
async def test_list_subtasks_in_position_order(session: AsyncSession):
    user = await create_user(session)
    board = await create_board(session)
    parent = await create_task(session, board)
    second = await create_task(session, board, parent_task_id=parent.id, position=2)
    first = await create_task(session, board, parent_task_id=parent.id, position=1)

    result = await tasks_service.list_subtasks(session, user=user, parent_task_id=parent.id)
    missing = await tasks_service.list_subtasks(session, user=user, parent_task_id=9999)

    assert [task.id for task in result.data] == [first.id, second.id]
    assert missing.error == TaskMessages.PARENT_NO_ACCESS


@pytest.mark.unit
@pytest.mark.service
async def test_list_tasks_for_assigned_only_member(session: AsyncSession):
    board = await create_board(session)
    contractor = await _contractor_on(session, board)
    outsider = await create_user(session)
    await create_team(session, members=[outsider], exclude_from_public=True)
    mine = await create_task(session, board, assignees=[contractor])
    await create_task(session, board)
    await create_task(session, board, assignees=[await create_user(session)])

    result = await tasks_service.list_tasks(session, user=contractor, board_id=board.id)
    denied = await tasks_service.list_tasks(session, user=outsider, board_id=board.id)

    assert [task.id for task in result.data] == [mine.id]
    assert denied.code == ErrorCode.access_denied


@pytest.mark.unit
@pytest.mark.service
async def test_get_task_hides_unassigned_tasks_from_assigned_only_members(session: AsyncSession):
    board = await create_board(session)
    contractor = await _contractor_on(session, board)
    hidden = await create_task(session, board)

    result = await tasks_service.get_task(session, user=contractor, task_id=hidden.id)

    assert result.code == ErrorCode.access_denied
    assert result.error == TaskMessages.NO_ACCESS


@pytest.mark.unit
@pytest.mark.service
async def test_operations_require_a_user(session: AsyncSession):
    board = await create_board(session)
    task = await create_task(session, board)

    results = [
        await tasks_service.list_tasks(session, user=None, board_id=board.id),
        await tasks_service.get_task(session, user=None, task_id=task.id),
        await tasks_service.create_task(session, user=None, data=TaskCreate(board_id=board.id, title="x")),
        await tasks_service.update_task(session, user=None, task_id=task.id, data=TaskUpdate(title="y")),
        await tasks_service.delete_task(session, user=None, task_id=task.id),
    ]

    assert {result.code for result in results} == {ErrorCode.not_authenticated}
