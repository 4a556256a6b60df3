from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import func, or_, update
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel.sql.expression import SelectOfScalar

from clientboard.core.messages import BoardMessages, TaskMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.attachment import Attachment
from clientboard.models.board import AccessLevel, Board, BoardType
from clientboard.models.board_activity import BoardActivity
from clientboard.models.client import Client
from clientboard.models.comment import Comment
from clientboard.models.task import Task, TaskAssignee
from clientboard.models.task_view import TaskView
from clientboard.models.user import User
from clientboard.schemas.board import ClientSummary
from clientboard.schemas.task import (
    ArchivedTaskSummary,
    BulkArchiveResult,
    MyTasksBoard,
    MyTasksGroup,
    TaskAssigneeRead,
    TaskCreate,
    TaskFilters,
    TaskPositionUpdate,
    TaskRead,
    TaskSortOptions,
    TaskUpdate,
)
from clientboard.services import app_settings as app_settings_service
from clientboard.services.access import AccessResolver, TaskAccess
from clientboard.services.effects import RECURRING_COMPLETED_EVENT, ActivityEntry, Effect, JobEvent
from clientboard.services.rollups import source_board_read, with_source
from clientboard.services.task_queries import (
    annotate_tasks,
    apply_assignee_filter,
    describe_validation_error,
    drop_completed,
    fetch_listing_tasks,
    load_assignees,
    parse_listing_options,
)
from clientboard.services.task_visibility import complete_status_ids, filter_visible_tasks, is_complete_status

logger = logging.getLogger(__name__)

NO_SECTION_LABEL = "None"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _option_label(options: Sequence[Mapping[str, Any]], option_id: Optional[str]) -> Optional[str]:
    for option in options:
        if option.get("id") == option_id:
            return option.get("label")
    return None


def _default_status(board: Board) -> str:
    options = sorted(board.status_options or [], key=lambda option: option.get("position", 0))
    return options[0]["id"] if options else "todo"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


async def _annotate_one(session: AsyncSession, task: Task, board: Board, user: User) -> TaskRead:
    annotated = await annotate_tasks(
        session,
        [task],
        user_id=user.id,
        status_options_by_board={board.id: board.status_options},
    )
    return annotated[0]


async def _missing_user_ids(session: AsyncSession, user_ids: Sequence[int]) -> set[int]:
    if not user_ids:
        return set()
    result = await session.exec(select(User.id).where(User.id.in_(list(user_ids))))
    return set(user_ids) - set(result.all())


async def _next_position(session: AsyncSession, *, board_id: int, parent_task_id: Optional[int]) -> int:
    stmt = select(func.coalesce(func.max(Task.position), -1))
    if parent_task_id is not None:
        stmt = stmt.where(Task.parent_task_id == parent_task_id)
    else:
        stmt = stmt.where(Task.board_id == board_id, Task.parent_task_id.is_(None))
    current_max = (await session.exec(stmt)).one()
    return int(current_max) + 1


def _assigned_task_ids(user_id: int) -> SelectOfScalar[int]:
    return select(TaskAssignee.task_id).where(TaskAssignee.user_id == user_id)


async def _task_board(
    session: AsyncSession,
    access: AccessResolver,
    user: User,
    board_id: int,
) -> tuple[Optional[Board], Optional[AccessLevel]]:
    board = await session.get(Board, board_id)
    if board is None or board.type == BoardType.rollup:
        return None, None
    level = await access.resolve_board_access(user, board)
    if level is None:
        return None, None
    return board, level


@dataclass(frozen=True)
class _TaskSnapshot:
    title: str
    status: str
    section: Optional[str]
    due_date: Optional[date]
    recurring_config: Optional[dict[str, Any]]

    @classmethod
    def of(cls, task: Task) -> "_TaskSnapshot":
        return cls(
            title=task.title,
            status=task.status,
            section=task.section,
            due_date=task.due_date,
            recurring_config=task.recurring_config,
        )


async def _recurring_completion(
    session: AsyncSession,
    *,
    task: Task,
    board: Board,
    user: User,
    before: _TaskSnapshot,
) -> Optional[JobEvent]:
    """The job event for a recurring task that just moved into a complete status.

    The task joins its own recurring group when it had none yet.
    """
    if (
        task.parent_task_id is not None
        or not before.recurring_config
        or before.due_date is None
        or not is_complete_status(task.status, board.status_options)
        or is_complete_status(before.status, board.status_options)
    ):
        return None

    current_assignees = await session.exec(select(TaskAssignee.user_id).where(TaskAssignee.task_id == task.id))
    task.recurring_group_id = task.recurring_group_id or task.id
    session.add(task)
    return JobEvent(
        name=RECURRING_COMPLETED_EVENT,
        data={
            "taskId": task.id,
            "boardId": task.board_id,
            "recurringGroupId": task.recurring_group_id,
            "recurringConfig": before.recurring_config,
            "completedDueDate": _iso(before.due_date),
            "completedByUserId": user.id,
            "title": before.title,
            "description": task.description,
            "section": before.section,
            "dateFlexibility": task.date_flexibility.value,
            "assigneeIds": list(current_assignees.all()),
        },
    )


def _status_change_entry(task: Task, board: Board, user: User, *, old_status: str) -> ActivityEntry:
    return ActivityEntry(
        board_id=task.board_id,
        user_id=user.id,
        action="task_status_changed",
        task_id=task.id,
        task_title=task.title,
        details={
            "oldValue": old_status,
            "newValue": task.status,
            "oldLabel": _option_label(board.status_options, old_status) or old_status,
            "newLabel": _option_label(board.status_options, task.status) or task.status,
        },
    )


@guarded_action(TaskMessages.LIST_FAILED)
async def list_tasks(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    filters: TaskFilters | Mapping[str, Any] | None = None,
    sort: TaskSortOptions | Mapping[str, Any] | None = None,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[TaskRead]]:
    """Top-level tasks of one board, filtered, sorted and annotated.

    ``assigned_only`` access narrows the listing to tasks the user is
    assigned to.
    """
    if user is None:
        return ActionResult.unauthenticated()
    try:
        parsed_filters, parsed_sort = parse_listing_options(filters, sort)
    except ValidationError as exc:
        return ActionResult.invalid(describe_validation_error(exc, TaskMessages.INVALID_FILTERS))

    board, level = await _task_board(session, access or AccessResolver(session), user, board_id)
    if board is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    today = await app_settings_service.get_org_today(session) if parsed_filters.overdue else None
    options = {board.id: board.status_options}
    tasks = await fetch_listing_tasks(
        session,
        board_ids=[board.id],
        filters=parsed_filters,
        sort=parsed_sort,
        today=today,
    )
    if parsed_filters.overdue:
        tasks = drop_completed(tasks, options)

    assignees = await load_assignees(session, [task.id for task in tasks])
    tasks = apply_assignee_filter(tasks, parsed_filters, assignees)
    tasks = filter_visible_tasks(
        tasks,
        access_level=level,
        user_id=user.id,
        assignees_by_task={task_id: [assignee.id for assignee in rows] for task_id, rows in assignees.items()},
    )
    annotated = await annotate_tasks(
        session,
        tasks,
        user_id=user.id,
        status_options_by_board=options,
        assignees_by_task=assignees,
    )
    return ActionResult.ok(annotated)


@guarded_action(TaskMessages.GET_FAILED)
async def get_task(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[TaskRead]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)
    return ActionResult.ok(await _annotate_one(session, resolved.task, resolved.board, user))


@guarded_action(TaskMessages.CREATE_FAILED)
async def create_task(
    session: AsyncSession,
    *,
    user: Optional[User],
    data: TaskCreate,
    access: Optional[AccessResolver] = None,
) -> ActionResult[TaskRead]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)

    if data.parent_task_id is not None:
        if data.recurring_config is not None:
            return ActionResult.invalid(TaskMessages.SUBTASK_RECURRING)
        parent = await access.resolve_task_access(user, data.parent_task_id)
        if parent is None:
            return ActionResult.denied(TaskMessages.PARENT_NO_ACCESS)
        if parent.task.parent_task_id is not None:
            return ActionResult.invalid(TaskMessages.NESTED_SUBTASK)
        if parent.task.board_id != data.board_id:
            return ActionResult.invalid(TaskMessages.PARENT_OTHER_BOARD)

    board = await session.get(Board, data.board_id)
    if board is None or board.type == BoardType.rollup:
        return ActionResult.denied(BoardMessages.NO_ACCESS)
    level = await access.resolve_board_access(user, board)
    if level is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    assignee_ids = list(dict.fromkeys(data.assignee_ids))
    if board.type == BoardType.personal:
        assignee_ids = [user.id]
    elif level == AccessLevel.assigned_only and user.id not in assignee_ids:
        return ActionResult.denied(TaskMessages.ASSIGN_SELF_REQUIRED)
    if await _missing_user_ids(session, assignee_ids):
        return ActionResult.invalid(TaskMessages.UNKNOWN_ASSIGNEES)

    position = data.position
    if position is None:
        position = await _next_position(session, board_id=board.id, parent_task_id=data.parent_task_id)

    task = Task(
        board_id=board.id,
        title=data.title,
        description=data.description,
        status=data.status or _default_status(board),
        section=data.section,
        due_date=data.due_date,
        date_flexibility=data.date_flexibility,
        recurring_config=data.recurring_config.to_payload() if data.recurring_config else None,
        parent_task_id=data.parent_task_id,
        position=position,
        created_by_id=user.id,
    )
    session.add(task)
    await session.flush()
    for assignee_id in assignee_ids:
        session.add(TaskAssignee(task_id=task.id, user_id=assignee_id))
    await session.commit()
    await session.refresh(task)

    effects: list[Effect] = [
        ActivityEntry(
            board_id=board.id,
            user_id=user.id,
            action="subtask_created" if task.parent_task_id else "task_created",
            task_id=task.id,
            task_title=task.title,
        )
    ]
    return ActionResult.ok(await _annotate_one(session, task, board, user), effects=effects)


async def _replace_assignees(
    session: AsyncSession,
    *,
    task: Task,
    user: User,
    assignee_ids: Sequence[int],
) -> list[Effect]:
    current_stmt = (
        select(TaskAssignee.user_id, User.name, User.email)
        .join(User, User.id == TaskAssignee.user_id)
        .where(TaskAssignee.task_id == task.id)
    )
    current = {user_id: name or email for user_id, name, email in (await session.exec(current_stmt)).all()}
    wanted = list(dict.fromkeys(assignee_ids))

    await session.exec(delete(TaskAssignee).where(TaskAssignee.task_id == task.id))
    for assignee_id in wanted:
        session.add(TaskAssignee(task_id=task.id, user_id=assignee_id))

    added = [assignee_id for assignee_id in wanted if assignee_id not in current]
    removed = [assignee_id for assignee_id in current if assignee_id not in wanted]
    added_names: dict[int, str] = {}
    if added:
        rows = await session.exec(select(User.id, User.name, User.email).where(User.id.in_(added)))
        added_names = {user_id: name or email for user_id, name, email in rows.all()}

    effects: list[Effect] = []
    for assignee_id in added:
        effects.append(
            ActivityEntry(
                board_id=task.board_id,
                user_id=user.id,
                action="task_assigned",
                task_id=task.id,
                task_title=task.title,
                details={"assigneeName": added_names.get(assignee_id, "Unknown")},
            )
        )
    for assignee_id in removed:
        effects.append(
            ActivityEntry(
                board_id=task.board_id,
                user_id=user.id,
                action="task_unassigned",
                task_id=task.id,
                task_title=task.title,
                details={"assigneeName": current.get(assignee_id, "Unknown")},
            )
        )
    return effects


@guarded_action(TaskMessages.UPDATE_FAILED)
async def update_task(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    data: TaskUpdate,
    access: Optional[AccessResolver] = None,
) -> ActionResult[TaskRead]:
    """Apply a partial update and collect the resulting side effects.

    A status change that completes a recurring task emits a
    ``task/recurring.completed`` job event so the next occurrence can be
    scheduled. With ``complete_subtasks`` every direct subtask receives the
    new status in one statement.
    """
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)
    task, board = resolved.task, resolved.board

    fields = data.model_fields_set
    if data.recurring_config is not None and task.parent_task_id is not None:
        return ActionResult.invalid(TaskMessages.SUBTASK_RECURRING)
    if data.assignee_ids and await _missing_user_ids(session, data.assignee_ids):
        return ActionResult.invalid(TaskMessages.UNKNOWN_ASSIGNEES)

    before = _TaskSnapshot.of(task)
    now = _now()

    if data.title is not None:
        task.title = data.title
    if "description" in fields:
        task.description = data.description
    if data.status is not None:
        task.status = data.status
    if "section" in fields:
        task.section = data.section
    if "due_date" in fields:
        task.due_date = data.due_date
    if data.date_flexibility is not None:
        task.date_flexibility = data.date_flexibility
    if "recurring_config" in fields:
        task.recurring_config = data.recurring_config.to_payload() if data.recurring_config else None
    if data.position is not None:
        task.position = data.position
    task.updated_at = now
    session.add(task)

    if data.complete_subtasks and data.status is not None and task.parent_task_id is None:
        await session.exec(
            update(Task).where(Task.parent_task_id == task.id).values(status=data.status, updated_at=now)
        )

    effects: list[Effect] = []
    completed = await _recurring_completion(session, task=task, board=board, user=user, before=before)
    if completed is not None:
        effects.append(completed)

    # Personal boards always stay assigned to their owner
    if data.assignee_ids is not None and board.type != BoardType.personal:
        effects.extend(await _replace_assignees(session, task=task, user=user, assignee_ids=data.assignee_ids))

    await session.commit()
    await session.refresh(task)

    def activity(action: str, details: dict[str, Any]) -> ActivityEntry:
        return ActivityEntry(
            board_id=task.board_id,
            user_id=user.id,
            action=action,
            task_id=task.id,
            task_title=task.title,
            details=details,
        )

    if task.title != before.title:
        effects.append(activity("task_title_changed", {"oldValue": before.title, "newValue": task.title}))
    if task.status != before.status:
        effects.append(_status_change_entry(task, board, user, old_status=before.status))
    if task.section != before.section:
        old_section = before.section
        effects.append(
            activity(
                "task_section_changed",
                {
                    "oldLabel": _option_label(board.section_options, old_section) or old_section or NO_SECTION_LABEL,
                    "newLabel": _option_label(board.section_options, task.section) or task.section or NO_SECTION_LABEL,
                },
            )
        )
    if task.due_date != before.due_date:
        effects.append(
            activity("task_due_date_changed", {"oldValue": _iso(before.due_date), "newValue": _iso(task.due_date)})
        )

    return ActionResult.ok(await _annotate_one(session, task, board, user), effects=effects)


async def _delete_task_rows(session: AsyncSession, task_ids: list[int]) -> None:
    await session.exec(delete(TaskAssignee).where(TaskAssignee.task_id.in_(task_ids)))
    await session.exec(delete(Comment).where(Comment.task_id.in_(task_ids)))
    await session.exec(delete(Attachment).where(Attachment.task_id.in_(task_ids)))
    await session.exec(delete(TaskView).where(TaskView.task_id.in_(task_ids)))
    await session.exec(update(BoardActivity).where(BoardActivity.task_id.in_(task_ids)).values(task_id=None))
    await session.exec(delete(Task).where(Task.id.in_(task_ids)))


@guarded_action(TaskMessages.DELETE_FAILED)
async def delete_task(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[None]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)
    task = resolved.task
    board_id, title, is_subtask = task.board_id, task.title, task.parent_task_id is not None

    subtask_ids = (await session.exec(select(Task.id).where(Task.parent_task_id == task_id))).all()
    await _delete_task_rows(session, [task_id, *subtask_ids])
    await session.commit()
    logger.info("User %s deleted task %s on board %s", user.id, task_id, board_id)

    # The task row is gone, so the entry keeps only the title
    effects: list[Effect] = [
        ActivityEntry(
            board_id=board_id,
            user_id=user.id,
            action="subtask_deleted" if is_subtask else "task_deleted",
            task_title=title,
        )
    ]
    return ActionResult.ok(None, effects=effects)


@guarded_action(TaskMessages.UPDATE_FAILED)
async def archive_task(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[None]:
    """Archive a completed task together with its subtasks."""
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)
    task, board = resolved.task, resolved.board
    if not is_complete_status(task.status, board.status_options):
        return ActionResult.invalid(TaskMessages.ARCHIVE_REQUIRES_COMPLETE)

    now = _now()
    await session.exec(
        update(Task).where(or_(Task.id == task_id, Task.parent_task_id == task_id)).values(archived_at=now)
    )
    await session.commit()
    effects: list[Effect] = [
        ActivityEntry(
            board_id=board.id,
            user_id=user.id,
            action="task_archived",
            task_id=task_id,
            task_title=task.title,
        )
    ]
    return ActionResult.ok(None, effects=effects)


@guarded_action(TaskMessages.UPDATE_FAILED)
async def unarchive_task(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[None]:
    """Restore a task; a subtask also restores its parent, a parent its subtasks."""
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)
    task = resolved.task

    now = _now()
    if task.parent_task_id is not None:
        condition = Task.id.in_([task_id, task.parent_task_id])
    else:
        condition = or_(Task.id == task_id, Task.parent_task_id == task_id)
    await session.exec(update(Task).where(condition).values(archived_at=None, updated_at=now))
    await session.commit()
    effects: list[Effect] = [
        ActivityEntry(
            board_id=task.board_id,
            user_id=user.id,
            action="task_unarchived",
            task_id=task_id,
            task_title=task.title,
        )
    ]
    return ActionResult.ok(None, effects=effects)


@guarded_action(TaskMessages.LIST_FAILED)
async def list_subtasks(
    session: AsyncSession,
    *,
    user: Optional[User],
    parent_task_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[TaskRead]]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, parent_task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.PARENT_NO_ACCESS)

    stmt = (
        select(Task)
        .where(Task.parent_task_id == parent_task_id, Task.archived_at.is_(None))
        .order_by(Task.position, Task.id)
    )
    subtasks = list((await session.exec(stmt)).all())
    annotated = await annotate_tasks(
        session,
        subtasks,
        user_id=user.id,
        status_options_by_board={resolved.board.id: resolved.board.status_options},
    )
    return ActionResult.ok(annotated)


ARCHIVED_TASKS_LIMIT = 100
ARCHIVED_SEARCH_MIN_LENGTH = 2


@guarded_action(TaskMessages.UPDATE_FAILED)
async def update_task_positions(
    session: AsyncSession,
    *,
    user: Optional[User],
    updates: Sequence[TaskPositionUpdate],
    access: Optional[AccessResolver] = None,
) -> ActionResult[None]:
    """Persist a drag-and-drop reorder, optionally moving tasks between statuses.

    Nothing is written unless the user can access every task in the batch.
    Status changes are logged and can complete a recurring task the same way
    ``update_task`` does.
    """
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)

    resolved: list[tuple[TaskAccess, TaskPositionUpdate]] = []
    for item in updates:
        task_access = await access.resolve_task_access(user, item.id)
        if task_access is None:
            return ActionResult.denied(TaskMessages.NO_ACCESS)
        resolved.append((task_access, item))

    now = _now()
    effects: list[Effect] = []
    for task_access, item in resolved:
        task, board = task_access.task, task_access.board
        before = _TaskSnapshot.of(task)
        task.position = item.position
        if item.status is not None:
            task.status = item.status
        task.updated_at = now
        session.add(task)
        if task.status == before.status:
            continue
        effects.append(_status_change_entry(task, board, user, old_status=before.status))
        completed = await _recurring_completion(session, task=task, board=board, user=user, before=before)
        if completed is not None:
            effects.append(completed)

    await session.commit()
    return ActionResult.ok(None, effects=effects)


@guarded_action(TaskMessages.UPDATE_FAILED)
async def bulk_archive_done(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[BulkArchiveResult]:
    """Archive every completed top-level task of a board, subtasks included.

    Assigned-only members archive just the completed tasks assigned to them.
    """
    if user is None:
        return ActionResult.unauthenticated()
    board, level = await _task_board(session, access or AccessResolver(session), user, board_id)
    if board is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    complete_ids = complete_status_ids(board.status_options or [])
    if not complete_ids:
        return ActionResult.ok(BulkArchiveResult(archived_count=0))

    stmt = (
        select(Task.id)
        .where(
            Task.board_id == board.id,
            Task.status.in_(complete_ids),
            Task.archived_at.is_(None),
            Task.parent_task_id.is_(None),
        )
        .order_by(Task.position, Task.id)
    )
    if level == AccessLevel.assigned_only:
        stmt = stmt.where(Task.id.in_(_assigned_task_ids(user.id)))
    done_ids = list((await session.exec(stmt)).all())
    if not done_ids:
        return ActionResult.ok(BulkArchiveResult(archived_count=0))

    now = _now()
    await session.exec(
        update(Task)
        .where(or_(Task.id.in_(done_ids), Task.parent_task_id.in_(done_ids)))
        .values(archived_at=now)
    )
    await session.commit()
    logger.info("User %s archived %s completed tasks on board %s", user.id, len(done_ids), board.id)

    effects: list[Effect] = [
        ActivityEntry(
            board_id=board.id,
            user_id=user.id,
            action="tasks_bulk_archived",
            task_id=done_ids[0],
            task_title=f"{len(done_ids)} completed tasks",
            details={"count": len(done_ids)},
        )
    ]
    return ActionResult.ok(BulkArchiveResult(archived_count=len(done_ids)), effects=effects)


@guarded_action(TaskMessages.ARCHIVED_LIST_FAILED)
async def list_archived_tasks(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    search: Optional[str] = None,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[ArchivedTaskSummary]]:
    """Archived top-level tasks of a board, most recently archived first.

    A search term shorter than two characters is ignored.
    """
    if user is None:
        return ActionResult.unauthenticated()
    board, level = await _task_board(session, access or AccessResolver(session), user, board_id)
    if board is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    stmt = (
        select(Task)
        .where(Task.board_id == board.id, Task.archived_at.is_not(None), Task.parent_task_id.is_(None))
        .order_by(Task.archived_at.desc(), Task.id.desc())
        .limit(ARCHIVED_TASKS_LIMIT)
    )
    term = (search or "").strip()
    if len(term) >= ARCHIVED_SEARCH_MIN_LENGTH:
        stmt = stmt.where(Task.title.icontains(term, autoescape=True))
    if level == AccessLevel.assigned_only:
        stmt = stmt.where(Task.id.in_(_assigned_task_ids(user.id)))

    tasks = list((await session.exec(stmt)).all())
    assignees = await load_assignees(session, [task.id for task in tasks])
    return ActionResult.ok(
        [
            ArchivedTaskSummary(
                id=task.id,
                title=task.title,
                status=task.status,
                archived_at=task.archived_at,
                assignees=assignees.get(task.id, []),
            )
            for task in tasks
        ]
    )


@guarded_action(TaskMessages.ASSIGNABLE_USERS_FAILED)
async def get_board_assignable_users(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[TaskAssigneeRead]]:
    """Active users who can open the board and so may be assigned its tasks.

    Contractors qualify only through a direct or team access row.
    """
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    board, _ = await _task_board(session, access, user, board_id)
    if board is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    stmt = select(User).where(User.deactivated_at.is_(None)).order_by(User.name, User.email, User.id)
    candidates = (await session.exec(stmt)).all()
    return ActionResult.ok(
        [
            TaskAssigneeRead(
                id=candidate.id,
                email=candidate.email,
                name=candidate.name,
                avatar_url=candidate.avatar_url,
            )
            for candidate in candidates
            if await access.resolve_board_access(candidate, board) is not None
        ]
    )


@guarded_action(TaskMessages.LIST_FAILED)
async def list_my_tasks(
    session: AsyncSession,
    *,
    user: Optional[User],
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[MyTasksGroup]]:
    """Unarchived tasks assigned to the user across the client boards they can open.

    Groups follow client name; inside a group tasks follow board name and
    position. Boards without a client are left out.
    """
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)

    stmt = (
        select(Task, Board, Client)
        .join(Board, Board.id == Task.board_id)
        .join(Client, Client.id == Board.client_id)
        .where(
            Task.id.in_(_assigned_task_ids(user.id)),
            Task.archived_at.is_(None),
            Board.type == BoardType.standard,
        )
        .order_by(Client.name, Client.id, Board.name, Board.id, Task.position, Task.id)
    )
    levels: dict[int, Optional[AccessLevel]] = {}
    rows: list[tuple[Task, Board, Client]] = []
    for task, board, client in (await session.exec(stmt)).all():
        if board.id not in levels:
            levels[board.id] = await access.resolve_board_access(user, board)
        if levels[board.id] is not None:
            rows.append((task, board, client))

    annotated = await annotate_tasks(
        session,
        [task for task, _, _ in rows],
        user_id=user.id,
        status_options_by_board={board.id: board.status_options for _, board, _ in rows},
    )
    groups: dict[int, MyTasksGroup] = {}
    for task_read, (_, board, client) in zip(annotated, rows):
        group = groups.get(client.id)
        if group is None:
            group = groups[client.id] = MyTasksGroup(client=ClientSummary.model_validate(client))
        if not any(listed.id == board.id for listed in group.boards):
            group.boards.append(
                MyTasksBoard(
                    id=board.id,
                    name=board.name,
                    status_options=board.status_options or [],
                    section_options=board.section_options or [],
                )
            )
        group.tasks.append(with_source(task_read, source_board_read(board, client)))
    return ActionResult.ok(list(groups.values()))
