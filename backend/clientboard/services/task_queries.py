"""Listing queries and derived metadata shared by board and rollup views."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import and_, func, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.models.attachment import Attachment
from clientboard.models.comment import Comment
from clientboard.models.task import Task, TaskAssignee
from clientboard.models.task_view import TaskView
from clientboard.models.user import User
from clientboard.schemas.task import (
    NO_SECTION,
    FilterMode,
    SortDirection,
    TaskAssigneeRead,
    TaskFilters,
    TaskRead,
    TaskSortField,
    TaskSortOptions,
)
from clientboard.services.task_visibility import is_complete_status

SORT_COLUMNS = {
    TaskSortField.position: Task.position,
    TaskSortField.due_date: Task.due_date,
    TaskSortField.created_at: Task.created_at,
    TaskSortField.title: Task.title,
    TaskSortField.status: Task.status,
}


def parse_listing_options(
    filters: TaskFilters | Mapping[str, Any] | None,
    sort: TaskSortOptions | Mapping[str, Any] | None,
) -> tuple[TaskFilters, TaskSortOptions]:
    """Validate raw filter/sort input. Raises ``pydantic.ValidationError``."""
    parsed_filters = filters if isinstance(filters, TaskFilters) else TaskFilters.model_validate(filters or {})
    parsed_sort = sort if isinstance(sort, TaskSortOptions) else TaskSortOptions.model_validate(sort or {})
    return parsed_filters, parsed_sort


def describe_validation_error(exc: ValidationError, fallback: str) -> str:
    errors = exc.errors()
    if not errors:
        return fallback
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", fallback)
    return f"{location}: {message}" if location else message


def status_conditions(filters: TaskFilters) -> list[Any]:
    if not filters.status:
        return []
    if filters.status_mode == FilterMode.is_not:
        return [Task.status.not_in(filters.status)]
    return [Task.status.in_(filters.status)]


def section_conditions(filters: TaskFilters) -> list[Any]:
    if not filters.section:
        return []
    has_no_section = NO_SECTION in filters.section
    sections = [section for section in filters.section if section != NO_SECTION]

    if filters.section_mode == FilterMode.is_not:
        if has_no_section and sections:
            return [and_(Task.section.is_not(None), Task.section.not_in(sections))]
        if has_no_section:
            return [Task.section.is_not(None)]
        return [or_(Task.section.is_(None), Task.section.not_in(sections))]

    if has_no_section and sections:
        return [or_(Task.section.is_(None), Task.section.in_(sections))]
    if has_no_section:
        return [Task.section.is_(None)]
    return [Task.section.in_(sections)]


def sort_clauses(sort: TaskSortOptions) -> list[Any]:
    column = SORT_COLUMNS[sort.field]
    if sort.direction == SortDirection.desc:
        return [column.desc(), Task.id.desc()]
    return [column.asc(), Task.id.asc()]


async def fetch_listing_tasks(
    session: AsyncSession,
    *,
    board_ids: Sequence[int],
    filters: TaskFilters,
    sort: TaskSortOptions,
    today: Optional[date] = None,
) -> list[Task]:
    """Top-level, non-archived tasks of ``board_ids`` matching the column filters.

    Overdue completion and assignee filters need per-board vocabularies and
    assignee sets, so they are applied afterwards by the caller.
    """
    if not board_ids:
        return []
    conditions: list[Any] = [
        Task.board_id.in_(list(board_ids)),
        Task.parent_task_id.is_(None),
        Task.archived_at.is_(None),
    ]
    conditions.extend(status_conditions(filters))
    conditions.extend(section_conditions(filters))
    if filters.overdue and today is not None:
        conditions.append(Task.due_date.is_not(None))
        conditions.append(Task.due_date < today)

    stmt = select(Task).where(*conditions).order_by(*sort_clauses(sort))
    result = await session.exec(stmt)
    return list(result.all())


def drop_completed(
    tasks: Sequence[Task],
    status_options_by_board: Mapping[int, Sequence[Any]],
) -> list[Task]:
    return [
        task
        for task in tasks
        if not is_complete_status(task.status, status_options_by_board.get(task.board_id, ()))
    ]


def apply_assignee_filter(
    tasks: Sequence[Task],
    filters: TaskFilters,
    assignees_by_task: Mapping[int, Sequence[TaskAssigneeRead]],
) -> list[Task]:
    if not filters.assignee_ids:
        return list(tasks)
    wanted = set(filters.assignee_ids)
    exclude = filters.assignee_mode == FilterMode.is_not
    filtered: list[Task] = []
    for task in tasks:
        matched = any(assignee.id in wanted for assignee in assignees_by_task.get(task.id, ()))
        if matched != exclude:
            filtered.append(task)
    return filtered


async def load_assignees(session: AsyncSession, task_ids: Sequence[int]) -> dict[int, list[TaskAssigneeRead]]:
    assignees: dict[int, list[TaskAssigneeRead]] = defaultdict(list)
    if not task_ids:
        return assignees
    stmt = (
        select(TaskAssignee.task_id, User.id, User.email, User.name, User.avatar_url, User.deactivated_at)
        .join(User, User.id == TaskAssignee.user_id)
        .where(TaskAssignee.task_id.in_(list(task_ids)))
        .order_by(TaskAssignee.task_id, User.id)
    )
    result = await session.exec(stmt)
    for task_id, user_id, email, name, avatar_url, deactivated_at in result.all():
        assignees[task_id].append(
            TaskAssigneeRead(
                id=user_id,
                email=email,
                name=name,
                avatar_url=avatar_url,
                deactivated_at=deactivated_at,
            )
        )
    return assignees


async def _comment_stats(session: AsyncSession, task_ids: list[int]) -> dict[int, tuple[int, datetime]]:
    stmt = (
        select(Comment.task_id, func.count(Comment.id), func.max(Comment.created_at))
        .where(Comment.task_id.in_(task_ids))
        .group_by(Comment.task_id)
    )
    result = await session.exec(stmt)
    return {task_id: (count, latest) for task_id, count, latest in result.all()}


async def _attachment_counts(session: AsyncSession, task_ids: list[int]) -> dict[int, int]:
    stmt = (
        select(Attachment.task_id, func.count(Attachment.id))
        .where(Attachment.task_id.in_(task_ids))
        .group_by(Attachment.task_id)
    )
    result = await session.exec(stmt)
    return dict(result.all())


async def _last_views(session: AsyncSession, task_ids: list[int], user_id: int) -> dict[int, datetime]:
    stmt = select(TaskView.task_id, TaskView.viewed_at).where(
        TaskView.task_id.in_(task_ids),
        TaskView.user_id == user_id,
    )
    result = await session.exec(stmt)
    return dict(result.all())


async def _subtask_statuses(session: AsyncSession, task_ids: list[int]) -> dict[int, list[str]]:
    stmt = select(Task.parent_task_id, Task.status).where(Task.parent_task_id.in_(task_ids))
    result = await session.exec(stmt)
    statuses: dict[int, list[str]] = defaultdict(list)
    for parent_id, status in result.all():
        statuses[parent_id].append(status)
    return statuses


def has_new_comments(latest_comment_at: Optional[datetime], last_viewed_at: Optional[datetime]) -> bool:
    if latest_comment_at is None:
        return False
    return last_viewed_at is None or latest_comment_at > last_viewed_at


async def annotate_tasks(
    session: AsyncSession,
    tasks: Sequence[Task],
    *,
    user_id: int,
    status_options_by_board: Mapping[int, Sequence[Any]],
    assignees_by_task: Optional[Mapping[int, Sequence[TaskAssigneeRead]]] = None,
) -> list[TaskRead]:
    """Attach assignees, activity counters and subtask progress to tasks.

    Subtask completion is judged against the vocabulary of the board that
    owns the parent task.
    """
    task_ids = [task.id for task in tasks]
    if not task_ids:
        return []
    if assignees_by_task is None:
        assignees_by_task = await load_assignees(session, task_ids)
    comment_stats = await _comment_stats(session, task_ids)
    attachment_counts = await _attachment_counts(session, task_ids)
    last_views = await _last_views(session, task_ids, user_id)
    subtask_statuses = await _subtask_statuses(session, task_ids)

    annotated: list[TaskRead] = []
    for task in tasks:
        comment_count, latest_comment_at = comment_stats.get(task.id, (0, None))
        options = status_options_by_board.get(task.board_id, ())
        statuses = subtask_statuses.get(task.id, [])
        annotated.append(
            TaskRead(
                **task.model_dump(),
                assignees=list(assignees_by_task.get(task.id, ())),
                comment_count=comment_count,
                attachment_count=attachment_counts.get(task.id, 0),
                has_new_comments=comment_count > 0
                and has_new_comments(latest_comment_at, last_views.get(task.id)),
                subtask_count=len(statuses),
                subtask_completed_count=sum(1 for status in statuses if is_complete_status(status, options)),
            )
        )
    return annotated
