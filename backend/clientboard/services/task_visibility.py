"""Row-level task visibility and the shared "complete status" predicate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional, TypeVar

from clientboard.models.board import AccessLevel

COMPLETE_STATUS_IDS = frozenset({"complete", "done"})
COMPLETE_LABEL_MARKERS = ("complete", "done")

# Option dicts as stored on boards, or StatusOption models
StatusOptions = Sequence[Any]

TaskT = TypeVar("TaskT")


def _option_value(option: Any, key: str) -> Any:
    if isinstance(option, Mapping):
        return option.get(key)
    return getattr(option, key, None)


def is_complete_status(status_id: Optional[str], status_options: StatusOptions) -> bool:
    """Whether ``status_id`` counts as complete for a board vocabulary.

    The ids ``complete`` and ``done`` are always complete; any other id is
    complete when its option label contains "complete" or "done",
    case-insensitively.
    """
    if status_id is None:
        return False
    if status_id in COMPLETE_STATUS_IDS:
        return True
    for option in status_options:
        if _option_value(option, "id") != status_id:
            continue
        label = (_option_value(option, "label") or "").lower()
        return any(marker in label for marker in COMPLETE_LABEL_MARKERS)
    return False


def complete_status_ids(status_options: StatusOptions) -> list[str]:
    ids: list[str] = []
    for option in status_options:
        option_id = _option_value(option, "id")
        if option_id is not None and is_complete_status(option_id, status_options):
            ids.append(option_id)
    return ids


def is_task_visible(
    *,
    access_level: AccessLevel,
    user_id: int,
    assignee_ids: Iterable[int],
    parent_task_id: Optional[int] = None,
    archived: bool = False,
) -> bool:
    if parent_task_id is not None or archived:
        return False
    if access_level == AccessLevel.full:
        return True
    return user_id in set(assignee_ids)


def filter_visible_tasks(
    tasks: Iterable[TaskT],
    *,
    access_level: AccessLevel,
    user_id: int,
    assignees_by_task: Mapping[int, Iterable[int]],
) -> list[TaskT]:
    """Apply one board's access level to a collection of that board's tasks."""
    visible: list[TaskT] = []
    for task in tasks:
        task_id = getattr(task, "id")
        if is_task_visible(
            access_level=access_level,
            user_id=user_id,
            assignee_ids=assignees_by_task.get(task_id, ()),
            parent_task_id=getattr(task, "parent_task_id", None),
            archived=getattr(task, "archived_at", None) is not None,
        ):
            visible.append(task)
    return visible
