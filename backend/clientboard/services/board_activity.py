from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import ActivityMessages, BoardMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.board import AccessLevel, Board, BoardType
from clientboard.models.board_activity import BoardActivity
from clientboard.models.task import TaskAssignee
from clientboard.models.user import User
from clientboard.schemas.activity import ActivityUser, BoardActivityRead
from clientboard.services.access import AccessResolver

ACTIVITY_WINDOW_DAYS = 30
ACTIVITY_LIMIT = 200


async def log_board_activity(
    session: AsyncSession,
    *,
    board_id: int,
    user_id: int,
    action: str,
    task_id: Optional[int] = None,
    task_title: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> BoardActivity:
    entry = BoardActivity(
        board_id=board_id,
        task_id=task_id,
        task_title=task_title,
        user_id=user_id,
        action=action,
        details=details,
    )
    session.add(entry)
    await session.commit()
    return entry


@guarded_action(ActivityMessages.LIST_FAILED)
async def list_board_activity(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[BoardActivityRead]]:
    """Recent activity for a board the user can open, newest first.

    Assigned-only members see only entries about tasks assigned to them.
    """
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    board = await session.get(Board, board_id)
    if board is None or board.type == BoardType.rollup:
        return ActionResult.denied(BoardMessages.NO_ACCESS)
    level = await access.resolve_board_access(user, board)
    if level is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    cutoff = datetime.now(timezone.utc) - timedelta(days=ACTIVITY_WINDOW_DAYS)
    stmt = (
        select(BoardActivity, User)
        .join(User, User.id == BoardActivity.user_id)
        .where(BoardActivity.board_id == board_id, BoardActivity.created_at >= cutoff)
        .order_by(BoardActivity.created_at.desc(), BoardActivity.id.desc())
        .limit(ACTIVITY_LIMIT)
    )
    if level == AccessLevel.assigned_only:
        assigned = select(TaskAssignee.task_id).where(TaskAssignee.user_id == user.id)
        stmt = stmt.where(BoardActivity.task_id.in_(assigned))
    result = await session.exec(stmt)
    entries = [
        BoardActivityRead(
            id=entry.id,
            board_id=entry.board_id,
            task_id=entry.task_id,
            task_title=entry.task_title,
            user_id=entry.user_id,
            action=entry.action,
            details=entry.details,
            created_at=entry.created_at,
            user=ActivityUser(id=author.id, name=author.name, email=author.email, avatar_url=author.avatar_url),
        )
        for entry, author in result.all()
    ]
    return ActionResult.ok(entries)
