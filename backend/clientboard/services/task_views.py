from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import TaskMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.task_view import TaskView
from clientboard.models.user import User
from clientboard.services.access import AccessResolver


@guarded_action(TaskMessages.UPDATE_FAILED)
async def record_task_view(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    viewed_at: Optional[datetime] = None,
    access: Optional[AccessResolver] = None,
) -> ActionResult[datetime]:
    """Store the moment the user last opened a task, replacing any earlier view."""
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    if await access.resolve_task_access(user, task_id) is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)

    moment = viewed_at or datetime.now(timezone.utc)
    stmt = select(TaskView).where(TaskView.task_id == task_id, TaskView.user_id == user.id)
    view = (await session.exec(stmt)).first()
    if view is None:
        view = TaskView(task_id=task_id, user_id=user.id, viewed_at=moment)
    else:
        view.viewed_at = moment
    session.add(view)
    await session.commit()
    return ActionResult.ok(moment)
