from __future__ import annotations

from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import CommentMessages, TaskMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.comment import Comment
from clientboard.models.user import User
from clientboard.schemas.comment import CommentAuthor, CommentRead
from clientboard.services.access import AccessResolver
from clientboard.services.effects import ActivityEntry, Effect


def _comment_read(comment: Comment, author: User) -> CommentRead:
    return CommentRead(
        id=comment.id,
        task_id=comment.task_id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        author=CommentAuthor.model_validate(author),
    )


@guarded_action(CommentMessages.LIST_FAILED)
async def list_comments(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[CommentRead]]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    if await access.resolve_task_access(user, task_id) is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)

    stmt = (
        select(Comment, User)
        .join(User, User.id == Comment.author_id)
        .where(Comment.task_id == task_id)
        .order_by(Comment.created_at, Comment.id)
    )
    return ActionResult.ok([_comment_read(comment, author) for comment, author in (await session.exec(stmt)).all()])


@guarded_action(CommentMessages.CREATE_FAILED)
async def create_comment(
    session: AsyncSession,
    *,
    user: Optional[User],
    task_id: int,
    content: str,
    access: Optional[AccessResolver] = None,
) -> ActionResult[CommentRead]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    resolved = await access.resolve_task_access(user, task_id)
    if resolved is None:
        return ActionResult.denied(TaskMessages.NO_ACCESS)
    normalized = content.strip()
    if not normalized:
        return ActionResult.invalid(CommentMessages.EMPTY)

    comment = Comment(content=normalized, author_id=user.id, task_id=task_id)
    session.add(comment)
    await session.commit()
    await session.refresh(comment)

    effects: list[Effect] = [
        ActivityEntry(
            board_id=resolved.task.board_id,
            user_id=user.id,
            action="comment_added",
            task_id=task_id,
            task_title=resolved.task.title,
        )
    ]
    return ActionResult.ok(_comment_read(comment, user), effects=effects)
