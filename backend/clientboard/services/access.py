"""Board and task access resolution.

Standard boards are public by default: admins and regular users get full
access, while members of a team flagged ``exclude_from_public`` (contractors)
only see boards they were granted through a ``BoardAccess`` row. Personal
boards belong to their creator alone.

Nothing here is cached. Every call re-reads memberships and access rows, so a
revoked grant takes effect on the next request.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.models.board import AccessLevel, Board, BoardAccess, BoardType
from clientboard.models.task import Task, TaskAssignee
from clientboard.models.user import User, UserRole
from clientboard.services.memberships import MembershipStore, SqlMembershipStore, TeamMembership


@dataclass
class TaskAccess:
    task: Task
    board: Board
    access_level: AccessLevel


def grants_all(restricted: Optional[set[int]], board_ids: Iterable[int]) -> bool:
    """Whether every board in ``board_ids`` is reachable under ``restricted_board_ids``."""
    return restricted is None or all(board_id in restricted for board_id in board_ids)


class AccessResolver:
    def __init__(self, session: AsyncSession, memberships: Optional[MembershipStore] = None) -> None:
        self.session = session
        self.memberships = memberships or SqlMembershipStore(session)

    async def _memberships(self, user: User) -> list[TeamMembership]:
        return await self.memberships.list_memberships(user.id)

    async def team_ids(self, user: User) -> list[int]:
        return [membership.team_id for membership in await self._memberships(user)]

    async def is_contractor(self, user: User) -> bool:
        return any(membership.exclude_from_public for membership in await self._memberships(user))

    async def resolve_board_access(self, user: User, board: Board) -> Optional[AccessLevel]:
        if user.role == UserRole.admin:
            return AccessLevel.full
        if board.type == BoardType.personal:
            return AccessLevel.full if board.created_by_id == user.id else None

        memberships = await self._memberships(user)
        if not any(membership.exclude_from_public for membership in memberships):
            return AccessLevel.full

        return await self._explicit_access_level(
            board_id=board.id,
            user_id=user.id,
            team_ids=[membership.team_id for membership in memberships],
        )

    async def resolve_board_access_by_id(self, user: User, board_id: int) -> Optional[AccessLevel]:
        board = await self.session.get(Board, board_id)
        if board is None:
            return None
        return await self.resolve_board_access(user, board)

    async def _explicit_access_level(
        self,
        *,
        board_id: int,
        user_id: int,
        team_ids: list[int],
    ) -> Optional[AccessLevel]:
        direct_stmt = (
            select(BoardAccess.access_level)
            .where(BoardAccess.board_id == board_id, BoardAccess.user_id == user_id)
            .order_by(BoardAccess.id)
            .limit(1)
        )
        direct = (await self.session.exec(direct_stmt)).first()
        if direct is not None:
            return AccessLevel(direct)
        if not team_ids:
            return None

        # First matching team row wins; conflicting team levels are not merged
        team_stmt = (
            select(BoardAccess.access_level)
            .where(BoardAccess.board_id == board_id, BoardAccess.team_id.in_(team_ids))
            .order_by(BoardAccess.id)
            .limit(1)
        )
        team_level = (await self.session.exec(team_stmt)).first()
        return AccessLevel(team_level) if team_level is not None else None

    async def explicit_access_board_ids(self, user: User) -> set[int]:
        """Boards the user can reach through a direct or team ``BoardAccess`` row."""
        team_ids = await self.team_ids(user)
        conditions = [BoardAccess.user_id == user.id]
        if team_ids:
            conditions.append(BoardAccess.team_id.in_(team_ids))
        result = await self.session.exec(select(BoardAccess.board_id).where(or_(*conditions)))
        return set(result.all())

    async def restricted_board_ids(self, user: User) -> Optional[set[int]]:
        """Boards a contractor is limited to, or None when the user is unrestricted.

        Admins and non-contractors are never restricted. This is the only
        place the contractor allow-list rule is decided.
        """
        if user.role == UserRole.admin or not await self.is_contractor(user):
            return None
        return await self.explicit_access_board_ids(user)

    async def is_assignee(self, user_id: int, task_id: int) -> bool:
        stmt = select(TaskAssignee.task_id).where(
            TaskAssignee.task_id == task_id,
            TaskAssignee.user_id == user_id,
        )
        return (await self.session.exec(stmt)).first() is not None

    async def resolve_task_access(self, user: User, task_id: int) -> Optional[TaskAccess]:
        """Return the task with its board when the user may see it, else None."""
        task = await self.session.get(Task, task_id)
        if task is None:
            return None
        board = await self.session.get(Board, task.board_id)
        if board is None:
            return None
        level = await self.resolve_board_access(user, board)
        if level is None:
            return None
        if level == AccessLevel.assigned_only and not await self.is_assignee(user.id, task_id):
            return None
        return TaskAccess(task=task, board=board, access_level=level)
