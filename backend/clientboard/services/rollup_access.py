"""Rollup visibility.

Rollups are private by default. Regular users and admins see a rollup they
own or hold an accepted invitation for (direct, team or all-users).
Contractors ignore ownership and invitations: they see a rollup only when
every one of its source boards is explicitly granted to them.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

from sqlalchemy import or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.models.board import Board, BoardType
from clientboard.models.rollup import RollupInvitation, RollupInvitationStatus, RollupOwner, RollupSource
from clientboard.models.user import User, UserRole
from clientboard.services.access import AccessResolver, grants_all


class RollupAccessResolver:
    def __init__(self, session: AsyncSession, access: Optional[AccessResolver] = None) -> None:
        self.session = session
        self.access = access or AccessResolver(session)

    async def source_board_ids(self, rollup_id: int) -> list[int]:
        stmt = (
            select(RollupSource.source_board_id)
            .where(RollupSource.rollup_board_id == rollup_id)
            .order_by(RollupSource.id)
        )
        return list((await self.session.exec(stmt)).all())

    async def is_owner(self, rollup_id: int, user_id: int) -> bool:
        stmt = select(RollupOwner.id).where(
            RollupOwner.rollup_board_id == rollup_id,
            RollupOwner.user_id == user_id,
        )
        return (await self.session.exec(stmt)).first() is not None

    async def _shared_rollup_ids(self, user: User, rollup_id: Optional[int] = None) -> set[int]:
        owned_stmt = select(RollupOwner.rollup_board_id).where(RollupOwner.user_id == user.id)

        targets = [RollupInvitation.user_id == user.id, RollupInvitation.all_users.is_(True)]
        team_ids = await self.access.team_ids(user)
        if team_ids:
            targets.append(RollupInvitation.team_id.in_(team_ids))
        invited_stmt = select(RollupInvitation.rollup_board_id).where(
            RollupInvitation.status == RollupInvitationStatus.accepted,
            or_(*targets),
        )
        if rollup_id is not None:
            owned_stmt = owned_stmt.where(RollupOwner.rollup_board_id == rollup_id)
            invited_stmt = invited_stmt.where(RollupInvitation.rollup_board_id == rollup_id)

        ids = set((await self.session.exec(owned_stmt)).all())
        ids.update((await self.session.exec(invited_stmt)).all())
        return ids

    async def can_see_rollup(self, user: User, rollup: Board) -> bool:
        if rollup.type != BoardType.rollup:
            return False
        restricted = await self.access.restricted_board_ids(user)
        if restricted is not None:
            return grants_all(restricted, await self.source_board_ids(rollup.id))
        return rollup.id in await self._shared_rollup_ids(user, rollup.id)

    async def can_see_rollup_id(self, user: User, rollup_id: int) -> Optional[Board]:
        """Return the rollup board when it exists and is visible to ``user``."""
        rollup = await self.session.get(Board, rollup_id)
        if rollup is None or not await self.can_see_rollup(user, rollup):
            return None
        return rollup

    async def addressable_rollup(self, user: User, rollup_id: int) -> Optional[Board]:
        """The rollup a management call may act on, or None.

        Admins may manage any existing rollup; everyone else only one they can
        see, so a private rollup reads the same as a missing one.
        """
        if user.role != UserRole.admin:
            return await self.can_see_rollup_id(user, rollup_id)
        rollup = await self.session.get(Board, rollup_id)
        if rollup is None or rollup.type != BoardType.rollup:
            return None
        return rollup

    async def accessible_rollup_ids(self, user: User) -> set[int]:
        restricted = await self.access.restricted_board_ids(user)
        if restricted is None:
            return await self._shared_rollup_ids(user)

        rollup_ids = (await self.session.exec(select(Board.id).where(Board.type == BoardType.rollup))).all()
        sources: dict[int, list[int]] = defaultdict(list)
        for rollup_id, source_id in (
            await self.session.exec(select(RollupSource.rollup_board_id, RollupSource.source_board_id))
        ).all():
            sources[rollup_id].append(source_id)
        return {rollup_id for rollup_id in rollup_ids if grants_all(restricted, sources.get(rollup_id, ()))}
