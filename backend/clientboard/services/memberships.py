"""Team membership queries consumed by the access layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.models.team import Team, TeamMember


@dataclass(frozen=True)
class TeamMembership:
    team_id: int
    exclude_from_public: bool


class MembershipStore(Protocol):
    async def list_memberships(self, user_id: int) -> list[TeamMembership]: ...


class SqlMembershipStore:
    """Reads memberships straight from the database on every call."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_memberships(self, user_id: int) -> list[TeamMembership]:
        stmt = (
            select(TeamMember.team_id, Team.exclude_from_public)
            .join(Team, Team.id == TeamMember.team_id)
            .where(TeamMember.user_id == user_id)
            .order_by(TeamMember.team_id)
        )
        result = await self.session.exec(stmt)
        return [
            TeamMembership(team_id=team_id, exclude_from_public=bool(excluded))
            for team_id, excluded in result.all()
        ]
