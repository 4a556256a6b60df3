from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import aliased
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import AuthMessages, RollupMessages, RollupSharingMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.board import Board, BoardType
from clientboard.models.rollup import RollupInvitation, RollupInvitationStatus, RollupOwner
from clientboard.models.team import Team, TeamMember
from clientboard.models.user import User, UserRole
from clientboard.schemas.rollup import InvitationCreated, RollupInvitationRead, RollupOwnerRead
from clientboard.services.access import AccessResolver
from clientboard.services.rollup_access import RollupAccessResolver

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _get_rollup(session: AsyncSession, rollup_id: int) -> Optional[Board]:
    rollup = await session.get(Board, rollup_id)
    if rollup is None or rollup.type != BoardType.rollup:
        return None
    return rollup


async def _addressable_rollup(session: AsyncSession, user: User, rollup_id: int) -> Optional[Board]:
    return await RollupAccessResolver(session).addressable_rollup(user, rollup_id)


async def _can_manage(session: AsyncSession, user: User, rollup_id: int) -> bool:
    if user.role == UserRole.admin:
        return True
    return await RollupAccessResolver(session).is_owner(rollup_id, user.id)


async def _create_invitation(
    session: AsyncSession,
    *,
    user: User,
    rollup_id: int,
    user_id: Optional[int] = None,
    team_id: Optional[int] = None,
    all_users: bool = False,
) -> InvitationCreated:
    # Invitations created by an admin take effect immediately
    auto_accept = user.role == UserRole.admin
    invitation = RollupInvitation(
        rollup_board_id=rollup_id,
        user_id=user_id,
        team_id=team_id,
        all_users=all_users,
        status=RollupInvitationStatus.accepted if auto_accept else RollupInvitationStatus.pending,
        invited_by_id=user.id,
        responded_at=_now() if auto_accept else None,
    )
    session.add(invitation)
    await session.commit()
    await session.refresh(invitation)
    logger.info("User %s invited %s to rollup %s", user.id, user_id or team_id or "all users", rollup_id)
    return InvitationCreated(invitation_id=invitation.id)


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def get_rollup_owners(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[RollupOwnerRead]]:
    if user is None:
        return ActionResult.unauthenticated()
    if await RollupAccessResolver(session, access).can_see_rollup_id(user, rollup_id) is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)

    stmt = (
        select(RollupOwner, User)
        .join(User, User.id == RollupOwner.user_id)
        .where(RollupOwner.rollup_board_id == rollup_id)
        .order_by(RollupOwner.is_primary.desc(), RollupOwner.id)
    )
    owners = [
        RollupOwnerRead(
            id=owner.id,
            rollup_board_id=owner.rollup_board_id,
            user_id=owner.user_id,
            user_name=owner_user.name,
            user_email=owner_user.email,
            user_avatar_url=owner_user.avatar_url,
            is_primary=owner.is_primary,
            created_at=owner.created_at,
        )
        for owner, owner_user in (await session.exec(stmt)).all()
    ]
    return ActionResult.ok(owners)


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def get_rollup_invitations(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[RollupInvitationRead]]:
    if user is None:
        return ActionResult.unauthenticated()
    if await RollupAccessResolver(session, access).can_see_rollup_id(user, rollup_id) is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)

    invitee = aliased(User)
    inviter = aliased(User)
    stmt = (
        select(RollupInvitation, invitee, Team, inviter)
        .outerjoin(invitee, invitee.id == RollupInvitation.user_id)
        .outerjoin(Team, Team.id == RollupInvitation.team_id)
        .join(inviter, inviter.id == RollupInvitation.invited_by_id)
        .where(RollupInvitation.rollup_board_id == rollup_id)
        .order_by(RollupInvitation.created_at, RollupInvitation.id)
    )
    invitations = [
        RollupInvitationRead(
            id=invitation.id,
            rollup_board_id=invitation.rollup_board_id,
            user_id=invitation.user_id,
            user_name=invited_user.name if invited_user else None,
            user_email=invited_user.email if invited_user else None,
            team_id=invitation.team_id,
            team_name=team.name if team else None,
            all_users=invitation.all_users,
            status=invitation.status,
            invited_by_id=invitation.invited_by_id,
            invited_by_name=inviting_user.name,
            invited_by_email=inviting_user.email,
            responded_at=invitation.responded_at,
            created_at=invitation.created_at,
        )
        for invitation, invited_user, team, inviting_user in (await session.exec(stmt)).all()
    ]
    return ActionResult.ok(invitations)


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def invite_user_to_rollup(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    invitee_id: int,
) -> ActionResult[InvitationCreated]:
    if user is None:
        return ActionResult.unauthenticated()
    if await _addressable_rollup(session, user, rollup_id) is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)
    if not await _can_manage(session, user, rollup_id):
        return ActionResult.denied(RollupSharingMessages.OWNER_OR_ADMIN_REQUIRED)
    if await session.get(User, invitee_id) is None:
        return ActionResult.invalid(RollupSharingMessages.USER_NOT_FOUND)

    existing = await session.exec(
        select(RollupInvitation.id).where(
            RollupInvitation.rollup_board_id == rollup_id,
            RollupInvitation.user_id == invitee_id,
        )
    )
    if existing.first() is not None:
        return ActionResult.invalid(RollupSharingMessages.USER_ALREADY_INVITED)
    return ActionResult.ok(await _create_invitation(session, user=user, rollup_id=rollup_id, user_id=invitee_id))


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def invite_team_to_rollup(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    team_id: int,
) -> ActionResult[InvitationCreated]:
    if user is None:
        return ActionResult.unauthenticated()
    if await _addressable_rollup(session, user, rollup_id) is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)
    if not await _can_manage(session, user, rollup_id):
        return ActionResult.denied(RollupSharingMessages.OWNER_OR_ADMIN_REQUIRED)
    if await session.get(Team, team_id) is None:
        return ActionResult.invalid(RollupSharingMessages.TEAM_NOT_FOUND)

    existing = await session.exec(
        select(RollupInvitation.id).where(
            RollupInvitation.rollup_board_id == rollup_id,
            RollupInvitation.team_id == team_id,
        )
    )
    if existing.first() is not None:
        return ActionResult.invalid(RollupSharingMessages.TEAM_ALREADY_INVITED)
    return ActionResult.ok(await _create_invitation(session, user=user, rollup_id=rollup_id, team_id=team_id))


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def invite_all_users_to_rollup(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
) -> ActionResult[InvitationCreated]:
    """Share a rollup with every non-contractor user, current and future."""
    if user is None:
        return ActionResult.unauthenticated()
    if user.role != UserRole.admin:
        return ActionResult.denied(AuthMessages.ADMIN_REQUIRED)
    if await _get_rollup(session, rollup_id) is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)

    existing = await session.exec(
        select(RollupInvitation.id).where(
            RollupInvitation.rollup_board_id == rollup_id,
            RollupInvitation.all_users.is_(True),
        )
    )
    if existing.first() is not None:
        return ActionResult.invalid(RollupSharingMessages.ALL_USERS_ALREADY_INVITED)
    return ActionResult.ok(await _create_invitation(session, user=user, rollup_id=rollup_id, all_users=True))


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def respond_to_rollup_invitation(
    session: AsyncSession,
    *,
    user: Optional[User],
    invitation_id: int,
    accept: bool,
) -> ActionResult[None]:
    if user is None:
        return ActionResult.unauthenticated()
    invitation = await session.get(RollupInvitation, invitation_id)
    if invitation is None:
        return ActionResult.denied(RollupSharingMessages.INVITATION_NOT_FOUND)
    # Invitations addressed to someone else read as missing
    if invitation.user_id is not None and invitation.user_id != user.id:
        return ActionResult.denied(RollupSharingMessages.INVITATION_NOT_FOUND)
    if invitation.team_id is not None:
        membership = await session.exec(
            select(TeamMember.user_id).where(
                TeamMember.team_id == invitation.team_id,
                TeamMember.user_id == user.id,
            )
        )
        if membership.first() is None:
            return ActionResult.denied(RollupSharingMessages.INVITATION_NOT_FOUND)
    if invitation.status != RollupInvitationStatus.pending:
        return ActionResult.invalid(RollupSharingMessages.ALREADY_RESPONDED)

    invitation.status = RollupInvitationStatus.accepted if accept else RollupInvitationStatus.declined
    invitation.responded_at = _now()
    session.add(invitation)
    await session.commit()
    return ActionResult.ok(None)


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def remove_rollup_invitation(
    session: AsyncSession,
    *,
    user: Optional[User],
    invitation_id: int,
) -> ActionResult[None]:
    if user is None:
        return ActionResult.unauthenticated()
    invitation = await session.get(RollupInvitation, invitation_id)
    if invitation is None:
        return ActionResult.denied(RollupSharingMessages.INVITATION_NOT_FOUND)
    if await _addressable_rollup(session, user, invitation.rollup_board_id) is None:
        return ActionResult.denied(RollupSharingMessages.INVITATION_NOT_FOUND)
    if not await _can_manage(session, user, invitation.rollup_board_id):
        return ActionResult.denied(RollupSharingMessages.OWNER_OR_ADMIN_REQUIRED)

    await session.delete(invitation)
    await session.commit()
    return ActionResult.ok(None)


@guarded_action(RollupSharingMessages.SHARING_FAILED)
async def transfer_rollup_ownership(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    new_owner_id: int,
) -> ActionResult[None]:
    """Make ``new_owner_id`` the primary owner; the previous primary stays an owner."""
    if user is None:
        return ActionResult.unauthenticated()
    if await _addressable_rollup(session, user, rollup_id) is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)

    if user.role != UserRole.admin:
        primary = await session.exec(
            select(RollupOwner.id).where(
                RollupOwner.rollup_board_id == rollup_id,
                RollupOwner.user_id == user.id,
                RollupOwner.is_primary.is_(True),
            )
        )
        if primary.first() is None:
            return ActionResult.denied(RollupSharingMessages.PRIMARY_OWNER_REQUIRED)
    if await session.get(User, new_owner_id) is None:
        return ActionResult.invalid(RollupSharingMessages.USER_NOT_FOUND)

    await session.exec(
        update(RollupOwner)
        .where(RollupOwner.rollup_board_id == rollup_id, RollupOwner.is_primary.is_(True))
        .values(is_primary=False)
    )
    existing = (
        await session.exec(
            select(RollupOwner).where(
                RollupOwner.rollup_board_id == rollup_id,
                RollupOwner.user_id == new_owner_id,
            )
        )
    ).first()
    if existing is not None:
        existing.is_primary = True
        session.add(existing)
    else:
        session.add(RollupOwner(rollup_board_id=rollup_id, user_id=new_owner_id, is_primary=True))
    await session.commit()
    logger.info("User %s transferred rollup %s to user %s", user.id, rollup_id, new_owner_id)
    return ActionResult.ok(None)
