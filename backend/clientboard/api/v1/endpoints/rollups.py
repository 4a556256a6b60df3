from typing import List

from fastapi import APIRouter, status

from clientboard.api.deps import AccessDep, CurrentUserDep, ListingDep, SessionDep, unwrap
from clientboard.schemas.rollup import (
    InvitationCreated,
    InvitationResponseRequest,
    InviteTeamRequest,
    InviteUserRequest,
    OwnershipTransferRequest,
    RollupBoardCreate,
    RollupBoardRead,
    RollupBoardSummary,
    RollupBoardUpdate,
    RollupInvitationRead,
    RollupOwnerRead,
    RollupSourcesUpdate,
    RollupTasksRead,
    SourceBoardRead,
)
from clientboard.services import rollup_sharing as sharing_service
from clientboard.services import rollups as rollups_service

router = APIRouter()


@router.get("/", response_model=List[RollupBoardSummary])
async def list_rollups(session: SessionDep, current_user: CurrentUserDep, access: AccessDep) -> List[RollupBoardSummary]:
    return unwrap(await rollups_service.list_rollup_boards(session, user=current_user, access=access))


@router.post("/", response_model=RollupBoardRead, status_code=status.HTTP_201_CREATED)
async def create_rollup(
    rollup_in: RollupBoardCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> RollupBoardRead:
    return unwrap(await rollups_service.create_rollup_board(session, user=current_user, data=rollup_in, access=access))


@router.get("/sources", response_model=List[SourceBoardRead])
async def list_available_sources(
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> List[SourceBoardRead]:
    return unwrap(await rollups_service.get_available_source_boards(session, user=current_user, access=access))


@router.post("/invitations/{invitation_id}/respond", status_code=status.HTTP_204_NO_CONTENT)
async def respond_to_invitation(
    invitation_id: int,
    response_in: InvitationResponseRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    result = await sharing_service.respond_to_rollup_invitation(
        session,
        user=current_user,
        invitation_id=invitation_id,
        accept=response_in.accept,
    )
    unwrap(result)


@router.delete("/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_invitation(invitation_id: int, session: SessionDep, current_user: CurrentUserDep) -> None:
    unwrap(await sharing_service.remove_rollup_invitation(session, user=current_user, invitation_id=invitation_id))


@router.get("/{rollup_id}", response_model=RollupBoardRead)
async def read_rollup(
    rollup_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> RollupBoardRead:
    return unwrap(await rollups_service.get_rollup_board(session, user=current_user, rollup_id=rollup_id, access=access))


@router.get("/{rollup_id}/access", response_model=bool)
async def check_rollup_access(
    rollup_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> bool:
    result = await rollups_service.check_rollup_access(session, user=current_user, rollup_id=rollup_id, access=access)
    return unwrap(result)


@router.patch("/{rollup_id}", response_model=RollupBoardRead)
async def update_rollup(
    rollup_id: int,
    rollup_in: RollupBoardUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> RollupBoardRead:
    result = await rollups_service.update_rollup_board(
        session,
        user=current_user,
        rollup_id=rollup_id,
        data=rollup_in,
        access=access,
    )
    return unwrap(result)


@router.put("/{rollup_id}/sources", response_model=RollupBoardRead)
async def update_rollup_sources(
    rollup_id: int,
    sources_in: RollupSourcesUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> RollupBoardRead:
    result = await rollups_service.update_rollup_sources(
        session,
        user=current_user,
        rollup_id=rollup_id,
        data=sources_in,
        access=access,
    )
    return unwrap(result)


@router.delete("/{rollup_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rollup(rollup_id: int, session: SessionDep, current_user: CurrentUserDep, access: AccessDep) -> None:
    unwrap(await rollups_service.delete_rollup_board(session, user=current_user, rollup_id=rollup_id, access=access))


@router.get("/{rollup_id}/tasks", response_model=RollupTasksRead)
async def list_rollup_tasks(
    rollup_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    listing: ListingDep,
) -> RollupTasksRead:
    result = await rollups_service.get_rollup_tasks(
        session,
        user=current_user,
        rollup_id=rollup_id,
        filters=listing.filters,
        sort=listing.sort,
        access=access,
    )
    return unwrap(result)


@router.get("/{rollup_id}/owners", response_model=List[RollupOwnerRead])
async def list_rollup_owners(
    rollup_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> List[RollupOwnerRead]:
    return unwrap(await sharing_service.get_rollup_owners(session, user=current_user, rollup_id=rollup_id, access=access))


@router.get("/{rollup_id}/invitations", response_model=List[RollupInvitationRead])
async def list_rollup_invitations(
    rollup_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> List[RollupInvitationRead]:
    result = await sharing_service.get_rollup_invitations(session, user=current_user, rollup_id=rollup_id, access=access)
    return unwrap(result)


@router.post("/{rollup_id}/invitations/users", response_model=InvitationCreated, status_code=status.HTTP_201_CREATED)
async def invite_user(
    rollup_id: int,
    invite_in: InviteUserRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> InvitationCreated:
    result = await sharing_service.invite_user_to_rollup(
        session,
        user=current_user,
        rollup_id=rollup_id,
        invitee_id=invite_in.user_id,
    )
    return unwrap(result)


@router.post("/{rollup_id}/invitations/teams", response_model=InvitationCreated, status_code=status.HTTP_201_CREATED)
async def invite_team(
    rollup_id: int,
    invite_in: InviteTeamRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> InvitationCreated:
    result = await sharing_service.invite_team_to_rollup(
        session,
        user=current_user,
        rollup_id=rollup_id,
        team_id=invite_in.team_id,
    )
    return unwrap(result)


@router.post("/{rollup_id}/invitations/all", response_model=InvitationCreated, status_code=status.HTTP_201_CREATED)
async def invite_all_users(rollup_id: int, session: SessionDep, current_user: CurrentUserDep) -> InvitationCreated:
    return unwrap(await sharing_service.invite_all_users_to_rollup(session, user=current_user, rollup_id=rollup_id))


@router.post("/{rollup_id}/transfer", status_code=status.HTTP_204_NO_CONTENT)
async def transfer_ownership(
    rollup_id: int,
    transfer_in: OwnershipTransferRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    result = await sharing_service.transfer_rollup_ownership(
        session,
        user=current_user,
        rollup_id=rollup_id,
        new_owner_id=transfer_in.new_owner_id,
    )
    unwrap(result)
