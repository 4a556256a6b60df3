"""
Service tests for board listings, personal boards and access entries.
"""

import pytest
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import AuthMessages, BoardMessages
from clientboard.core.results import ErrorCode
from clientboard.models.board import AccessLevel, Board, BoardType
from clientboard.models.user import UserRole
from clientboard.schemas.board import BoardAccessCreate, BoardAccessUpdate
from clientboard.services import boards as boards_service
from clientboard.services.access import AccessResolver
from clientboard.testing import (
    create_board,
    create_board_access,
    create_client,
    create_rollup,
    create_team,
    create_user,
)


@pytest.mark.unit
@pytest.mark.service
async def test_regular_user_lists_every_standard_board(session: AsyncSession):
    user = await create_user(session)
    client = await create_client(session, name="Acme")
    beta = await create_board(session, client, name="Beta")
    alpha = await create_board(session, name="Alpha")
    await create_board(session, creator=user, type=BoardType.personal, name="My Tasks")
    await create_rollup(session, user, sources=[alpha])

    result = await boards_service.list_boards(session, user=user)

    assert [board.id for board in result.data] == [alpha.id, beta.id]
    assert result.data[1].client.name == "Acme"
    assert result.data[0].client is None


@pytest.mark.unit
@pytest.mark.service
async def test_contractor_lists_only_granted_boards(session: AsyncSession):
    contractor = await create_user(session)
    team = await create_team(session, members=[contractor], exclude_from_public=True)
    direct = await create_board(session, name="Direct")
    via_team = await create_board(session, name="Team")
    await create_board(session, name="Hidden")
    await create_board_access(session, direct, user=contractor, access_level=AccessLevel.assigned_only)
    await create_board_access(session, via_team, team=team)
    loner = await create_user(session)
    await create_team(session, members=[loner], exclude_from_public=True)

    result = await boards_service.list_boards(session, user=contractor)
    empty = await boards_service.list_boards(session, user=loner)

    assert [board.name for board in result.data] == ["Direct", "Team"]
    assert empty.data == []


@pytest.mark.unit
@pytest.mark.service
async def test_get_board_reports_resolved_level_and_entries(session: AsyncSession):
    contractor = await create_user(session)
    await create_team(session, members=[contractor], exclude_from_public=True)
    board = await create_board(session, section_options=[{"id": "design", "label": "Design", "position": 0}])
    entry = await create_board_access(session, board, user=contractor, access_level=AccessLevel.assigned_only)

    result = await boards_service.get_board(session, user=contractor, board_id=board.id)

    assert result.success
    assert result.data.access_level == AccessLevel.assigned_only
    assert [row.id for row in result.data.access_entries] == [entry.id]
    assert [option.id for option in result.data.status_options] == ["todo", "in-progress", "review", "complete"]
    assert result.data.section_options[0].label == "Design"


@pytest.mark.unit
@pytest.mark.service
async def test_get_board_denies_rollups_and_missing_boards(session: AsyncSession):
    user = await create_user(session)
    rollup = await create_rollup(session, user)

    for board_id in (rollup.id, 9999):
        result = await boards_service.get_board(session, user=user, board_id=board_id)
        assert result.code == ErrorCode.access_denied
        assert result.error == BoardMessages.NO_ACCESS


@pytest.mark.unit
@pytest.mark.service
async def test_personal_board_is_created_once(session: AsyncSession):
    user = await create_user(session)

    first = await boards_service.get_or_create_personal_board(session, user=user)
    second = await boards_service.get_or_create_personal_board(session, user=user)

    assert first.data.id == second.data.id
    assert first.data.name == "My Tasks"
    assert first.data.type == BoardType.personal
    boards = (await session.exec(select(Board).where(Board.created_by_id == user.id))).all()
    assert len(boards) == 1


@pytest.mark.unit
@pytest.mark.service
async def test_admin_manages_access_entries(session: AsyncSession):
    admin = await create_user(session, role=UserRole.admin)
    contractor = await create_user(session)
    await create_team(session, members=[contractor], exclude_from_public=True)
    board = await create_board(session)
    resolver = AccessResolver(session)

    created = await boards_service.add_board_access(
        session,
        user=admin,
        board_id=board.id,
        data=BoardAccessCreate(user_id=contractor.id, access_level=AccessLevel.assigned_only),
    )
    assert created.success
    assert await resolver.resolve_board_access(contractor, board) == AccessLevel.assigned_only

    updated = await boards_service.update_board_access(
        session,
        user=admin,
        board_id=board.id,
        entry_id=created.data.id,
        data=BoardAccessUpdate(access_level=AccessLevel.full),
    )
    assert updated.data.access_level == AccessLevel.full
    assert await resolver.resolve_board_access(contractor, board) == AccessLevel.full

    removed = await boards_service.remove_board_access(
        session, user=admin, board_id=board.id, entry_id=created.data.id
    )
    assert removed.success
    assert await resolver.resolve_board_access(contractor, board) is None


@pytest.mark.unit
@pytest.mark.service
async def test_access_entry_validation(session: AsyncSession):
    admin = await create_user(session, role=UserRole.admin)
    user = await create_user(session)
    team = await create_team(session)
    board = await create_board(session)
    other_board = await create_board(session)
    entry = await create_board_access(session, board, team=team)

    not_admin = await boards_service.add_board_access(
        session, user=user, board_id=board.id, data=BoardAccessCreate(user_id=user.id)
    )
    duplicate = await boards_service.add_board_access(
        session, user=admin, board_id=board.id, data=BoardAccessCreate(team_id=team.id)
    )
    unknown = await boards_service.add_board_access(
        session, user=admin, board_id=board.id, data=BoardAccessCreate(user_id=9999)
    )
    wrong_board = await boards_service.remove_board_access(
        session, user=admin, board_id=other_board.id, entry_id=entry.id
    )

    assert not_admin.error == AuthMessages.ADMIN_REQUIRED
    assert duplicate.error == BoardMessages.ACCESS_ENTRY_EXISTS
    assert unknown.error == BoardMessages.PRINCIPAL_NOT_FOUND
    assert wrong_board.error == BoardMessages.ACCESS_ENTRY_NOT_FOUND
