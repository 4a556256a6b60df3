from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import AuthMessages, BoardMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.board import Board, BoardAccess, BoardType
from clientboard.models.client import Client
from clientboard.models.team import Team
from clientboard.models.user import User, UserRole
from clientboard.schemas.board import (
    BoardAccessCreate,
    BoardAccessRead,
    BoardAccessUpdate,
    BoardRead,
    BoardSummary,
    ClientSummary,
)
from clientboard.services.access import AccessResolver

logger = logging.getLogger(__name__)

PERSONAL_BOARD_NAME = "My Tasks"


def _summary(board: Board, client: Optional[Client]) -> BoardSummary:
    return BoardSummary(
        id=board.id,
        name=board.name,
        type=board.type,
        client=ClientSummary.model_validate(client) if client else None,
    )


async def _access_entries(session: AsyncSession, board_id: int) -> list[BoardAccessRead]:
    stmt = select(BoardAccess).where(BoardAccess.board_id == board_id).order_by(BoardAccess.id)
    return [BoardAccessRead.model_validate(entry) for entry in (await session.exec(stmt)).all()]


@guarded_action(BoardMessages.LIST_FAILED)
async def list_boards(
    session: AsyncSession,
    *,
    user: Optional[User],
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[BoardSummary]]:
    """Standard boards visible to the user, by name.

    Contractors only see boards they hold an explicit access row for.
    """
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)

    stmt = (
        select(Board, Client)
        .outerjoin(Client, Client.id == Board.client_id)
        .where(Board.type == BoardType.standard)
        .order_by(Board.name, Board.id)
    )
    restricted = await access.restricted_board_ids(user)
    if restricted is not None:
        if not restricted:
            return ActionResult.ok([])
        stmt = stmt.where(Board.id.in_(list(restricted)))

    rows = (await session.exec(stmt)).all()
    return ActionResult.ok([_summary(board, client) for board, client in rows])


@guarded_action(BoardMessages.GET_FAILED)
async def get_board(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[BoardRead]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    board = await session.get(Board, board_id)
    if board is None or board.type == BoardType.rollup:
        return ActionResult.denied(BoardMessages.NO_ACCESS)
    level = await access.resolve_board_access(user, board)
    if level is None:
        return ActionResult.denied(BoardMessages.NO_ACCESS)

    client = await session.get(Client, board.client_id) if board.client_id else None
    summary = _summary(board, client)
    return ActionResult.ok(
        BoardRead(
            **summary.model_dump(),
            status_options=board.status_options,
            section_options=board.section_options,
            created_by_id=board.created_by_id,
            created_at=board.created_at,
            access_level=level,
            access_entries=await _access_entries(session, board.id),
        )
    )


@guarded_action(BoardMessages.GET_FAILED)
async def get_or_create_personal_board(
    session: AsyncSession,
    *,
    user: Optional[User],
) -> ActionResult[BoardSummary]:
    if user is None:
        return ActionResult.unauthenticated()
    stmt = (
        select(Board)
        .where(Board.type == BoardType.personal, Board.created_by_id == user.id)
        .order_by(Board.id)
    )
    board = (await session.exec(stmt)).first()
    if board is None:
        board = Board(name=PERSONAL_BOARD_NAME, type=BoardType.personal, created_by_id=user.id)
        session.add(board)
        await session.commit()
        await session.refresh(board)
        logger.info("Created personal board %s for user %s", board.id, user.id)
    return ActionResult.ok(_summary(board, None))


async def _managed_board(
    session: AsyncSession,
    user: User,
    board_id: int,
) -> tuple[Optional[Board], Optional[ActionResult]]:
    if user.role != UserRole.admin:
        return None, ActionResult.denied(AuthMessages.ADMIN_REQUIRED)
    board = await session.get(Board, board_id)
    if board is None or board.type != BoardType.standard:
        return None, ActionResult.denied(BoardMessages.NO_ACCESS)
    return board, None


@guarded_action(BoardMessages.UPDATE_FAILED)
async def add_board_access(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    data: BoardAccessCreate,
) -> ActionResult[BoardAccessRead]:
    """Grant a user or team access to a board. Admin only."""
    if user is None:
        return ActionResult.unauthenticated()
    board, failure = await _managed_board(session, user, board_id)
    if failure is not None:
        return failure
    if (data.user_id is None) == (data.team_id is None):
        return ActionResult.invalid(BoardMessages.ACCESS_ENTRY_PRINCIPAL)

    if data.user_id is not None:
        principal = await session.get(User, data.user_id)
        duplicate_condition = BoardAccess.user_id == data.user_id
    else:
        principal = await session.get(Team, data.team_id)
        duplicate_condition = BoardAccess.team_id == data.team_id
    if principal is None:
        return ActionResult.invalid(BoardMessages.PRINCIPAL_NOT_FOUND)

    duplicate = await session.exec(
        select(BoardAccess.id).where(BoardAccess.board_id == board.id, duplicate_condition)
    )
    if duplicate.first() is not None:
        return ActionResult.invalid(BoardMessages.ACCESS_ENTRY_EXISTS)

    entry = BoardAccess(
        board_id=board.id,
        user_id=data.user_id,
        team_id=data.team_id,
        access_level=data.access_level,
    )
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    logger.info("Admin %s granted %s access on board %s", user.id, entry.access_level.value, board.id)
    return ActionResult.ok(BoardAccessRead.model_validate(entry))


async def _access_entry(session: AsyncSession, board_id: int, entry_id: int) -> Optional[BoardAccess]:
    entry = await session.get(BoardAccess, entry_id)
    if entry is None or entry.board_id != board_id:
        return None
    return entry


@guarded_action(BoardMessages.UPDATE_FAILED)
async def update_board_access(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    entry_id: int,
    data: BoardAccessUpdate,
) -> ActionResult[BoardAccessRead]:
    if user is None:
        return ActionResult.unauthenticated()
    board, failure = await _managed_board(session, user, board_id)
    if failure is not None:
        return failure
    entry = await _access_entry(session, board.id, entry_id)
    if entry is None:
        return ActionResult.denied(BoardMessages.ACCESS_ENTRY_NOT_FOUND)

    entry.access_level = data.access_level
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    return ActionResult.ok(BoardAccessRead.model_validate(entry))


@guarded_action(BoardMessages.UPDATE_FAILED)
async def remove_board_access(
    session: AsyncSession,
    *,
    user: Optional[User],
    board_id: int,
    entry_id: int,
) -> ActionResult[None]:
    if user is None:
        return ActionResult.unauthenticated()
    board, failure = await _managed_board(session, user, board_id)
    if failure is not None:
        return failure
    entry = await _access_entry(session, board.id, entry_id)
    if entry is None:
        return ActionResult.denied(BoardMessages.ACCESS_ENTRY_NOT_FOUND)

    await session.delete(entry)
    await session.commit()
    logger.info("Admin %s revoked access entry %s on board %s", user.id, entry_id, board.id)
    return ActionResult.ok(None)
