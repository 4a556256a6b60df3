"""Rollup boards: virtual boards that aggregate tasks from standard boards."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.messages import RollupMessages, TaskMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.board import AccessLevel, Board, BoardType
from clientboard.models.client import Client
from clientboard.models.rollup import RollupInvitation, RollupOwner, RollupSource
from clientboard.models.user import User, UserRole
from clientboard.schemas.board import SectionOption, StatusOption
from clientboard.schemas.rollup import (
    RollupBoardCreate,
    RollupBoardRead,
    RollupBoardSummary,
    RollupBoardUpdate,
    RollupSourcesUpdate,
    RollupTasksRead,
    SourceBoardRead,
)
from clientboard.schemas.task import RollupTaskRead, TaskFilters, TaskRead, TaskSortOptions
from clientboard.services import app_settings as app_settings_service
from clientboard.services.access import AccessResolver, grants_all
from clientboard.services.rollup_access import RollupAccessResolver
from clientboard.services.task_queries import (
    annotate_tasks,
    apply_assignee_filter,
    describe_validation_error,
    drop_completed,
    fetch_listing_tasks,
    load_assignees,
    parse_listing_options,
)
from clientboard.services.task_visibility import is_task_visible

logger = logging.getLogger(__name__)


def merge_options(option_lists: Iterable[Sequence[Mapping[str, Any]]]) -> list[dict[str, Any]]:
    """Merge option vocabularies by id, keeping the first definition seen.

    The merged list is ordered by ``position``; ties keep merge order.
    """
    merged: dict[str, dict[str, Any]] = {}
    for options in option_lists:
        for option in options or ():
            merged.setdefault(option["id"], dict(option))
    return sorted(merged.values(), key=lambda option: option.get("position", 0))


def source_board_read(board: Board, client: Optional[Client]) -> SourceBoardRead:
    return SourceBoardRead(
        board_id=board.id,
        board_name=board.name,
        client_id=client.id if client else None,
        client_name=client.name if client else None,
        client_slug=client.slug if client else None,
        client_color=client.color if client else None,
        client_icon=client.icon if client else None,
    )


def with_source(task: TaskRead, source: SourceBoardRead) -> RollupTaskRead:
    return RollupTaskRead(
        **task.model_dump(),
        board_name=source.board_name,
        client_id=source.client_id,
        client_name=source.client_name,
        client_slug=source.client_slug,
        client_color=source.client_color,
        client_icon=source.client_icon,
    )


async def _boards_with_clients(
    session: AsyncSession,
    board_ids: Sequence[int],
) -> dict[int, tuple[Board, Optional[Client]]]:
    if not board_ids:
        return {}
    stmt = (
        select(Board, Client)
        .outerjoin(Client, Client.id == Board.client_id)
        .where(Board.id.in_(list(board_ids)))
    )
    return {board.id: (board, client) for board, client in (await session.exec(stmt)).all()}


async def _rollup_read(session: AsyncSession, rollup: Board, source_ids: Sequence[int]) -> RollupBoardRead:
    boards = await _boards_with_clients(session, source_ids)
    return RollupBoardRead(
        id=rollup.id,
        name=rollup.name,
        review_mode_enabled=rollup.review_mode_enabled,
        created_by_id=rollup.created_by_id,
        created_at=rollup.created_at,
        sources=[source_board_read(*boards[source_id]) for source_id in source_ids if source_id in boards],
    )


class RollupAggregator:
    """Merges the tasks and vocabularies of a rollup's source boards.

    Every source board is checked with its own access level; one
    inaccessible source fails the whole request rather than returning a
    partial view.
    """

    def __init__(
        self,
        session: AsyncSession,
        access: Optional[AccessResolver] = None,
        rollup_access: Optional[RollupAccessResolver] = None,
    ) -> None:
        self.session = session
        self.access = access or AccessResolver(session)
        self.rollup_access = rollup_access or RollupAccessResolver(session, self.access)

    async def get_rollup_tasks(
        self,
        user: User,
        rollup_id: int,
        filters: TaskFilters,
        sort: TaskSortOptions,
    ) -> ActionResult[RollupTasksRead]:
        rollup = await self.rollup_access.can_see_rollup_id(user, rollup_id)
        if rollup is None:
            return ActionResult.denied(RollupMessages.NO_ACCESS)

        source_ids = await self.rollup_access.source_board_ids(rollup.id)
        boards = await _boards_with_clients(self.session, source_ids)
        levels: dict[int, AccessLevel] = {}
        for source_id in source_ids:
            entry = boards.get(source_id)
            level = await self.access.resolve_board_access(user, entry[0]) if entry else None
            if level is None:
                return ActionResult.denied(RollupMessages.SOURCE_ACCESS_DENIED)
            levels[source_id] = level

        if not source_ids:
            return ActionResult.ok(RollupTasksRead())

        status_options = {source_id: boards[source_id][0].status_options for source_id in source_ids}
        today = await app_settings_service.get_org_today(self.session) if filters.overdue else None
        tasks = await fetch_listing_tasks(
            self.session,
            board_ids=source_ids,
            filters=filters,
            sort=sort,
            today=today,
        )
        if filters.overdue:
            tasks = drop_completed(tasks, status_options)

        assignees = await load_assignees(self.session, [task.id for task in tasks])
        tasks = [
            task
            for task in tasks
            if is_task_visible(
                access_level=levels[task.board_id],
                user_id=user.id,
                assignee_ids=[assignee.id for assignee in assignees.get(task.id, ())],
            )
        ]
        tasks = apply_assignee_filter(tasks, filters, assignees)

        annotated = await annotate_tasks(
            self.session,
            tasks,
            user_id=user.id,
            status_options_by_board=status_options,
            assignees_by_task=assignees,
        )
        rollup_tasks = [with_source(task, source_board_read(*boards[task.board_id])) for task in annotated]

        source_boards = [boards[source_id][0] for source_id in source_ids]
        return ActionResult.ok(
            RollupTasksRead(
                tasks=rollup_tasks,
                status_options=[
                    StatusOption.model_validate(option)
                    for option in merge_options(board.status_options for board in source_boards)
                ],
                section_options=[
                    SectionOption.model_validate(option)
                    for option in merge_options(board.section_options for board in source_boards)
                ],
            )
        )


@guarded_action(RollupMessages.TASKS_FAILED)
async def get_rollup_tasks(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    filters: TaskFilters | Mapping[str, Any] | None = None,
    sort: TaskSortOptions | Mapping[str, Any] | None = None,
    access: Optional[AccessResolver] = None,
) -> ActionResult[RollupTasksRead]:
    if user is None:
        return ActionResult.unauthenticated()
    try:
        parsed_filters, parsed_sort = parse_listing_options(filters, sort)
    except ValidationError as exc:
        return ActionResult.invalid(describe_validation_error(exc, TaskMessages.INVALID_FILTERS))
    aggregator = RollupAggregator(session, access)
    return await aggregator.get_rollup_tasks(user, rollup_id, parsed_filters, parsed_sort)


@guarded_action(RollupMessages.LIST_FAILED)
async def list_rollup_boards(
    session: AsyncSession,
    *,
    user: Optional[User],
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[RollupBoardSummary]]:
    if user is None:
        return ActionResult.unauthenticated()
    rollup_ids = await RollupAccessResolver(session, access).accessible_rollup_ids(user)
    if not rollup_ids:
        return ActionResult.ok([])

    counts_stmt = (
        select(RollupSource.rollup_board_id, func.count(RollupSource.id))
        .where(RollupSource.rollup_board_id.in_(list(rollup_ids)))
        .group_by(RollupSource.rollup_board_id)
    )
    counts = dict((await session.exec(counts_stmt)).all())
    boards_stmt = (
        select(Board)
        .where(Board.id.in_(list(rollup_ids)), Board.type == BoardType.rollup)
        .order_by(Board.name, Board.id)
    )
    rollups = (await session.exec(boards_stmt)).all()
    return ActionResult.ok(
        [RollupBoardSummary(id=rollup.id, name=rollup.name, source_count=counts.get(rollup.id, 0)) for rollup in rollups]
    )


@guarded_action(RollupMessages.GET_FAILED)
async def get_rollup_board(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[RollupBoardRead]:
    if user is None:
        return ActionResult.unauthenticated()
    rollup_access = RollupAccessResolver(session, access)
    rollup = await rollup_access.can_see_rollup_id(user, rollup_id)
    if rollup is None:
        return ActionResult.denied(RollupMessages.NO_ACCESS)
    return ActionResult.ok(await _rollup_read(session, rollup, await rollup_access.source_board_ids(rollup.id)))


@guarded_action(RollupMessages.ACCESS_CHECK_FAILED)
async def check_rollup_access(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[bool]:
    """Whether the user may open the rollup. A missing rollup reads as ``False``."""
    if user is None:
        return ActionResult.unauthenticated()
    rollup = await RollupAccessResolver(session, access).can_see_rollup_id(user, rollup_id)
    return ActionResult.ok(rollup is not None)


async def _check_sources(
    session: AsyncSession,
    *,
    user: User,
    source_board_ids: Sequence[int],
    access: AccessResolver,
) -> Optional[ActionResult[Any]]:
    if not grants_all(await access.restricted_board_ids(user), source_board_ids):
        return ActionResult.denied(RollupMessages.SOURCE_SELECTION_DENIED)

    stmt = select(Board.id).where(Board.id.in_(list(source_board_ids)), Board.type == BoardType.standard)
    found = set((await session.exec(stmt)).all())
    if len(found) != len(set(source_board_ids)):
        return ActionResult.invalid(RollupMessages.INVALID_SOURCES)
    return None


async def _editable_rollup(
    session: AsyncSession,
    user: User,
    rollup_id: int,
    access: Optional[AccessResolver] = None,
) -> tuple[Optional[Board], Optional[ActionResult[Any]]]:
    rollup = await RollupAccessResolver(session, access).addressable_rollup(user, rollup_id)
    if rollup is None:
        return None, ActionResult.denied(RollupMessages.NO_ACCESS)
    if user.role != UserRole.admin and rollup.created_by_id != user.id:
        return None, ActionResult.denied(RollupMessages.PERMISSION_DENIED)
    return rollup, None


@guarded_action(RollupMessages.SAVE_FAILED)
async def create_rollup_board(
    session: AsyncSession,
    *,
    user: Optional[User],
    data: RollupBoardCreate,
    access: Optional[AccessResolver] = None,
) -> ActionResult[RollupBoardRead]:
    """Create a rollup over standard boards; the creator becomes its primary owner."""
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    failure = await _check_sources(session, user=user, source_board_ids=data.source_board_ids, access=access)
    if failure is not None:
        return failure

    rollup = Board(name=data.name, type=BoardType.rollup, client_id=None, created_by_id=user.id)
    session.add(rollup)
    await session.flush()
    for source_id in data.source_board_ids:
        session.add(RollupSource(rollup_board_id=rollup.id, source_board_id=source_id))
    session.add(RollupOwner(rollup_board_id=rollup.id, user_id=user.id, is_primary=True))
    await session.commit()
    await session.refresh(rollup)
    logger.info("User %s created rollup %s with %d sources", user.id, rollup.id, len(data.source_board_ids))
    return ActionResult.ok(await _rollup_read(session, rollup, data.source_board_ids))


@guarded_action(RollupMessages.SAVE_FAILED)
async def update_rollup_board(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    data: RollupBoardUpdate,
    access: Optional[AccessResolver] = None,
) -> ActionResult[RollupBoardRead]:
    if user is None:
        return ActionResult.unauthenticated()
    rollup, failure = await _editable_rollup(session, user, rollup_id, access)
    if failure is not None:
        return failure

    if data.name:
        rollup.name = data.name
    if data.review_mode_enabled is not None:
        rollup.review_mode_enabled = data.review_mode_enabled
    session.add(rollup)
    await session.commit()
    await session.refresh(rollup)
    source_ids = await RollupAccessResolver(session).source_board_ids(rollup.id)
    return ActionResult.ok(await _rollup_read(session, rollup, source_ids))


@guarded_action(RollupMessages.SAVE_FAILED)
async def update_rollup_sources(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    data: RollupSourcesUpdate,
    access: Optional[AccessResolver] = None,
) -> ActionResult[RollupBoardRead]:
    if user is None:
        return ActionResult.unauthenticated()
    access = access or AccessResolver(session)
    rollup, failure = await _editable_rollup(session, user, rollup_id, access)
    if failure is not None:
        return failure
    failure = await _check_sources(session, user=user, source_board_ids=data.source_board_ids, access=access)
    if failure is not None:
        return failure

    await session.exec(delete(RollupSource).where(RollupSource.rollup_board_id == rollup.id))
    for source_id in data.source_board_ids:
        session.add(RollupSource(rollup_board_id=rollup.id, source_board_id=source_id))
    await session.commit()
    return ActionResult.ok(await _rollup_read(session, rollup, data.source_board_ids))


@guarded_action(RollupMessages.DELETE_FAILED)
async def delete_rollup_board(
    session: AsyncSession,
    *,
    user: Optional[User],
    rollup_id: int,
    access: Optional[AccessResolver] = None,
) -> ActionResult[None]:
    if user is None:
        return ActionResult.unauthenticated()
    rollup, failure = await _editable_rollup(session, user, rollup_id, access)
    if failure is not None:
        return failure

    await session.exec(delete(RollupSource).where(RollupSource.rollup_board_id == rollup.id))
    await session.exec(delete(RollupOwner).where(RollupOwner.rollup_board_id == rollup.id))
    await session.exec(delete(RollupInvitation).where(RollupInvitation.rollup_board_id == rollup.id))
    await session.delete(rollup)
    await session.commit()
    logger.info("User %s deleted rollup %s", user.id, rollup_id)
    return ActionResult.ok(None)


@guarded_action(RollupMessages.SOURCES_FAILED)
async def get_available_source_boards(
    session: AsyncSession,
    *,
    user: Optional[User],
    access: Optional[AccessResolver] = None,
) -> ActionResult[list[SourceBoardRead]]:
    """Standard boards the user may pick as rollup sources, by name."""
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
    return ActionResult.ok([source_board_read(board, client) for board, client in rows])
