from typing import List, Optional

from fastapi import APIRouter, status

from clientboard.api.deps import AccessDep, CurrentUserDep, EffectsDep, ListingDep, SessionDep, unwrap
from clientboard.schemas.activity import BoardActivityRead
from clientboard.schemas.board import (
    BoardAccessCreate,
    BoardAccessRead,
    BoardAccessUpdate,
    BoardRead,
    BoardSummary,
)
from clientboard.schemas.task import ArchivedTaskSummary, BulkArchiveResult, TaskAssigneeRead, TaskRead
from clientboard.services import board_activity as board_activity_service
from clientboard.services import boards as boards_service
from clientboard.services import tasks as tasks_service

router = APIRouter()


@router.get("/", response_model=List[BoardSummary])
async def list_boards(session: SessionDep, current_user: CurrentUserDep, access: AccessDep) -> List[BoardSummary]:
    return unwrap(await boards_service.list_boards(session, user=current_user, access=access))


@router.get("/personal", response_model=BoardSummary)
async def get_personal_board(session: SessionDep, current_user: CurrentUserDep) -> BoardSummary:
    return unwrap(await boards_service.get_or_create_personal_board(session, user=current_user))


@router.get("/{board_id}", response_model=BoardRead)
async def get_board(
    board_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> BoardRead:
    return unwrap(await boards_service.get_board(session, user=current_user, board_id=board_id, access=access))


@router.get("/{board_id}/tasks", response_model=List[TaskRead])
async def list_board_tasks(
    board_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    listing: ListingDep,
) -> List[TaskRead]:
    result = await tasks_service.list_tasks(
        session,
        user=current_user,
        board_id=board_id,
        filters=listing.filters,
        sort=listing.sort,
        access=access,
    )
    return unwrap(result)


@router.get("/{board_id}/activity", response_model=List[BoardActivityRead])
async def list_board_activity(
    board_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> List[BoardActivityRead]:
    result = await board_activity_service.list_board_activity(
        session,
        user=current_user,
        board_id=board_id,
        access=access,
    )
    return unwrap(result)


@router.get("/{board_id}/assignable-users", response_model=List[TaskAssigneeRead])
async def list_assignable_users(
    board_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> List[TaskAssigneeRead]:
    result = await tasks_service.get_board_assignable_users(
        session,
        user=current_user,
        board_id=board_id,
        access=access,
    )
    return unwrap(result)


@router.get("/{board_id}/archived-tasks", response_model=List[ArchivedTaskSummary])
async def list_archived_tasks(
    board_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    search: Optional[str] = None,
) -> List[ArchivedTaskSummary]:
    result = await tasks_service.list_archived_tasks(
        session,
        user=current_user,
        board_id=board_id,
        search=search,
        access=access,
    )
    return unwrap(result)


@router.post("/{board_id}/archive-done", response_model=BulkArchiveResult)
async def archive_done_tasks(
    board_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> BulkArchiveResult:
    result = await tasks_service.bulk_archive_done(session, user=current_user, board_id=board_id, access=access)
    return unwrap(result, effects)


@router.post("/{board_id}/access", response_model=BoardAccessRead, status_code=status.HTTP_201_CREATED)
async def add_board_access(
    board_id: int,
    access_in: BoardAccessCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BoardAccessRead:
    return unwrap(await boards_service.add_board_access(session, user=current_user, board_id=board_id, data=access_in))


@router.patch("/{board_id}/access/{entry_id}", response_model=BoardAccessRead)
async def update_board_access(
    board_id: int,
    entry_id: int,
    access_in: BoardAccessUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BoardAccessRead:
    result = await boards_service.update_board_access(
        session,
        user=current_user,
        board_id=board_id,
        entry_id=entry_id,
        data=access_in,
    )
    return unwrap(result)


@router.delete("/{board_id}/access/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_board_access(
    board_id: int,
    entry_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    unwrap(await boards_service.remove_board_access(session, user=current_user, board_id=board_id, entry_id=entry_id))
