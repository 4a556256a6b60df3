from typing import List

from fastapi import APIRouter, status

from clientboard.api.deps import AccessDep, CurrentUserDep, EffectsDep, SessionDep, unwrap
from clientboard.schemas.task import MyTasksGroup, TaskCreate, TaskPositionsUpdate, TaskRead, TaskUpdate, TaskViewRead
from clientboard.services import task_views as task_views_service
from clientboard.services import tasks as tasks_service

router = APIRouter()


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> TaskRead:
    result = await tasks_service.create_task(session, user=current_user, data=task_in, access=access)
    return unwrap(result, effects)


@router.get("/mine", response_model=List[MyTasksGroup])
async def list_my_tasks(session: SessionDep, current_user: CurrentUserDep, access: AccessDep) -> List[MyTasksGroup]:
    return unwrap(await tasks_service.list_my_tasks(session, user=current_user, access=access))


@router.put("/positions", status_code=status.HTTP_204_NO_CONTENT)
async def update_task_positions(
    positions_in: TaskPositionsUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> None:
    result = await tasks_service.update_task_positions(
        session,
        user=current_user,
        updates=positions_in.updates,
        access=access,
    )
    unwrap(result, effects)


@router.get("/{task_id}", response_model=TaskRead)
async def read_task(
    task_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> TaskRead:
    return unwrap(await tasks_service.get_task(session, user=current_user, task_id=task_id, access=access))


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> TaskRead:
    result = await tasks_service.update_task(
        session,
        user=current_user,
        task_id=task_id,
        data=task_in,
        access=access,
    )
    return unwrap(result, effects)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> None:
    unwrap(await tasks_service.delete_task(session, user=current_user, task_id=task_id, access=access), effects)


@router.post("/{task_id}/archive", status_code=status.HTTP_204_NO_CONTENT)
async def archive_task(
    task_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> None:
    unwrap(await tasks_service.archive_task(session, user=current_user, task_id=task_id, access=access), effects)


@router.post("/{task_id}/unarchive", status_code=status.HTTP_204_NO_CONTENT)
async def unarchive_task(
    task_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> None:
    unwrap(await tasks_service.unarchive_task(session, user=current_user, task_id=task_id, access=access), effects)


@router.get("/{task_id}/subtasks", response_model=List[TaskRead])
async def list_subtasks(
    task_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> List[TaskRead]:
    result = await tasks_service.list_subtasks(session, user=current_user, parent_task_id=task_id, access=access)
    return unwrap(result)


@router.post("/{task_id}/view", response_model=TaskViewRead)
async def record_task_view(
    task_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
) -> TaskViewRead:
    viewed_at = unwrap(
        await task_views_service.record_task_view(session, user=current_user, task_id=task_id, access=access)
    )
    return TaskViewRead(task_id=task_id, viewed_at=viewed_at)
