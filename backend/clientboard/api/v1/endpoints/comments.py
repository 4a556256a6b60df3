from typing import List

from fastapi import APIRouter, Query, status

from clientboard.api.deps import AccessDep, CurrentUserDep, EffectsDep, SessionDep, unwrap
from clientboard.schemas.comment import CommentCreate, CommentRead
from clientboard.services import comments as comments_service

router = APIRouter()


@router.post("/", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_in: CommentCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    effects: EffectsDep,
) -> CommentRead:
    result = await comments_service.create_comment(
        session,
        user=current_user,
        task_id=comment_in.task_id,
        content=comment_in.content,
        access=access,
    )
    return unwrap(result, effects)


@router.get("/", response_model=List[CommentRead])
async def list_comments(
    session: SessionDep,
    current_user: CurrentUserDep,
    access: AccessDep,
    task_id: int = Query(gt=0),
) -> List[CommentRead]:
    return unwrap(await comments_service.list_comments(session, user=current_user, task_id=task_id, access=access))
