from dataclasses import dataclass
from typing import Annotated, Any, List, Optional, TypeVar

from fastapi import BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.config import settings
from clientboard.core.results import ActionResult, ErrorCode
from clientboard.core.security import decode_access_token
from clientboard.db.session import AsyncSessionLocal, get_session
from clientboard.models.user import User
from clientboard.services.access import AccessResolver
from clientboard.services.effects import ActivityLogger, JobDispatcher, dispatch_effects

T = TypeVar("T")

SessionDep = Annotated[AsyncSession, Depends(get_session)]

# Token problems surface as ActionResult failures, not as FastAPI's own 401
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/token", auto_error=False)

ERROR_STATUS_CODES = {
    ErrorCode.not_authenticated: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.access_denied: status.HTTP_403_FORBIDDEN,
    ErrorCode.validation_error: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.internal: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def get_optional_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    session: SessionDep,
) -> Optional[User]:
    """Resolve the bearer token to an active user, or None."""
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None or not payload.sub:
        return None
    try:
        user_id = int(payload.sub)
    except ValueError:
        return None
    user = await session.get(User, user_id)
    if user is None or user.deactivated_at is not None:
        return None
    return user


CurrentUserDep = Annotated[Optional[User], Depends(get_optional_user)]


def get_access_resolver(session: SessionDep) -> AccessResolver:
    return AccessResolver(session)


AccessDep = Annotated[AccessResolver, Depends(get_access_resolver)]


def get_job_dispatcher() -> JobDispatcher:
    return JobDispatcher(settings.JOB_DISPATCH_URL)


def get_activity_logger() -> ActivityLogger:
    return ActivityLogger(AsyncSessionLocal)


@dataclass
class EffectRunner:
    """Schedules service effects to run after the response is sent."""

    background_tasks: BackgroundTasks
    dispatcher: JobDispatcher
    activity_logger: ActivityLogger

    def schedule(self, effects: list[Any]) -> None:
        if not effects:
            return
        self.background_tasks.add_task(
            dispatch_effects,
            list(effects),
            dispatcher=self.dispatcher,
            activity_logger=self.activity_logger,
        )


def get_effect_runner(
    background_tasks: BackgroundTasks,
    dispatcher: Annotated[JobDispatcher, Depends(get_job_dispatcher)],
    activity_logger: Annotated[ActivityLogger, Depends(get_activity_logger)],
) -> EffectRunner:
    return EffectRunner(background_tasks=background_tasks, dispatcher=dispatcher, activity_logger=activity_logger)


EffectsDep = Annotated[EffectRunner, Depends(get_effect_runner)]


def unwrap(result: ActionResult[T], effects: Optional[EffectRunner] = None) -> T:
    """Return the result data or raise the matching HTTP error."""
    if not result.success:
        status_code = ERROR_STATUS_CODES.get(result.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
        raise HTTPException(status_code=status_code, detail=result.error, headers=headers)
    if effects is not None:
        effects.schedule(result.effects)
    return result.data  # type: ignore[return-value]


@dataclass
class ListingParams:
    filters: dict[str, Any]
    sort: dict[str, Any]


def get_listing_params(
    status_ids: Annotated[Optional[List[str]], Query(alias="status")] = None,
    status_mode: str = "is",
    section: Annotated[Optional[List[str]], Query()] = None,
    section_mode: str = "is",
    assignee_ids: Annotated[Optional[List[int]], Query(alias="assignee_id")] = None,
    assignee_mode: str = "is",
    overdue: bool = False,
    sort_field: str = "position",
    sort_direction: str = "asc",
) -> ListingParams:
    """Collect raw listing filters; the services validate them."""
    return ListingParams(
        filters={
            "status": status_ids,
            "status_mode": status_mode,
            "section": section,
            "section_mode": section_mode,
            "assignee_ids": assignee_ids,
            "assignee_mode": assignee_mode,
            "overdue": overdue,
        },
        sort={"field": sort_field, "direction": sort_direction},
    )


ListingDep = Annotated[ListingParams, Depends(get_listing_params)]
