from fastapi import APIRouter

from clientboard.api.deps import CurrentUserDep, SessionDep, unwrap
from clientboard.core.results import ActionResult
from clientboard.schemas.settings import OrgSettingsRead, OrgSettingsUpdate
from clientboard.services import app_settings as app_settings_service

router = APIRouter()


@router.get("/organization", response_model=OrgSettingsRead)
async def get_organization_settings(session: SessionDep, current_user: CurrentUserDep) -> OrgSettingsRead:
    if current_user is None:
        unwrap(ActionResult.unauthenticated())
    return await app_settings_service.read_org_settings(session)


@router.put("/organization", response_model=OrgSettingsRead)
async def update_organization_settings(
    settings_in: OrgSettingsUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> OrgSettingsRead:
    result = await app_settings_service.update_org_timezone(
        session,
        user=current_user,
        timezone_name=settings_in.timezone,
    )
    return unwrap(result)
