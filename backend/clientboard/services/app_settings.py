from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.config import settings as app_config
from clientboard.core.messages import AuthMessages, SettingsMessages
from clientboard.core.results import ActionResult, guarded_action
from clientboard.models.app_setting import AppSetting
from clientboard.models.user import User, UserRole
from clientboard.schemas.settings import OrgSettingsRead

logger = logging.getLogger(__name__)

APP_SETTINGS_ID = 1


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """Resolve an organization timezone, falling back to the configured default."""
    if is_valid_timezone(name):
        return ZoneInfo(name)  # type: ignore[arg-type]
    if name:
        logger.warning("Unknown organization timezone %r, using %s", name, app_config.DEFAULT_ORG_TIMEZONE)
    return ZoneInfo(app_config.DEFAULT_ORG_TIMEZONE)


def org_today(timezone_name: Optional[str], *, now: Optional[datetime] = None) -> date:
    """Calendar date in the organization's timezone."""
    current = now or datetime.now(timezone.utc)
    return current.astimezone(resolve_timezone(timezone_name)).date()


async def get_app_settings(session: AsyncSession) -> AppSetting:
    app_settings = await session.get(AppSetting, APP_SETTINGS_ID)
    if app_settings is None:
        app_settings = AppSetting(id=APP_SETTINGS_ID)
        session.add(app_settings)
        await session.commit()
        await session.refresh(app_settings)
    return app_settings


async def ensure_defaults(session: AsyncSession) -> AppSetting:
    return await get_app_settings(session)


async def get_org_timezone(session: AsyncSession) -> str:
    app_settings = await session.get(AppSetting, APP_SETTINGS_ID)
    configured = app_settings.timezone if app_settings else None
    return configured if is_valid_timezone(configured) else app_config.DEFAULT_ORG_TIMEZONE


async def get_org_today(session: AsyncSession) -> date:
    return org_today(await get_org_timezone(session))


async def read_org_settings(session: AsyncSession) -> OrgSettingsRead:
    timezone_name = await get_org_timezone(session)
    return OrgSettingsRead(timezone=timezone_name, today=org_today(timezone_name))


@guarded_action(SettingsMessages.UPDATE_FAILED)
async def update_org_timezone(
    session: AsyncSession,
    *,
    user: Optional[User],
    timezone_name: str,
) -> ActionResult[OrgSettingsRead]:
    if user is None:
        return ActionResult.unauthenticated()
    if user.role != UserRole.admin:
        return ActionResult.denied(AuthMessages.ADMIN_REQUIRED)
    cleaned = timezone_name.strip()
    if not is_valid_timezone(cleaned):
        return ActionResult.invalid(SettingsMessages.INVALID_TIMEZONE)

    app_settings = await get_app_settings(session)
    app_settings.timezone = cleaned
    session.add(app_settings)
    await session.commit()
    return ActionResult.ok(await read_org_settings(session))
