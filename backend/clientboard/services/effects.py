"""Side effects produced by service operations.

Services return effect records alongside their result instead of performing
the side effects inline. The HTTP layer hands them to :func:`dispatch_effects`
once the primary write is committed. Dispatch is fire-and-forget: failures
are logged and never reach the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.core.config import settings
from clientboard.services import board_activity as board_activity_service

logger = logging.getLogger(__name__)

RECURRING_COMPLETED_EVENT = "task/recurring.completed"


@dataclass(frozen=True)
class JobEvent:
    name: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActivityEntry:
    board_id: int
    user_id: int
    action: str
    task_id: Optional[int] = None
    task_title: Optional[str] = None
    details: Optional[dict[str, Any]] = None


Effect = Union[JobEvent, ActivityEntry]


class JobDispatcher:
    """Posts job events to the external job processor."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout if timeout is not None else settings.JOB_DISPATCH_TIMEOUT_SECONDS
        self.transport = transport

    async def send(self, event: JobEvent) -> None:
        if not self.url:
            logger.info("No job dispatch URL configured; dropping %s event", event.name)
            return
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json={"name": event.name, "data": event.data})
            response.raise_for_status()


class ActivityLogger:
    """Writes board activity entries on a session of its own."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self.session_factory = session_factory

    async def log(self, entry: ActivityEntry) -> None:
        async with self.session_factory() as session:
            await board_activity_service.log_board_activity(
                session,
                board_id=entry.board_id,
                user_id=entry.user_id,
                action=entry.action,
                task_id=entry.task_id,
                task_title=entry.task_title,
                details=entry.details,
            )


async def dispatch_effects(
    effects: Iterable[Effect],
    *,
    dispatcher: JobDispatcher,
    activity_logger: ActivityLogger,
) -> None:
    for effect in effects:
        try:
            if isinstance(effect, JobEvent):
                await dispatcher.send(effect)
            elif isinstance(effect, ActivityEntry):
                await activity_logger.log(effect)
            else:
                logger.warning("Skipping unknown effect %r", effect)
        except Exception:
            # Effects never fail the mutation that produced them
            logger.exception("Failed to dispatch effect %r", effect)
