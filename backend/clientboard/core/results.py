from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from clientboard.core.messages import AuthMessages

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


class ErrorCode(str, Enum):
    not_authenticated = "not_authenticated"
    access_denied = "access_denied"
    validation_error = "validation_error"
    internal = "internal"


@dataclass
class ActionResult(Generic[T]):
    """Uniform outcome of a service operation.

    ``effects`` carries side effects (job events, activity entries) the caller
    dispatches after the primary write has been committed. It is never
    serialized into responses.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: Optional[ErrorCode] = None
    effects: list[Any] = field(default_factory=list)

    @classmethod
    def ok(cls, data: Optional[T] = None, *, effects: Optional[list[Any]] = None) -> "ActionResult[T]":
        return cls(success=True, data=data, effects=list(effects or []))

    @classmethod
    def fail(cls, code: ErrorCode, error: str) -> "ActionResult[T]":
        return cls(success=False, error=error, code=code)

    @classmethod
    def denied(cls, error: str) -> "ActionResult[T]":
        return cls.fail(ErrorCode.access_denied, error)

    @classmethod
    def invalid(cls, error: str) -> "ActionResult[T]":
        return cls.fail(ErrorCode.validation_error, error)

    @classmethod
    def unauthenticated(cls) -> "ActionResult[T]":
        return cls.fail(ErrorCode.not_authenticated, AuthMessages.NOT_AUTHENTICATED)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        return payload


def guarded_action(
    failure_message: str,
) -> Callable[[Callable[P, Awaitable[ActionResult[T]]]], Callable[P, Awaitable[ActionResult[T]]]]:
    """Turn unexpected store failures into an ``internal`` result.

    The failure is logged with the operation name; the caller only sees the
    generic ``failure_message``.
    """

    def decorator(func: Callable[P, Awaitable[ActionResult[T]]]) -> Callable[P, Awaitable[ActionResult[T]]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ActionResult[T]:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError:
                logger.exception("%s failed", func.__qualname__)
                return ActionResult.fail(ErrorCode.internal, failure_message)

        return wrapper

    return decorator
