from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class ActivityUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    avatar_url: Optional[str] = None


class BoardActivityRead(BaseModel):
    id: int
    board_id: int
    task_id: Optional[int] = None
    task_title: Optional[str] = None
    user_id: int
    action: str
    details: Optional[dict[str, Any]] = None
    created_at: datetime
    user: ActivityUser
