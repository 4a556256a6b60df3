from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from clientboard.models.board import AccessLevel, BoardType


class StatusOption(BaseModel):
    id: str
    label: str
    color: str = "#6B7280"
    position: int = 0


class SectionOption(BaseModel):
    id: str
    label: str
    color: str = "#6B7280"
    position: int = 0


class ClientSummary(BaseModel):
    id: int
    name: str
    slug: str
    color: Optional[str] = None
    icon: Optional[str] = None

    class Config:
        from_attributes = True


class BoardSummary(BaseModel):
    id: int
    name: str
    type: BoardType
    client: Optional[ClientSummary] = None

    class Config:
        from_attributes = True


class BoardAccessRead(BaseModel):
    id: int
    board_id: int
    user_id: Optional[int] = None
    team_id: Optional[int] = None
    access_level: AccessLevel
    created_at: datetime

    class Config:
        from_attributes = True


class BoardRead(BoardSummary):
    status_options: List[StatusOption] = Field(default_factory=list)
    section_options: List[SectionOption] = Field(default_factory=list)
    created_by_id: Optional[int] = None
    created_at: datetime
    # Resolved level of the requesting user
    access_level: Optional[AccessLevel] = None
    access_entries: List[BoardAccessRead] = Field(default_factory=list)


class BoardAccessCreate(BaseModel):
    user_id: Optional[int] = Field(default=None, gt=0)
    team_id: Optional[int] = Field(default=None, gt=0)
    access_level: AccessLevel = AccessLevel.full

    @model_validator(mode="after")
    def validate_principal(self) -> "BoardAccessCreate":
        if (self.user_id is None) == (self.team_id is None):
            raise ValueError("Provide exactly one of user_id or team_id")
        return self


class BoardAccessUpdate(BaseModel):
    access_level: AccessLevel
