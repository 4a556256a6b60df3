from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from clientboard.models.rollup import RollupInvitationStatus
from clientboard.schemas.board import SectionOption, StatusOption
from clientboard.schemas.task import RollupTaskRead


def _dedupe_ids(value: List[int]) -> List[int]:
    seen: list[int] = []
    for item in value:
        if item not in seen:
            seen.append(item)
    return seen


class SourceBoardRead(BaseModel):
    board_id: int
    board_name: str
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_slug: Optional[str] = None
    client_color: Optional[str] = None
    client_icon: Optional[str] = None


class RollupBoardSummary(BaseModel):
    id: int
    name: str
    source_count: int


class RollupBoardRead(BaseModel):
    id: int
    name: str
    review_mode_enabled: bool = False
    created_by_id: Optional[int] = None
    created_at: datetime
    sources: List[SourceBoardRead] = Field(default_factory=list)


class RollupBoardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    source_board_ids: List[int] = Field(min_length=1)

    @field_validator("source_board_ids")
    @classmethod
    def unique_sources(cls, value: List[int]) -> List[int]:
        return _dedupe_ids(value)


class RollupBoardUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    review_mode_enabled: Optional[bool] = None


class RollupSourcesUpdate(BaseModel):
    source_board_ids: List[int] = Field(min_length=1)

    @field_validator("source_board_ids")
    @classmethod
    def unique_sources(cls, value: List[int]) -> List[int]:
        return _dedupe_ids(value)


class RollupTasksRead(BaseModel):
    tasks: List[RollupTaskRead] = Field(default_factory=list)
    status_options: List[StatusOption] = Field(default_factory=list)
    section_options: List[SectionOption] = Field(default_factory=list)


class RollupOwnerRead(BaseModel):
    id: int
    rollup_board_id: int
    user_id: int
    user_name: Optional[str] = None
    user_email: str
    user_avatar_url: Optional[str] = None
    is_primary: bool
    created_at: datetime


class RollupInvitationRead(BaseModel):
    id: int
    rollup_board_id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    team_id: Optional[int] = None
    team_name: Optional[str] = None
    all_users: bool = False
    status: RollupInvitationStatus
    invited_by_id: int
    invited_by_name: Optional[str] = None
    invited_by_email: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime


class InviteUserRequest(BaseModel):
    user_id: int = Field(gt=0)


class InviteTeamRequest(BaseModel):
    team_id: int = Field(gt=0)


class InvitationResponseRequest(BaseModel):
    accept: bool


class InvitationCreated(BaseModel):
    invitation_id: int


class OwnershipTransferRequest(BaseModel):
    new_owner_id: int = Field(gt=0)
