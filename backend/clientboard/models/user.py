from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Column, DateTime
from sqlmodel import Enum as SQLEnum, Field, Relationship, SQLModel

from clientboard.models.team import TeamMember

if TYPE_CHECKING:  # pragma: no cover
    from clientboard.models.team import Team


class UserRole(str, Enum):
    admin = "admin"
    user = "user"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True, nullable=False)
    name: Optional[str] = Field(default=None)
    avatar_url: Optional[str] = Field(default=None, nullable=True)
    role: UserRole = Field(
        default=UserRole.user,
        sa_column=Column(SQLEnum(UserRole, name="user_role"), nullable=False, server_default=UserRole.user.value),
    )
    deactivated_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    teams: List["Team"] = Relationship(back_populates="members", link_model=TeamMember)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
