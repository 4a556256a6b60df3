import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlmodel import Enum as SQLEnum, Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from clientboard.models.client import Client

DEFAULT_STATUS_OPTIONS: list[dict[str, Any]] = [
    {"id": "todo", "label": "To Do", "color": "#6B7280", "position": 0},
    {"id": "in-progress", "label": "In Progress", "color": "#3B82F6", "position": 1},
    {"id": "review", "label": "Review", "color": "#F59E0B", "position": 2},
    {"id": "complete", "label": "Complete", "color": "#10B981", "position": 3},
]


class BoardType(str, Enum):
    standard = "standard"
    rollup = "rollup"
    personal = "personal"


class AccessLevel(str, Enum):
    full = "full"
    assigned_only = "assigned_only"


class Board(SQLModel, table=True):
    __tablename__ = "boards"

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=True, index=True),
    )
    name: str = Field(sa_column=Column(String(255), nullable=False))
    type: BoardType = Field(
        default=BoardType.standard,
        sa_column=Column(SQLEnum(BoardType, name="board_type"), nullable=False, server_default=BoardType.standard.value),
    )
    status_options: list[dict[str, Any]] = Field(
        default_factory=lambda: [dict(option) for option in DEFAULT_STATUS_OPTIONS],
        sa_column=Column(JSON, nullable=False, server_default=json.dumps(DEFAULT_STATUS_OPTIONS)),
    )
    section_options: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, server_default="[]"),
    )
    review_mode_enabled: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="false"),
    )
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    client: Optional["Client"] = Relationship()


class BoardAccess(SQLModel, table=True):
    __tablename__ = "board_access"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (team_id IS NULL)",
            name="ck_board_access_user_or_team",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True),
    )
    team_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True),
    )
    access_level: AccessLevel = Field(
        default=AccessLevel.full,
        sa_column=Column(SQLEnum(AccessLevel, name="access_level"), nullable=False, server_default=AccessLevel.full.value),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
