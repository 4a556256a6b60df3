from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Enum as SQLEnum, Field, SQLModel


class RollupInvitationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"


class RollupSource(SQLModel, table=True):
    __tablename__ = "rollup_sources"
    __table_args__ = (
        UniqueConstraint("rollup_board_id", "source_board_id", name="uq_rollup_sources_rollup_source"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    rollup_board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    source_board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class RollupOwner(SQLModel, table=True):
    __tablename__ = "rollup_owners"
    __table_args__ = (
        UniqueConstraint("rollup_board_id", "user_id", name="uq_rollup_owners_rollup_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    rollup_board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    is_primary: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="false"),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class RollupInvitation(SQLModel, table=True):
    __tablename__ = "rollup_invitations"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN user_id IS NOT NULL THEN 1 ELSE 0 END)"
            " + (CASE WHEN team_id IS NOT NULL THEN 1 ELSE 0 END)"
            " + (CASE WHEN all_users THEN 1 ELSE 0 END) = 1",
            name="ck_rollup_invitations_single_target",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    rollup_board_id: int = Field(
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
    all_users: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="false"),
    )
    status: RollupInvitationStatus = Field(
        default=RollupInvitationStatus.pending,
        sa_column=Column(
            SQLEnum(RollupInvitationStatus, name="rollup_invitation_status"),
            nullable=False,
            server_default=RollupInvitationStatus.pending.value,
        ),
    )
    invited_by_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    )
    responded_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
