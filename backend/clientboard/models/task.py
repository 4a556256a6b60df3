from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlmodel import Enum as SQLEnum, Field, SQLModel


class DateFlexibility(str, Enum):
    not_set = "not_set"
    flexible = "flexible"
    semi_flexible = "semi_flexible"
    not_flexible = "not_flexible"


class TaskAssignee(SQLModel, table=True):
    __tablename__ = "task_assignees"

    task_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    )
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    title: str = Field(sa_column=Column(String(500), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    # Status and section ids refer to entries of the owning board's option lists
    status: str = Field(sa_column=Column(String(100), nullable=False))
    section: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    due_date: Optional[date] = Field(default=None, sa_column=Column(Date, nullable=True))
    date_flexibility: DateFlexibility = Field(
        default=DateFlexibility.not_set,
        sa_column=Column(
            SQLEnum(DateFlexibility, name="date_flexibility"),
            nullable=False,
            server_default=DateFlexibility.not_set.value,
        ),
    )
    recurring_config: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    recurring_group_id: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True, index=True))
    parent_task_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True),
    )
    position: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    archived_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
