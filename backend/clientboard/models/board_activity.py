from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String
from sqlmodel import Field, SQLModel


class BoardActivity(SQLModel, table=True):
    __tablename__ = "board_activity_log"
    __table_args__ = (Index("ix_board_activity_log_board_created", "board_id", "created_at"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
    )
    task_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
    )
    task_title: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    )
    action: str = Field(sa_column=Column(String(50), nullable=False))
    details: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
