from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String
from sqlmodel import Field, SQLModel


class Attachment(SQLModel, table=True):
    __tablename__ = "attachments"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True),
    )
    filename: str = Field(sa_column=Column(String(255), nullable=False))
    url: str = Field(sa_column=Column(String(2048), nullable=False))
    size: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, server_default="0"))
    uploaded_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
