from typing import Optional

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel


class AppSetting(SQLModel, table=True):
    __tablename__ = "app_settings"

    id: Optional[int] = Field(default=1, primary_key=True)
    # IANA name; None falls back to DEFAULT_ORG_TIMEZONE
    timezone: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
