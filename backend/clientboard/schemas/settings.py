from datetime import date

from pydantic import BaseModel, Field


class OrgSettingsRead(BaseModel):
    timezone: str
    today: date


class OrgSettingsUpdate(BaseModel):
    timezone: str = Field(min_length=1, max_length=64)
