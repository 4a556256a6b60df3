from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from clientboard.models.task import DateFlexibility
from clientboard.schemas.board import ClientSummary, SectionOption, StatusOption

NO_SECTION = "__none__"

RecurringFrequencyLiteral = Literal["daily", "weekly", "biweekly", "monthly", "quarterly", "yearly"]
MonthlyPatternLiteral = Literal["dayOfMonth", "dayOfWeek"]


class RecurringConfig(BaseModel):
    frequency: RecurringFrequencyLiteral
    interval: int = Field(default=1, ge=1, le=365)
    days_of_week: List[int] = Field(default_factory=list, alias="daysOfWeek")
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31, alias="dayOfMonth")
    monthly_pattern: Optional[MonthlyPatternLiteral] = Field(default=None, alias="monthlyPattern")
    # 1-4, -1 (last week) or -2 (last full business week)
    week_of_month: Optional[int] = Field(default=None, ge=-2, le=4, alias="weekOfMonth")
    monthly_day_of_week: Optional[int] = Field(default=None, ge=0, le=6, alias="monthlyDayOfWeek")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    end_after_occurrences: Optional[int] = Field(default=None, ge=1, le=1000, alias="endAfterOccurrences")

    class Config:
        populate_by_name = True

    @field_validator("days_of_week")
    @classmethod
    def ensure_unique_days(cls, value: List[int]) -> List[int]:
        seen: list[int] = []
        for item in value:
            if not 0 <= item <= 6:
                raise ValueError("Days of week must be between 0 (Sunday) and 6 (Saturday).")
            if item not in seen:
                seen.append(item)
        return seen

    @model_validator(mode="after")
    def validate_combinations(self) -> "RecurringConfig":
        if self.frequency not in {"weekly", "biweekly"}:
            self.days_of_week = []
        if self.frequency in {"monthly", "quarterly"}:
            if self.monthly_pattern == "dayOfWeek":
                if self.week_of_month is None or self.monthly_day_of_week is None:
                    raise ValueError("Day-of-week recurrence requires week of month and weekday.")
                if self.week_of_month == 0:
                    raise ValueError("Week of month must not be 0.")
                self.day_of_month = None
            else:
                self.week_of_month = None
                self.monthly_day_of_week = None
        else:
            self.monthly_pattern = None
            self.week_of_month = None
            self.monthly_day_of_week = None
        if self.end_date is not None and self.end_after_occurrences is not None:
            raise ValueError("Choose either an end date or a number of occurrences.")
        return self

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class FilterMode(str, Enum):
    is_ = "is"
    is_not = "is_not"


class TaskSortField(str, Enum):
    position = "position"
    due_date = "dueDate"
    created_at = "createdAt"
    title = "title"
    status = "status"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


def _as_list(value: object) -> object:
    if value is None or isinstance(value, list):
        return value
    if isinstance(value, (tuple, set)):
        return list(value)
    return [value]


class TaskFilters(BaseModel):
    """Board and rollup listing filters.

    ``section`` accepts ``__none__`` to match tasks without a section.
    Empty lists behave like an absent filter.
    """

    status: Optional[List[str]] = None
    status_mode: FilterMode = FilterMode.is_
    section: Optional[List[str]] = None
    section_mode: FilterMode = FilterMode.is_
    assignee_ids: Optional[List[int]] = None
    assignee_mode: FilterMode = FilterMode.is_
    overdue: bool = False

    class Config:
        extra = "forbid"

    @field_validator("status", "section", "assignee_ids", mode="before")
    @classmethod
    def coerce_to_list(cls, value: object) -> object:
        return _as_list(value)


class TaskSortOptions(BaseModel):
    field: TaskSortField = TaskSortField.position
    direction: SortDirection = SortDirection.asc

    class Config:
        extra = "forbid"


class TaskCreate(BaseModel):
    board_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = None
    section: Optional[str] = None
    due_date: Optional[date] = None
    date_flexibility: DateFlexibility = DateFlexibility.not_set
    recurring_config: Optional[RecurringConfig] = None
    assignee_ids: List[int] = Field(default_factory=list)
    position: Optional[int] = None
    parent_task_id: Optional[int] = Field(default=None, gt=0)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = None
    section: Optional[str] = None
    due_date: Optional[date] = None
    date_flexibility: Optional[DateFlexibility] = None
    recurring_config: Optional[RecurringConfig] = None
    assignee_ids: Optional[List[int]] = None
    position: Optional[int] = None
    # Applies the new status to every direct subtask as well
    complete_subtasks: bool = False


class TaskAssigneeRead(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    deactivated_at: Optional[datetime] = None


class TaskRead(BaseModel):
    id: int
    board_id: int
    title: str
    description: Optional[str] = None
    status: str
    section: Optional[str] = None
    due_date: Optional[date] = None
    date_flexibility: DateFlexibility = DateFlexibility.not_set
    recurring_config: Optional[dict] = None
    recurring_group_id: Optional[int] = None
    parent_task_id: Optional[int] = None
    position: int = 0
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None
    assignees: List[TaskAssigneeRead] = Field(default_factory=list)
    comment_count: int = 0
    attachment_count: int = 0
    has_new_comments: bool = False
    subtask_count: int = 0
    subtask_completed_count: int = 0

    class Config:
        from_attributes = True


class RollupTaskRead(TaskRead):
    board_name: str
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_slug: Optional[str] = None
    client_color: Optional[str] = None
    client_icon: Optional[str] = None


class TaskViewRead(BaseModel):
    task_id: int
    viewed_at: datetime


class TaskPositionUpdate(BaseModel):
    id: int = Field(gt=0)
    position: int
    # Set when a drag moves the task into another status column
    status: Optional[str] = None


class TaskPositionsUpdate(BaseModel):
    updates: List[TaskPositionUpdate] = Field(default_factory=list)


class ArchivedTaskSummary(BaseModel):
    id: int
    title: str
    status: str
    archived_at: datetime
    assignees: List[TaskAssigneeRead] = Field(default_factory=list)


class BulkArchiveResult(BaseModel):
    archived_count: int


class MyTasksBoard(BaseModel):
    id: int
    name: str
    status_options: List[StatusOption] = Field(default_factory=list)
    section_options: List[SectionOption] = Field(default_factory=list)


class MyTasksGroup(BaseModel):
    client: ClientSummary
    boards: List[MyTasksBoard] = Field(default_factory=list)
    tasks: List[RollupTaskRead] = Field(default_factory=list)
