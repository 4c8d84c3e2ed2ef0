"""Task template and task instance models for FIVLO."""

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from fivlo.models.recurrence import RecurrenceRule, RepeatType, Weekday


class TaskPriority(str, Enum):
    """Task priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskTemplate(BaseModel):
    """Reusable task definition from which dated instances are generated."""

    id: str = Field(..., description="Unique template identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this template")
    category_id: Optional[str] = Field(None, description="Category reference")
    title: str = Field(..., description="Task title")
    description: str = Field("", description="Task description")
    due_time: Optional[time] = Field(None, description="Optional time of day")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    repeat_type: RepeatType = Field(RepeatType.NONE, description="Recurrence type")
    repeat_days: List[Weekday] = Field(default_factory=list, description="Weekdays for weekly recurrence")
    start_date: date = Field(..., description="Target date / first occurrence")
    repeat_end_date: Optional[date] = Field(None, description="Last possible occurrence (inclusive)")
    created_at: datetime = Field(..., description="Template creation timestamp")
    updated_at: datetime = Field(..., description="Template last update timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    def recurrence_rule(self) -> RecurrenceRule:
        return RecurrenceRule(
            type=self.repeat_type,
            start_date=self.start_date,
            end_date=self.repeat_end_date,
            weekdays=self.repeat_days,
        )


class TaskInstance(BaseModel):
    """A single dated occurrence of a task."""

    id: str = Field(..., description="Unique instance identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this instance")
    template_id: Optional[str] = Field(None, description="Owning template (null for one-off tasks)")
    category_id: Optional[str] = Field(None, description="Category reference")
    category_name: Optional[str] = Field(None, description="Category name captured at creation")
    color: Optional[str] = Field(None, description="Category color captured at creation")
    title: str = Field(..., description="Task title")
    description: str = Field("", description="Task description")
    due_date: date = Field(..., description="Calendar day of the occurrence")
    due_time: Optional[time] = Field(None, description="Optional time of day")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    is_completed: bool = Field(False, description="Completion flag")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")
    created_at: datetime = Field(..., description="Instance creation timestamp")
    updated_at: datetime = Field(..., description="Instance last update timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
