"""Statistics models for FIVLO (period windows and aggregated pomodoro stats)."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field


class PeriodType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class PeriodWindow(BaseModel):
    """A [start, end) range anchored to a reference date in a fixed timezone.

    `start`/`end` are timezone-aware; `first_day`/`last_day` are the calendar days covered.
    """

    period: PeriodType
    timezone: str
    reference: date
    start: datetime
    end: datetime
    first_day: date
    last_day: date
    label: str

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class HourBucket(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    sessions: int = 0
    completed_sessions: int = 0
    focus_time: int = Field(0, description="Completed focus minutes")


class DayBucket(BaseModel):
    day: date
    weekday: str
    sessions: int = 0
    completed_sessions: int = 0
    focus_time: int = Field(0, description="Completed focus minutes")

    @property
    def is_active(self) -> bool:
        return self.completed_sessions > 0


class GoalStat(BaseModel):
    goal: str
    sessions: int = 0
    focus_time: int = 0
    percentage: float = 0.0


class PeriodStats(BaseModel):
    """Descriptive statistics over one window. Zero-valued when there is no data."""

    window: PeriodWindow
    total_sessions: int = 0
    completed_sessions: int = 0
    total_focus_time: int = 0
    average_session_length: float = 0.0
    completion_rate: float = 0.0
    active_days: int = 0
    hourly: List[HourBucket] = Field(default_factory=list, description="24 buckets for daily windows")
    daily: List[DayBucket] = Field(default_factory=list, description="One bucket per day for weekly/monthly windows")
    optimal_focus_time: Optional[Union[HourBucket, DayBucket]] = None
    best_day: Optional[DayBucket] = None
    worst_day: Optional[DayBucket] = None
    longest_streak: Optional[int] = Field(None, description="Monthly windows only")
    current_streak: Optional[int] = Field(None, description="Monthly windows only")
    goals: List[GoalStat] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.total_sessions > 0


class DDayProgress(BaseModel):
    """Progress towards a 30-day goal tracked by goal label."""

    goal: str
    start_date: date
    target_date: date
    total_days: int
    elapsed_days: int
    remaining_days: int
    current_focus_time: int
    target_focus_time: int
    percentage: int
    daily_average: int
    sessions: int


class RoutineProfile(BaseModel):
    """Focus pattern summary used to recommend a routine."""

    total_sessions: int = 0
    completed_sessions: int = 0
    total_focus_time: int = 0
    average_session_length: float = 0.0
    completion_rate: float = 0.0
    active_days: int = 0
    peak_hour: Optional[int] = Field(None, ge=0, le=23)
    productive_hours: List[int] = Field(default_factory=list)
    top_goals: List[GoalStat] = Field(default_factory=list)


class RoutineRecommendation(BaseModel):
    success: bool = True
    recommendation: str
    type: str = Field(..., description="'ai_generated' or 'rule_based'")
    confidence: int = Field(..., ge=0, le=100)
    generated_at: datetime
