"""Request/response models for the FIVLO API."""

from datetime import date as Date, time as Time
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from fivlo.models.category import Category
from fivlo.models.constants import DEFAULT_FOCUS_MINUTES, MAX_SESSION_MINUTES, MIN_SESSION_MINUTES
from fivlo.models.recurrence import RepeatType, Weekday
from fivlo.models.reward import DailyCompletionResult, RewardLedgerEntry, RewardReason
from fivlo.models.session import SessionRecord, SessionType
from fivlo.models.task import TaskInstance, TaskPriority, TaskTemplate
from fivlo.models.user import User


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, description="User email address")
    name: Optional[str] = Field(None, description="Display name")
    timezone: Optional[str] = Field(None, description="IANA timezone (default Asia/Seoul)")
    is_premium: bool = Field(False, description="Paid plan flag")


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = Field(None, description="IANA timezone")


class AuthResponse(BaseModel):
    """Response model for authentication."""
    access_token: str
    token_type: str = "bearer"
    user: User


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex color, e.g. #FF5733")
    icon: Optional[str] = None


class CategoryUpdateRequest(BaseModel):
    """Partial category update; tasks keep the name and color they were created with."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = None


class CategoryListResponse(BaseModel):
    categories: List[Category]


class TaskCreateRequest(BaseModel):
    """Create a one-off or recurring task."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=1000)
    date: Date = Field(..., description="Target date (first occurrence)")
    time: Optional[Time] = Field(None, description="Optional time of day")
    category_id: Optional[str] = Field(None, description="Defaults to the user's default category")
    priority: TaskPriority = TaskPriority.MEDIUM
    repeat_type: RepeatType = RepeatType.NONE
    repeat_days: List[Weekday] = Field(default_factory=list)
    repeat_end_date: Optional[Date] = None


class TaskCreateResponse(BaseModel):
    template: Optional[TaskTemplate] = None
    instances: List[TaskInstance]
    created_count: int


class TaskUpdateRequest(BaseModel):
    """Partial edit of a one-off task. Series instances are edited through their template."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    date: Optional[Date] = None
    time: Optional[Time] = None
    category_id: Optional[str] = None
    priority: Optional[TaskPriority] = None


class TemplateUpdateRequest(BaseModel):
    """Partial template update.

    Any change requires `regenerate=true`, which rebuilds the incomplete instances.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    time: Optional[Time] = None
    category_id: Optional[str] = None
    priority: Optional[TaskPriority] = None
    date: Optional[Date] = None
    repeat_type: Optional[RepeatType] = None
    repeat_days: Optional[List[Weekday]] = None
    repeat_end_date: Optional[Date] = None
    regenerate: bool = False


class TemplateUpdateResponse(BaseModel):
    template: TaskTemplate
    deleted_count: int = 0
    created_count: int = 0


class TaskListResponse(BaseModel):
    date: Date
    tasks: List[TaskInstance]
    total: int
    completed: int


class CalendarSummary(BaseModel):
    total_tasks: int
    completed_tasks: int
    active_days: int


class CalendarResponse(BaseModel):
    year: int
    month: int
    days: Dict[str, List[TaskInstance]]
    summary: CalendarSummary


class TaskCompleteRequest(BaseModel):
    is_completed: Optional[bool] = Field(None, description="Explicit state; omitted means toggle")


class TaskCompleteResponse(BaseModel):
    task: TaskInstance
    reward: Optional[DailyCompletionResult] = None


class SessionStartRequest(BaseModel):
    goal: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    type: SessionType = SessionType.FOCUS
    duration_min: int = Field(DEFAULT_FOCUS_MINUTES, ge=MIN_SESSION_MINUTES, le=MAX_SESSION_MINUTES)


class ActiveSessionResponse(BaseModel):
    session: Optional[SessionRecord] = None
    remaining_seconds: int = 0


class SessionFinishResponse(BaseModel):
    session: SessionRecord
    reward: Optional[DailyCompletionResult] = None


class TransactionListResponse(BaseModel):
    transactions: List[RewardLedgerEntry]
    total: int
    limit: int
    skip: int


class PurchaseRequest(BaseModel):
    item_id: str = Field(..., min_length=1)
    price: int = Field(..., gt=0)
    description: Optional[str] = None
    reason: RewardReason = RewardReason.ITEM_PURCHASE


class WalletEntryResponse(BaseModel):
    entry: RewardLedgerEntry
    balance: int
