"""Pomodoro session data model for FIVLO."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class SessionType(str, Enum):
    FOCUS = "focus"
    BREAK = "break"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class SessionRecord(BaseModel):
    """A pomodoro session. Immutable once completed or abandoned.

    Timestamps are naive UTC, like every other stored timestamp.
    """

    id: str = Field(..., description="Unique session identifier")
    user_id: str = Field(..., description="User ID who owns this session")
    goal: str = Field(..., description="Goal label")
    color: Optional[str] = Field(None, description="Display color (hex)")
    type: SessionType = Field(SessionType.FOCUS, description="Focus or break")
    duration_min: int = Field(..., ge=1, description="Planned duration in minutes")
    status: SessionStatus = Field(SessionStatus.ACTIVE, description="Lifecycle status")
    started_at: datetime = Field(..., description="Start timestamp")
    ended_at: Optional[datetime] = Field(None, description="Completion/abandon timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def is_finalized(self) -> bool:
        return self.status != SessionStatus.ACTIVE
